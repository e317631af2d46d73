"""Error types for the adaptive engine service.

The calculators and the repository never raise for missing data; they
degrade to documented defaults. Only the service layer signals a missing
athlete, which the API maps to 404.
"""


class AthleteNotFoundError(LookupError):
    """Raised when the engine is asked to run for an unknown athlete."""

    def __init__(self, athlete_id: str) -> None:
        super().__init__(f"Athlete not found: {athlete_id}")
        self.athlete_id = athlete_id
