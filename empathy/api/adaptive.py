"""Adaptive engine endpoints.

POST /adaptive-engine runs the engine (calculate / sync_activities) or
returns the stored state (get_state); every action answers 404 for an
unknown athlete. GET /adaptive-engine returns the stored state for a date.
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from empathy.adaptive.errors import AthleteNotFoundError
from empathy.adaptive.service import get_state, require_athlete, run_adaptive_engine
from empathy.db.session import get_db

router = APIRouter(prefix="/adaptive-engine", tags=["adaptive"])


class EngineRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    athlete_id: str
    action: str
    target_date: date | None = Field(default=None, alias="date")


def _state_response(target_date: date, state: Any) -> dict[str, Any]:
    return {
        "success": True,
        "date": target_date.isoformat(),
        "state": state.model_dump(mode="json") if state is not None else None,
    }


@router.post("")
def post_adaptive_engine(request: EngineRequest, session: Session = Depends(get_db)) -> Any:
    """Run the engine or read the stored state for an athlete."""
    target_date = request.target_date or date.today()

    if request.action not in {"calculate", "sync_activities", "get_state"}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")

    try:
        require_athlete(session, request.athlete_id)
        if request.action == "get_state":
            return _state_response(target_date, get_state(session, request.athlete_id, target_date))
        result = run_adaptive_engine(session, request.athlete_id, target_date)
    except AthleteNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Athlete not found") from e
    except Exception as e:
        logger.bind(athlete_id=request.athlete_id).exception(f"Adaptive engine failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal error", "details": str(e)},
        )

    return {
        "success": True,
        "date": target_date.isoformat(),
        "state": result.state.model_dump(mode="json"),
        "adaptations": result.adaptations.model_dump(mode="json"),
        "deltas_summary": result.deltas_summary.model_dump(mode="json"),
        "saved": result.saved,
    }


@router.get("")
def get_adaptive_engine(
    athlete_id: str = Query(...),
    target_date: date | None = Query(default=None, alias="date"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    """Return the stored daily state for a date (today by default)."""
    target_date = target_date or date.today()
    return _state_response(target_date, get_state(session, athlete_id, target_date))
