"""Empathy adaptive engine: plan-vs-actual deltas and daily athlete state."""
