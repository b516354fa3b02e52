"""Engine module - the scheduler and suspension engine."""

from src.engine.guard import DevtoolGuard, GuardState, StartResult, StateTransitionError, auto_start

__all__ = ["DevtoolGuard", "GuardState", "StartResult", "StateTransitionError", "auto_start"]
