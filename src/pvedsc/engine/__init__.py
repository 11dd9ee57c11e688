"""Reconciliation engine."""

from pvedsc.engine.context import RunContext, RunState
from pvedsc.engine.coordinator import RunCoordinator
from pvedsc.engine.power import PowerTransition, plan_power_transition

__all__ = [
    "PowerTransition",
    "RunContext",
    "RunCoordinator",
    "RunState",
    "plan_power_transition",
]
