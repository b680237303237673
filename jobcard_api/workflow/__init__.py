"""
Pure workflow rules: step catalog, job card state machine, plan folds,
error taxonomy and the injectable clock. No database or HTTP imports.
"""

from .clock import Clock, DeterministicClock, SystemClock
from .steps import Step, StepCatalog, get_step_catalog
from .state import JobCardStatus, ResolutionAction, Severity

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Step",
    "StepCatalog",
    "get_step_catalog",
    "JobCardStatus",
    "ResolutionAction",
    "Severity",
]
