"""Core package for time-budgeted blocked Gibbs experiments.

Exports the data structures and the checkpoint scheduler.
"""

from pgibbs.models import ExperimentConfig, ExperimentRecord, NodeSummary  # noqa: F401
from pgibbs.scheduler import RuntimeBudgetScheduler  # noqa: F401

__all__ = [
    "ExperimentConfig",
    "ExperimentRecord",
    "NodeSummary",
    "RuntimeBudgetScheduler",
]
