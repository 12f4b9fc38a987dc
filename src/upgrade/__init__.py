"""Upgrade planning and execution."""

from .executor import CodemodOutcome, RunState, UpgradeExecutor, UpgradeReport
from .planner import AlreadyCurrent, Applicable, UpgradePlanner
from .result import Failure, FailureKind, Result

__all__ = [
    "AlreadyCurrent",
    "Applicable",
    "CodemodOutcome",
    "Failure",
    "FailureKind",
    "Result",
    "RunState",
    "UpgradeExecutor",
    "UpgradePlanner",
    "UpgradeReport",
]
