"""Reformat pipeline orchestration."""

from .orchestrator import Orchestrator
from .results import ReformatResult
from .worker import StepWorker

__all__ = ["Orchestrator", "ReformatResult", "StepWorker"]
