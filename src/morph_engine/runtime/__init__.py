"""Telemetry, settings and rate limiting shared by the pipeline."""

from .regulator import Regulator
from .settings import Settings

__all__ = ["Regulator", "Settings"]
