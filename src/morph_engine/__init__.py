"""Reconcile editor buffers with the output of external formatters."""

__all__ = [
    "buffer",
    "diffing",
    "formatters",
    "pipeline",
    "runtime",
    "session",
]

__version__ = "0.1.0"
