"""Hunk model, line diffing and hunk reconciliation."""

from .differ import diff, diff_lines
from .hunk import Hunk, HunkList
from .reconciler import Reconciler, apply, mutation_range

__all__ = [
    "Hunk",
    "HunkList",
    "Reconciler",
    "apply",
    "diff",
    "diff_lines",
    "mutation_range",
]
