"""Virtual-user concurrency curves.

A pattern yields ``(elapsed_seconds, target_vus)`` at every tick of a run;
the scheduler turns those into scale-up commands for the run session.
"""

from __future__ import annotations

from loadcheck.patterns.base import LoadPattern
from loadcheck.patterns.constant import ConstantPattern

__all__ = [
    "ConstantPattern",
    "LoadPattern",
]
