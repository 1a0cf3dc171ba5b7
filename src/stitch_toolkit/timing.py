"""
Module: timing

Purpose:
    Per-phase timing for one pipeline invocation, so slow stages
    (usually encoding of large composites) show up in logs.

Key Classes:
    - PhaseTimings: Collected durations per phase

Key Functions:
    - timed_phase: Context manager recording one phase

Dependencies:
    - time (std)
    - contextlib (std)

Used By:
    - controller
    - cli (``--timings``)
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator

logger = logging.getLogger(__name__)


@dataclass
class PhaseTimings:
    """
    Durations of pipeline phases, in insertion order.

    Example:
        >>> timings = PhaseTimings()
        >>> with timed_phase(timings, "compress"):
        ...     result = compress(surface)
        >>> print(timings.summary())
    """
    phases: Dict[str, float] = field(default_factory=dict)

    def log_phase(self, phase: str, duration: float) -> None:
        """Record a phase duration (repeated phases accumulate)."""
        self.phases[phase] = self.phases.get(phase, 0.0) + duration

    @property
    def total(self) -> float:
        return sum(self.phases.values())

    def slowest(self) -> tuple:
        """(phase, duration) of the slowest phase, or ("", 0.0) if empty."""
        if not self.phases:
            return ("", 0.0)
        return max(self.phases.items(), key=lambda x: x[1])

    def summary(self) -> str:
        """Human-readable timing summary."""
        lines = ["", "=== Stitch Timing Summary ==="]
        for phase, duration in self.phases.items():
            lines.append(f"  {phase:12s} {duration:.3f}s")
        lines.append(f"  {'total':12s} {self.total:.3f}s")
        lines.append("")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phases": dict(self.phases),
            "total": self.total,
        }


@contextmanager
def timed_phase(timings: PhaseTimings, phase: str) -> Generator[None, None, None]:
    """
    Time the enclosed block and record it under ``phase``.

    The duration is recorded even if the block raises.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        timings.log_phase(phase, elapsed)
        logger.debug(f"{phase} took {elapsed:.3f}s")
