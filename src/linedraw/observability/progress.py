"""
Progress Reporting
==================

Caller-supplied progress hooks invoked at stage boundaries.

The engines never write to the terminal. They emit a ProgressEvent when
a stage has fully completed (after its barrier):
    - ETF bootstrap done
    - each ETF refinement pass done
    - each FDoG pass done
    - post-processing done
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Pipeline stage boundaries at which progress is reported."""

    ETF_BOOTSTRAP = "ETF_BOOTSTRAP"
    ETF_REFINE = "ETF_REFINE"
    FDOG_PASS = "FDOG_PASS"
    POSTPROCESS = "POSTPROCESS"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """
    A completed pipeline stage.

    Attributes:
        stage: Which boundary was reached
        index: 1-based pass number within the stage
        total: Number of passes planned for the stage
        elapsed: Seconds since the reporter was started
    """

    stage: Stage
    index: int
    total: int
    elapsed: float

    def __repr__(self) -> str:
        return (
            f"ProgressEvent({self.stage.value} {self.index}/{self.total}, "
            f"t={self.elapsed:.2f}s)"
        )


class ProgressCallback(Protocol):
    """Anything callable with a ProgressEvent."""

    def __call__(self, event: ProgressEvent) -> None:
        ...


class ProgressTracker:
    """
    Stamps events with elapsed time and forwards them to a callback.

    A tracker without a callback is a no-op, so engines can report
    unconditionally.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback
        self._start = time.perf_counter()

    def report(self, stage: Stage, index: int = 1, total: int = 1) -> None:
        if self._callback is None:
            return
        self._callback(
            ProgressEvent(
                stage=stage,
                index=index,
                total=total,
                elapsed=time.perf_counter() - self._start,
            )
        )


class LoggingProgress:
    """Progress callback that logs each event."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def __call__(self, event: ProgressEvent) -> None:
        logger.log(
            self.level,
            f"{event.stage.value} {event.index}/{event.total} "
            f"done at {event.elapsed:.2f}s",
        )
