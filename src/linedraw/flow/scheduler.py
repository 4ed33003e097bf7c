"""
Row Scheduler
=============

Parallel map over pixel rows with a join.

Every per-pixel stage of the pipeline is expressed as a band kernel
``kernel(row_start, row_stop)`` that reads only immutable inputs from the
previous stage and writes only rows ``[row_start, row_stop)`` of its own
output buffer. The scheduler fans the bands out to a thread pool and
returns once every band has finished, which is the barrier between
stages. numpy releases the GIL inside its array loops, so threads give
real parallelism here.

Because bands write disjoint rows and no band reads another band's
output, the result does not depend on band size or completion order.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Tuple


logger = logging.getLogger(__name__)


BandKernel = Callable[[int, int], None]


class RowScheduler:
    """
    Thread-pool executor for band kernels.

    Attributes:
        workers: Number of worker threads (1 = run inline)
        band_rows: Number of image rows per band
    """

    def __init__(self, workers: int = 0, band_rows: int = 16) -> None:
        """
        Initialize the scheduler.

        Args:
            workers: Worker threads; 0 picks the CPU count
            band_rows: Rows handled by one task

        Raises:
            ValueError: If band_rows < 1 or workers < 0
        """
        if workers < 0:
            raise ValueError(f"workers must be >= 0, got {workers}")
        if band_rows < 1:
            raise ValueError(f"band_rows must be >= 1, got {band_rows}")

        self.workers = workers or os.cpu_count() or 1
        self.band_rows = band_rows

    def bands(self, height: int) -> List[Tuple[int, int]]:
        """Split ``height`` rows into ``[start, stop)`` bands."""
        return [
            (start, min(start + self.band_rows, height))
            for start in range(0, height, self.band_rows)
        ]

    def run(self, kernel: BandKernel, height: int) -> None:
        """
        Run ``kernel`` over every band and wait for all of them.

        The first exception raised by a band is re-raised here once all
        submitted bands have settled.
        """
        bands = self.bands(height)
        if not bands:
            return

        logger.debug(f"Dispatching {len(bands)} bands to {self.workers} workers")

        if self.workers == 1 or len(bands) == 1:
            for start, stop in bands:
                kernel(start, stop)
            return

        with ThreadPoolExecutor(max_workers=min(self.workers, len(bands))) as pool:
            futures = [pool.submit(kernel, start, stop) for start, stop in bands]
        # The executor context joins every task before we get here
        for future in futures:
            future.result()

    def __repr__(self) -> str:
        return f"RowScheduler(workers={self.workers}, band_rows={self.band_rows})"


def serial_scheduler() -> RowScheduler:
    """Scheduler that runs every band inline on the calling thread."""
    return RowScheduler(workers=1, band_rows=1 << 30)
