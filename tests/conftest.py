"""
Test Configuration
==================

Pytest fixtures and synthetic images for linedraw tests.
"""

import random

import numpy as np
import pytest

from linedraw.flow.scheduler import RowScheduler, serial_scheduler


@pytest.fixture
def flat_image():
    """Uniform 4x4 gray image."""
    return np.full((4, 4), 128, dtype=np.uint8)


@pytest.fixture
def edge_image():
    """16x16 image: 0 on the left half, 255 on the right half."""
    image = np.zeros((16, 16), dtype=np.uint8)
    image[:, 8:] = 255
    return image


@pytest.fixture
def disc_image():
    """32x32 bright disc on a dark background."""
    yy, xx = np.mgrid[0:32, 0:32]
    image = np.zeros((32, 32), dtype=np.uint8)
    image[(yy - 15.5) ** 2 + (xx - 15.5) ** 2 <= 10 ** 2] = 220
    return image


@pytest.fixture
def noisy_image():
    """Deterministic 24x20 noise image (non-square on purpose)."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(24, 20), dtype=np.uint8)


@pytest.fixture
def diagonal_image():
    """64x64 step edge along the main diagonal (bright above-right)."""
    yy, xx = np.mgrid[0:64, 0:64]
    return np.where(xx > yy, 255, 0).astype(np.uint8)


class ShuffledScheduler(RowScheduler):
    """Scheduler that hands out single-row bands in a shuffled order."""

    def __init__(self, seed: int = 0, band_rows: int = 1, workers: int = 4) -> None:
        super().__init__(workers=workers, band_rows=band_rows)
        self.seed = seed

    def bands(self, height):
        bands = super().bands(height)
        random.Random(self.seed).shuffle(bands)
        return bands


@pytest.fixture
def serial():
    """Whole image as one band on the calling thread."""
    return serial_scheduler()


@pytest.fixture
def shuffled():
    """Row-by-row bands in random order across several threads."""
    return ShuffledScheduler(seed=3)
