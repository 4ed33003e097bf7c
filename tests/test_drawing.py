"""
Pipeline Tests
==============

Tests for the full Coherent Line Drawing pipeline.
"""

import numpy as np
import pytest

from linedraw import CoherentLineDrawing, Options, generate
from linedraw.lines.drawing import FdogStage
from linedraw.observability.progress import Stage


class TestGenerate:
    """End-to-end scenarios."""

    def test_flat_image(self, flat_image, serial):
        """No gradient anywhere: zero flow and an empty mask."""
        result = CoherentLineDrawing(Options(tau=0.0), scheduler=serial).generate(flat_image)

        assert not result.flow.tangent.any()
        assert result.shape == (4, 4)
        assert not result.mask.any()

    def test_single_edge(self, edge_image, serial):
        """A vertical step produces a vertical line left of the step."""
        result = CoherentLineDrawing(Options(tau=0.9), scheduler=serial).generate(edge_image)

        np.testing.assert_allclose(result.flow.tx[:, 6:10], 0.0, atol=1e-6)
        assert (result.mask[:, 6:8] == 0).all()
        assert (result.mask[:, 8:] == 255).all()
        assert (result.mask[:, :3] == 255).all()

    def test_function_returns_mask(self, disc_image):
        """The module-level helper returns the final mask."""
        mask = generate(disc_image, Options(tau=0.9))

        assert mask.shape == disc_image.shape
        assert mask.dtype == np.uint8

    def test_deterministic_across_schedulers(self, disc_image, serial, shuffled):
        """Parallel and serial runs agree."""
        options = Options(tau=0.9, etf_iterations=2, fdog_iterations=1)

        expected = generate(disc_image, options, scheduler=serial)
        actual = generate(disc_image, options, scheduler=shuffled)

        np.testing.assert_array_equal(actual, expected)

    def test_input_not_modified(self, disc_image):
        """The caller's image is left untouched."""
        before = disc_image.copy()
        generate(disc_image, Options(fdog_iterations=2))

        np.testing.assert_array_equal(disc_image, before)

    def test_float_input(self, disc_image, serial):
        """Float luminance in [0, 1] matches the uint8 run."""
        options = Options(tau=0.9)

        from_uint8 = generate(disc_image, options, scheduler=serial)
        from_float = generate(disc_image.astype(np.float32) / 255.0, options, scheduler=serial)

        np.testing.assert_array_equal(from_float, from_uint8)

    @pytest.mark.parametrize("bad", [np.zeros((0, 0), dtype=np.uint8), np.zeros((4, 4, 3), dtype=np.uint8)])
    def test_rejects_non_luminance(self, bad):
        """Input must be a non-empty 2-D image."""
        with pytest.raises(ValueError):
            generate(bad)


class TestIterations:
    """Tests for the reseed loop."""

    def test_passes_counted(self, disc_image):
        """One initial pass plus one per reseed iteration."""
        result = CoherentLineDrawing(Options(fdog_iterations=3)).generate(disc_image)

        assert result.passes == 4

    def test_iterations_binary(self, disc_image):
        """Reseeded passes still produce a binary mask."""
        mask = generate(disc_image, Options(tau=0.9, fdog_iterations=2))

        assert set(np.unique(mask)) <= {0, 255}

    def test_ends_done(self, disc_image):
        """The stage machine finishes in DONE."""
        pipeline = CoherentLineDrawing(Options(fdog_iterations=1))
        assert pipeline.stage == FdogStage.SEEDED

        pipeline.generate(disc_image)

        assert pipeline.stage == FdogStage.DONE


class TestPostProcess:
    """Tests for optional outputs."""

    def test_anti_alias_softens(self, disc_image):
        """Anti-aliasing introduces intermediate gray levels."""
        mask = generate(disc_image, Options(tau=0.9, anti_alias=True, blur_size=5))

        assert mask.dtype == np.uint8
        assert ((mask > 0) & (mask < 255)).any()

    def test_flow_preview(self, disc_image):
        """visualize_flow attaches a preview of the same size."""
        result = CoherentLineDrawing(Options(visualize_flow=True), preview_seed=1).generate(disc_image)

        assert result.flow_preview is not None
        assert result.flow_preview.shape == disc_image.shape
        assert result.flow_preview.dtype == np.uint8

    def test_no_preview_by_default(self, disc_image):
        """The preview is only built on request."""
        assert CoherentLineDrawing().generate(disc_image).flow_preview is None


class TestProgress:
    """Tests for progress reporting."""

    def test_event_sequence(self, disc_image):
        """Events arrive in stage order with pass counters."""
        events = []
        options = Options(etf_iterations=2, fdog_iterations=1, anti_alias=True)

        CoherentLineDrawing(options, progress=events.append).generate(disc_image)

        assert [(e.stage, e.index, e.total) for e in events] == [
            (Stage.ETF_BOOTSTRAP, 1, 1),
            (Stage.ETF_REFINE, 1, 2),
            (Stage.ETF_REFINE, 2, 2),
            (Stage.FDOG_PASS, 1, 2),
            (Stage.FDOG_PASS, 2, 2),
            (Stage.POSTPROCESS, 1, 1),
        ]

    def test_elapsed_non_decreasing(self, disc_image):
        """Elapsed time never runs backwards within a stage group."""
        events = []
        CoherentLineDrawing(Options(fdog_iterations=2), progress=events.append).generate(disc_image)

        fdog = [e.elapsed for e in events if e.stage == Stage.FDOG_PASS]
        assert fdog == sorted(fdog)
