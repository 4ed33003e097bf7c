"""
Edge Tangent Flow Tests
=======================

Tests for the FlowField snapshot, ETF bootstrap and refinement.
"""

import numpy as np
import pytest
from pydantic import ValidationError

from linedraw.flow.etf import (
    EdgeTangentFlow,
    EtfState,
    compute_flow_field,
    initial_flow_field,
    magnitude_weight,
    refine_flow_field,
    window_offsets,
)
from linedraw.flow.tangent_field import FlowField, normalize_vectors, rotate_quarter_turn
from linedraw.observability.progress import Stage


def angle_between(a: FlowField, b: FlowField) -> np.ndarray:
    """Unsigned angle between two fields, ignoring orientation."""
    dot = np.abs(a.tx * b.tx + a.ty * b.ty).astype(np.float64)
    return np.arccos(np.clip(dot, 0.0, 1.0))


class TestFlowField:
    """Tests for the immutable field snapshot."""

    def test_zeros(self):
        """An empty field has the requested grid."""
        field = FlowField.zeros(3, 5)

        assert field.shape == (3, 5)
        assert field.tangent.shape == (3, 5, 2)
        assert not field.tangent.any()

    def test_arrays_are_read_only_copies(self):
        """Construction copies the inputs and freezes them."""
        tangent = np.zeros((2, 2, 2), dtype=np.float32)
        field = FlowField(tangent=tangent, magnitude=np.zeros((2, 2)))

        tangent[0, 0] = (1.0, 0.0)

        assert field.tx[0, 0] == 0.0
        with pytest.raises(ValueError):
            field.tangent[0, 0, 0] = 1.0

    def test_rejects_mismatched_grids(self):
        """tangent and magnitude must cover the same grid."""
        with pytest.raises(ValidationError):
            FlowField(tangent=np.zeros((2, 3, 2)), magnitude=np.zeros((3, 2)))

    def test_rejects_bad_tangent_shape(self):
        """tangent must carry two components."""
        with pytest.raises(ValidationError):
            FlowField(tangent=np.zeros((2, 2, 3)), magnitude=np.zeros((2, 2)))

    def test_normalize_keeps_zero_vectors(self):
        """Zero vectors are never divided."""
        out = normalize_vectors(np.array([[0.0, 0.0], [3.0, 4.0]]))

        np.testing.assert_allclose(out, [[0.0, 0.0], [0.6, 0.8]], atol=1e-7)

    def test_rotation(self):
        """(x, y) -> (y, -x)."""
        out = rotate_quarter_turn(np.array([[1.0, 0.0], [0.0, 1.0]]))

        np.testing.assert_array_equal(out, [[0.0, -1.0], [1.0, 0.0]])


class TestWeights:
    """Tests for the refinement window and weights."""

    def test_window_is_strictly_inside_radius(self):
        """Offsets satisfy dy^2 + dx^2 < r^2."""
        offsets = window_offsets(3)

        assert (0, 0) in offsets
        assert (2, 2) in offsets
        assert (0, 3) not in offsets
        assert all(dy * dy + dx * dx < 9 for dy, dx in offsets)

    def test_unit_radius_is_center_only(self):
        """Radius 1 only sees the pixel itself."""
        assert window_offsets(1) == [(0, 0)]

    def test_magnitude_weight_sign(self):
        """wm = (1 + tanh(mag(p) - mag(q))) / 2."""
        center = np.array([0.5])

        stronger = magnitude_weight(center, np.array([0.9]))
        weaker = magnitude_weight(center, np.array([0.1]))
        equal = magnitude_weight(center, np.array([0.5]))

        assert weaker[0] > equal[0] > stronger[0]
        assert equal[0] == pytest.approx(0.5)

    def test_magnitude_weight_value(self):
        """A neighbour much stronger than the center weighs little."""
        weight = magnitude_weight(np.array([0.2]), np.array([0.9]))

        assert weight[0] == pytest.approx((1.0 + np.tanh(-0.7)) / 2.0)
        assert weight[0] == pytest.approx(0.1978, abs=1e-4)


class TestBootstrap:
    """Tests for the initial field."""

    def test_flat_image_has_no_flow(self, flat_image):
        """No gradient anywhere, so every tangent is zero."""
        field = initial_flow_field(flat_image)

        assert not field.tangent.any()
        assert not field.magnitude.any()

    def test_vertical_edge_gives_vertical_tangents(self, edge_image):
        """Tangents along a vertical step point straight up or down."""
        field = initial_flow_field(edge_image)

        edge = field.tangent[:, 6:10]
        np.testing.assert_allclose(edge[..., 0], 0.0, atol=1e-6)
        np.testing.assert_allclose(np.abs(edge[..., 1]), 1.0, atol=1e-5)

    def test_flat_regions_stay_zero(self, edge_image):
        """Columns out of reach of the Sobel kernel carry no tangent."""
        field = initial_flow_field(edge_image)

        assert not field.tangent[:, :6].any()
        assert not field.tangent[:, 10:].any()

    def test_magnitude_normalized(self, disc_image):
        """Gradient magnitude spans [0, 1]."""
        field = initial_flow_field(disc_image)

        assert field.magnitude.min() == pytest.approx(0.0)
        assert field.magnitude.max() == pytest.approx(1.0)

    @pytest.mark.parametrize("fixture", ["disc_image", "noisy_image", "edge_image"])
    def test_unit_or_zero(self, fixture, request):
        """Every tangent has length 0 or 1."""
        field = initial_flow_field(request.getfixturevalue(fixture))

        assert field.is_unit()

    def test_input_not_modified(self, disc_image):
        """The source image is left untouched."""
        before = disc_image.copy()
        initial_flow_field(disc_image)

        np.testing.assert_array_equal(disc_image, before)


class TestRefinement:
    """Tests for ETF refinement passes."""

    @pytest.mark.parametrize("fixture", ["disc_image", "noisy_image"])
    def test_unit_or_zero_after_refinement(self, fixture, request):
        """Refinement keeps every tangent at length 0 or 1."""
        field = compute_flow_field(request.getfixturevalue(fixture), 3, 3)

        assert field.is_unit()

    def test_edge_stays_vertical(self, edge_image):
        """Consistent neighbours reinforce each other."""
        field = compute_flow_field(edge_image, kernel_radius=3, iterations=4)

        nonzero = field.norms > 0
        assert nonzero[:, 6:10].all()
        np.testing.assert_allclose(field.tx[nonzero], 0.0, atol=1e-6)

    def test_zero_tangent_stays_zero(self, edge_image):
        """A pixel without direction gains none from its neighbours."""
        field = compute_flow_field(edge_image, kernel_radius=3, iterations=2)

        assert not field.tangent[:, :6].any()

    def test_stable_under_more_passes(self, diagonal_image):
        """Along a clean edge, 5 and 10 passes agree."""
        five = compute_flow_field(diagonal_image, 3, 5)
        ten = compute_flow_field(diagonal_image, 3, 10)

        center = (slice(28, 36), slice(28, 36))
        on_edge = ten.norms[center] > 0
        assert on_edge.any()
        assert angle_between(five, ten)[center][on_edge].max() < 1e-3
        np.testing.assert_allclose(ten.tx[center][on_edge], ten.ty[center][on_edge], atol=1e-6)

    def test_magnitude_carried_over(self, disc_image):
        """Refinement only changes directions."""
        field = initial_flow_field(disc_image)
        refined = refine_flow_field(field, 3)

        np.testing.assert_array_equal(refined.magnitude, field.magnitude)

    def test_does_not_modify_snapshot(self, disc_image):
        """The previous snapshot survives a pass unchanged."""
        field = initial_flow_field(disc_image)
        before = field.tangent.copy()
        refine_flow_field(field, 3)

        np.testing.assert_array_equal(field.tangent, before)

    def test_order_independent(self, noisy_image, serial, shuffled):
        """Band order and size do not change the result."""
        field = initial_flow_field(noisy_image)

        expected = refine_flow_field(field, 3, serial)
        actual = refine_flow_field(field, 3, shuffled)

        np.testing.assert_array_equal(actual.tangent, expected.tangent)

    def test_rejects_zero_radius(self, disc_image):
        """Radius must be >= 1."""
        with pytest.raises(ValueError):
            refine_flow_field(initial_flow_field(disc_image), 0)

    def test_rejects_negative_iterations(self, disc_image):
        """Iteration count must be >= 0."""
        with pytest.raises(ValueError):
            compute_flow_field(disc_image, 3, -1)


class TestEngine:
    """Tests for the EdgeTangentFlow state machine."""

    def test_lifecycle(self, disc_image, serial):
        """EMPTY -> BOOTSTRAPPED -> REFINED."""
        engine = EdgeTangentFlow(scheduler=serial)
        assert engine.state == EtfState.EMPTY

        engine.bootstrap(disc_image)
        assert engine.state == EtfState.BOOTSTRAPPED
        assert engine.passes == 0

        engine.refine(3)
        engine.refine(3)
        assert engine.state == EtfState.REFINED
        assert engine.passes == 2

    def test_refine_before_bootstrap(self):
        """There is no field to refine yet."""
        with pytest.raises(RuntimeError):
            EdgeTangentFlow().refine(3)

    def test_bootstrap_resets(self, disc_image, edge_image):
        """Bootstrapping again starts from the new image."""
        engine = EdgeTangentFlow()
        engine.bootstrap(disc_image)
        engine.refine(3)

        field = engine.bootstrap(edge_image)

        assert engine.state == EtfState.BOOTSTRAPPED
        assert engine.passes == 0
        assert field.shape == edge_image.shape

    def test_progress_events(self, disc_image):
        """One event for bootstrap and one per refinement pass."""
        events = []
        compute_flow_field(disc_image, 3, 2, progress=events.append)

        assert [(e.stage, e.index, e.total) for e in events] == [
            (Stage.ETF_BOOTSTRAP, 1, 1),
            (Stage.ETF_REFINE, 1, 2),
            (Stage.ETF_REFINE, 2, 2),
        ]
