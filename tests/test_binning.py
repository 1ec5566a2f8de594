# ruff: noqa: PLR2004

import numpy as np
import pytest

from binning import Axis, build_pt_binning, pt_axis, step_for, vtxz_axis
from parameters import TaskConfig


def expected_step(a):
    if a < 1.0:
        return 0.1
    if a < 5.0:
        return 0.5
    if a < 10.0:
        return 1.0
    return 10.0


class TestBuildPtBinning:
    def test_default_range(self) -> None:
        edges = build_pt_binning(0.2, 10.0)
        assert edges[0] == 0.2
        assert edges[-1] >= 10.0
        assert all(b > a for a, b in zip(edges, edges[1:]))

    def test_step_law(self) -> None:
        edges = build_pt_binning(0.2, 10.0)
        for a, b in zip(edges, edges[1:]):
            assert b - a == pytest.approx(expected_step(a))

    def test_low_pt_only(self) -> None:
        edges = build_pt_binning(0.2, 1.0)
        assert edges == pytest.approx([0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0])

    def test_full_default_sequence(self) -> None:
        edges = build_pt_binning(0.2, 10.0)
        expected = ([0.2 + 0.1 * i for i in range(9)]
                    + [1.5 + 0.5 * i for i in range(8)]
                    + [6.0, 7.0, 8.0, 9.0, 10.0])
        assert edges == pytest.approx(expected)
        assert len(edges) == 22

    def test_last_edge_overshoots(self) -> None:
        # 10 -> 20 in one step, no clamping to 12
        edges = build_pt_binning(0.2, 12.0)
        assert edges[-2:] == pytest.approx([10.0, 20.0])

    def test_degenerate_range(self) -> None:
        assert build_pt_binning(5.0, 1.0) == [5.0]
        assert build_pt_binning(3.0, 3.0) == [3.0]

    def test_start_above_one(self) -> None:
        assert build_pt_binning(4.0, 6.0) == pytest.approx([4.0, 4.5, 5.0, 6.0])

    def test_rejects_non_positive_step(self) -> None:
        with pytest.raises(ValueError):
            build_pt_binning(0.2, 1.0, schedule=[(np.inf, 0.0)])


def test_step_for_thresholds() -> None:
    assert step_for(0.99) == 0.1
    assert step_for(1.0) == 0.5
    assert step_for(5.0) == 1.0
    assert step_for(10.0) == 10.0
    assert step_for(250.0) == 10.0


class TestAxis:
    def test_uniform_vtxz(self) -> None:
        axis = Axis.uniform(160, -20.0, 20.0)
        assert axis.nbins == 160
        assert axis.widths == pytest.approx(np.full(160, 0.25))
        assert axis.find_bin(-5.0) == 60

    def test_half_open_bins(self) -> None:
        axis = Axis.variable([0.0, 1.0, 3.0])
        assert axis.find_bin(0.0) == 0
        assert axis.find_bin(1.0) == 1
        assert axis.find_bin(2.999) == 1
        assert axis.find_bin(3.0) == 2   # overflow
        assert axis.find_bin(-0.1) == -1  # underflow

    def test_nan_goes_to_overflow(self) -> None:
        axis = Axis.variable([0.0, 1.0])
        assert axis.find_bin(float('nan')) == 1

    def test_centers(self) -> None:
        axis = Axis.variable([0.0, 1.0, 3.0])
        assert axis.centers == pytest.approx([0.5, 2.0])

    @pytest.mark.parametrize("edges", [[5.0], [], [1.0, 1.0], [2.0, 1.0], [0.0, np.inf]])
    def test_rejects_bad_edges(self, edges: list) -> None:
        with pytest.raises(ValueError):
            Axis.variable(edges)

    def test_degenerate_builder_output_rejected(self) -> None:
        with pytest.raises(ValueError):
            Axis.variable(build_pt_binning(5.0, 1.0))

    def test_edges_are_read_only(self) -> None:
        axis = Axis.variable([0.0, 1.0])
        with pytest.raises(ValueError):
            axis.edges[0] = 5.0

    def test_equality(self) -> None:
        assert Axis.variable(build_pt_binning(0.2, 10.0)) == Axis.variable(build_pt_binning(0.2, 10.0))
        assert Axis.uniform(10, 0, 1) != Axis.uniform(20, 0, 1)

    def test_equal_axes_hash_equal(self) -> None:
        # 0.1 + 0.2 != 0.3 in floating point, the axes still describe the same bins
        a = Axis.variable([0.0, 0.1 + 0.2, 1.0])
        b = Axis.variable([0.0, 0.3, 1.0])
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_edges_differing_beyond_rounding_are_not_equal(self) -> None:
        a = Axis.variable([0.0, 0.3, 1.0])
        b = Axis.variable([0.0, 0.3 + 1e-6, 1.0])
        assert a != b


class TestConfigAxes:
    def test_schedule_axis(self) -> None:
        axis = pt_axis(TaskConfig())
        assert axis.nbins == 21
        assert axis.low == 0.2

    def test_literal_edges_used_verbatim(self) -> None:
        bins = [0.2, 0.5, 1.0, 2.0, 5.0, 10.0]
        axis = pt_axis(TaskConfig(pt_bins=bins))
        assert axis.edges.tolist() == bins

    def test_vtxz_axis(self) -> None:
        axis = vtxz_axis(TaskConfig(vtx_z_nbins=40, vtx_z_range=(-10, 10)))
        assert axis.nbins == 40
        assert (axis.low, axis.high) == (-10.0, 10.0)
