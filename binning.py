import numpy as np

from parameters import *


# ══════════════════════════════════════════════════════════════════════════════
# Section 1: variable-width pT binning
# ══════════════════════════════════════════════════════════════════════════════

# Edges are rounded after every step so that e.g. 0.2 + 8*0.1 lands on 1.0
# and not on 0.9999999999999999, which would pick the wrong step.
EDGE_DECIMALS = 10


def step_for(value, schedule=PT_STEP_SCHEDULE):
    """Step to take after an edge at `value`."""
    for threshold, step in schedule:
        if value < threshold:
            return step
    return schedule[-1][1]


def build_pt_binning(pt_min, pt_max, schedule=PT_STEP_SCHEDULE):
    """
    Build variable-width pT bin edges.

    Starts at pt_min and keeps appending last + step(last) while the last
    edge is below pt_max. The step depends on the previous edge:

        edge <  1.0        -> 0.1
        1.0 <= edge < 5.0  -> 0.5
        5.0 <= edge < 10.0 -> 1.0
        edge >= 10.0       -> 10.0

    The last edge is not clamped and may overshoot pt_max.

    Parameters
    ----------
    pt_min, pt_max : float — requested pT range [GeV/c]
    schedule       : list of (threshold, step) — see PT_STEP_SCHEDULE

    Returns
    -------
    list of float — the bin edges. If pt_min >= pt_max this is just
    [pt_min], which is not a usable axis; Axis.variable() rejects it.
    """
    if any(step <= 0 for _, step in schedule):
        raise ValueError(f"non-positive step in schedule: {schedule}")

    edges = [float(pt_min)]
    while edges[-1] < pt_max:
        last = edges[-1]
        edges.append(round(last + step_for(last, schedule), EDGE_DECIMALS))
    return edges


# ══════════════════════════════════════════════════════════════════════════════
# Section 2: axis description
# ══════════════════════════════════════════════════════════════════════════════

class Axis:
    """
    Immutable, strictly increasing sequence of bin edges.

    Bins are half-open, [edges[i], edges[i+1]). Values below the first edge
    go to underflow (-1), values at or above the last edge to overflow
    (nbins).
    """

    def __init__(self, edges, title=''):
        edges = np.array(edges, dtype=np.float64)
        if edges.ndim != 1 or len(edges) < 2:
            raise ValueError(f"an axis needs at least two edges, got {edges.tolist()}")
        if not np.all(np.isfinite(edges)):
            raise ValueError(f"axis edges must be finite, got {edges.tolist()}")
        if not np.all(np.diff(edges) > 0):
            raise ValueError(f"axis edges must be strictly increasing, got {edges.tolist()}")
        edges.setflags(write=False)
        self._edges = edges
        self.title  = title

    @classmethod
    def variable(cls, edges, title=''):
        """Axis from literal edges, used verbatim."""
        return cls(edges, title)

    @classmethod
    def uniform(cls, nbins, low, high, title=''):
        """nbins equal-width bins on [low, high)."""
        if int(nbins) < 1:
            raise ValueError(f"nbins={nbins} must be >= 1")
        if not low < high:
            raise ValueError(f"uniform axis needs low < high, got [{low}, {high}]")
        return cls(np.linspace(low, high, int(nbins) + 1), title)

    @property
    def edges(self):
        return self._edges

    @property
    def nbins(self):
        return len(self._edges) - 1

    @property
    def low(self):
        return float(self._edges[0])

    @property
    def high(self):
        return float(self._edges[-1])

    @property
    def widths(self):
        return np.diff(self._edges)

    @property
    def centers(self):
        return 0.5 * (self._edges[:-1] + self._edges[1:])

    def find_bin(self, value):
        """Bin index of a scalar value, -1 for underflow, nbins for overflow."""
        return int(self.find_bins(np.asarray([value], dtype=np.float64))[0])

    def find_bins(self, values):
        """Vectorised find_bin. NaN values are reported as overflow."""
        values = np.asarray(values, dtype=np.float64)
        idx = np.searchsorted(self._edges, values, side='right') - 1
        idx = np.where(values >= self._edges[-1], self.nbins, idx)
        idx = np.where(np.isnan(values), self.nbins, idx)
        return idx

    def __eq__(self, other):
        if not isinstance(other, Axis):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def _key(self):
        # Same rounding as build_pt_binning, so equal axes hash equal.
        return tuple(np.round(self._edges, EDGE_DECIMALS).tolist())

    def __len__(self):
        return self.nbins

    def __repr__(self):
        return f"Axis(nbins={self.nbins}, range=[{self.low:g}, {self.high:g}], title={self.title!r})"


def pt_axis(config):
    """pT axis for a TaskConfig: literal pt_bins if set, else the step schedule."""
    if config.pt_bins is not None:
        return Axis.variable(config.pt_bins, PT_TITLE)
    return Axis.variable(build_pt_binning(config.pt_min, config.pt_max), PT_TITLE)


def vtxz_axis(config):
    low, high = config.vtx_z_range
    return Axis.uniform(config.vtx_z_nbins, low, high, VTXZ_TITLE)
