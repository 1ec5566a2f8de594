import logging

import numpy as np

from binning import Axis

logger = logging.getLogger(__name__)


class Histogram1D:
    """
    One-dimensional counting histogram.

    counts[i] holds the number of fills in [edges[i], edges[i+1]); values
    outside the axis are kept in underflow / overflow so nothing is lost
    when files from several nodes are merged.
    """

    def __init__(self, name, axis, title=''):
        if not isinstance(axis, Axis):
            axis = Axis(axis)
        self.name      = name
        self.axis      = axis
        self.title     = title
        self.counts    = np.zeros(axis.nbins, dtype=np.int64)
        self.underflow = 0
        self.overflow  = 0

    @property
    def edges(self):
        return self.axis.edges

    @property
    def entries(self):
        """Total number of fills, including under/overflow."""
        return int(self.counts.sum()) + self.underflow + self.overflow

    def fill(self, value):
        ib = self.axis.find_bin(value)
        if ib < 0:
            self.underflow += 1
            logger.debug("%s: %g below axis range, underflow", self.name, value)
        elif ib >= self.axis.nbins:
            self.overflow += 1
            logger.debug("%s: %g above axis range, overflow", self.name, value)
        else:
            self.counts[ib] += 1

    def fill_many(self, values):
        """Fill every value once. Same bin convention as fill()."""
        values = np.asarray(values, dtype=np.float64).ravel()
        if len(values) == 0:
            return
        nb  = self.axis.nbins
        idx = self.axis.find_bins(values)

        n_under = int(np.count_nonzero(idx < 0))
        n_over  = int(np.count_nonzero(idx >= nb))
        if n_under or n_over:
            logger.debug("%s: %d underflow, %d overflow out of %d values",
                         self.name, n_under, n_over, len(values))
        self.underflow += n_under
        self.overflow  += n_over
        inside = idx[(idx >= 0) & (idx < nb)]
        if len(inside) > 0:
            self.counts += np.bincount(inside, minlength=nb).astype(np.int64)

    def merge(self, other):
        """Add the counts of `other` into this histogram, in place."""
        if self.axis != other.axis:
            raise ValueError(f"cannot merge '{self.name}' and '{other.name}': "
                             f"axes differ ({self.axis} vs {other.axis})")
        self.counts    += other.counts
        self.underflow += other.underflow
        self.overflow  += other.overflow
        return self

    def to_dict(self):
        return {
            'name':      self.name,
            'title':     self.title,
            'edges':     self.axis.edges.tolist(),
            'counts':    self.counts.tolist(),
            'underflow': self.underflow,
            'overflow':  self.overflow,
        }

    def __repr__(self):
        return f"Histogram1D({self.name!r}, nbins={self.axis.nbins}, entries={self.entries})"


class HistogramRegistry:
    """
    Named collection of histograms owned by one task instance.
    """

    def __init__(self, name='HistRegistry'):
        self.name = name
        self._hists = {}

    def add(self, name, title, axis):
        if name in self._hists:
            raise ValueError(f"histogram '{name}' already registered in {self.name}")
        hist = Histogram1D(name, axis, title)
        self._hists[name] = hist
        return hist

    def get(self, name):
        if name not in self._hists:
            raise KeyError(f"histogram '{name}' not found in {self.name}. "
                           f"Available: {self.names()}")
        return self._hists[name]

    def fill(self, name, value):
        self.get(name).fill(value)

    def fill_many(self, name, values):
        self.get(name).fill_many(values)

    def names(self):
        return list(self._hists.keys())

    def items(self):
        return self._hists.items()

    def merge(self, other):
        """Add every histogram of `other` into the matching one here."""
        if set(self.names()) != set(other.names()):
            raise ValueError(f"cannot merge registries with different histograms: "
                             f"{sorted(self.names())} vs {sorted(other.names())}")
        for name, hist in other.items():
            self._hists[name].merge(hist)
        logger.debug("merged %d histograms from %s into %s",
                     len(other), other.name, self.name)
        return self

    def __getitem__(self, name):
        return self.get(name)

    def __contains__(self, name):
        return name in self._hists

    def __len__(self):
        return len(self._hists)

    def __iter__(self):
        return iter(self._hists)
