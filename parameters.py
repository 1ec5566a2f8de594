import numpy as np
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Tuple
# Default cuts and bin definitions for the pT / vertex-Z spectrum task.
# Everything here can be overridden through TaskConfig or the command line.

# ── track selection ────────────────────────────────────────────────────────
PT_MIN   = 0.2      # lower pT bound [GeV/c]
PT_MAX   = 10.0     # upper pT bound [GeV/c]
ETA_CUT  = 0.8      # |eta| < ETA_CUT, ALICE midrapidity

# ── event selection ────────────────────────────────────────────────────────
VTXZ_CUT = 10.0     # |z_vtx| < VTXZ_CUT [cm]

# ── vertex-Z histogram: 160 bins of 0.25 cm ───────────────────────────────
VTXZ_NBINS = 160
VTXZ_RANGE = (-20.0, 20.0)

# ── pT step schedule ───────────────────────────────────────────────────────
# (upper threshold, step): the step after an edge is the one of the first
# threshold the edge lies below. Fine bins at low pT where the statistics are,
# coarse bins in the tail.
PT_STEP_SCHEDULE = [
    (1.0,    0.1),
    (5.0,    0.5),
    (10.0,   1.0),
    (np.inf, 10.0),
]

PT_TITLE   = r'$p_{T}$ (GeV/$c$)'
VTXZ_TITLE = r'$z$ (cm)'

# Histogram names as they appear in the output files.
H_PT   = 'hPt'
H_VTXZ = 'hVtxZ'


class ConfigError(ValueError):
    """Raised when the task configuration cannot produce valid histograms."""


@dataclass
class TaskConfig:
    """
    Explicit configuration for SpectrumTask.

    eta_cut / vtx_z_cut set to None switch the corresponding filter off.
    pt_bins, when given, is used verbatim as the pT axis instead of the
    step schedule; pt_min / pt_max still define the track pT window.
    """
    pt_min:      float = PT_MIN
    pt_max:      float = PT_MAX
    eta_cut:     Optional[float] = ETA_CUT
    vtx_z_cut:   Optional[float] = VTXZ_CUT
    pt_bins:     Optional[List[float]] = None
    vtx_z_nbins: int = VTXZ_NBINS
    vtx_z_range: Tuple[float, float] = field(default=VTXZ_RANGE)

    def __post_init__(self):
        if self.pt_bins is not None:
            self.pt_bins = [float(x) for x in np.ravel(self.pt_bins)]
        self.vtx_z_range = tuple(float(x) for x in self.vtx_z_range)

    def validate(self):
        """
        Fail fast on anything that would produce a degenerate axis or an
        empty selection. Returns self so calls can be chained.
        """
        if not np.isfinite(self.pt_min) or not np.isfinite(self.pt_max):
            raise ConfigError(f"invalid axis bounds: pt_min={self.pt_min}, "
                              f"pt_max={self.pt_max} must be finite")
        if self.pt_min <= 0:
            raise ConfigError(f"invalid axis bounds: pt_min={self.pt_min} "
                              f"must be > 0")
        if self.pt_min >= self.pt_max:
            raise ConfigError(f"invalid axis bounds: pt_min={self.pt_min} "
                              f">= pt_max={self.pt_max}")

        if self.eta_cut is not None and self.eta_cut <= 0:
            raise ConfigError(f"eta_cut={self.eta_cut} must be > 0")
        if self.vtx_z_cut is not None and self.vtx_z_cut <= 0:
            raise ConfigError(f"vtx_z_cut={self.vtx_z_cut} must be > 0")

        if self.pt_bins is not None:
            bins = np.asarray(self.pt_bins, dtype=np.float64)
            if bins.ndim != 1 or len(bins) < 2:
                raise ConfigError(f"invalid axis bounds: pt_bins needs at "
                                  f"least two edges, got {list(self.pt_bins)}")
            if not np.all(np.diff(bins) > 0):
                raise ConfigError(f"invalid axis bounds: pt_bins must be "
                                  f"strictly increasing, got {list(self.pt_bins)}")

        if int(self.vtx_z_nbins) < 1:
            raise ConfigError(f"vtx_z_nbins={self.vtx_z_nbins} must be >= 1")
        if len(self.vtx_z_range) != 2:
            raise ConfigError(f"vtx_z_range={self.vtx_z_range} must be (low, high)")
        low, high = self.vtx_z_range
        if not low < high:
            raise ConfigError(f"invalid axis bounds: vtx_z_range={self.vtx_z_range}")

        return self

    def as_dict(self):
        """Flat dict of the configuration, for HDF5 attributes."""
        d = asdict(self)
        d['vtx_z_range'] = list(self.vtx_z_range)
        return d

    @classmethod
    def from_dict(cls, d):
        d = dict(d)
        if d.get('vtx_z_range') is not None:
            d['vtx_z_range'] = tuple(d['vtx_z_range'])
        return cls(**d)
