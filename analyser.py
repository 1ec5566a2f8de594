import logging

import numpy as np
import h5py

from parameters import *
import binning as bn
import kinematics as kn
from histograms import Histogram1D, HistogramRegistry

logger = logging.getLogger(__name__)

TRACK_DTYPE = np.dtype([('pt', np.float64), ('eta', np.float64), ('phi', np.float64)])


def make_tracks(pt, eta, phi=None):
    """Structured track array with fields pt, eta, phi (phi defaults to 0)."""
    pt  = np.atleast_1d(np.asarray(pt,  dtype=np.float64))
    eta = np.atleast_1d(np.asarray(eta, dtype=np.float64))
    if pt.shape != eta.shape:
        raise ValueError(f"pt and eta have different shapes: {pt.shape} vs {eta.shape}")

    tracks = np.zeros(len(pt), dtype=TRACK_DTYPE)
    tracks['pt']  = pt
    tracks['eta'] = eta
    if phi is not None:
        tracks['phi'] = np.asarray(phi, dtype=np.float64)
    return tracks


# ══════════════════════════════════════════════════════════════════════════════
# Section 1: the spectrum task
# ══════════════════════════════════════════════════════════════════════════════

class SpectrumTask:
    """
    Fills the pT spectrum (hPt) and the vertex-Z distribution (hVtxZ).

    Usage:
        task = SpectrumTask(TaskConfig(pt_min=0.2, pt_max=10.0))
        task.init()
        for vtx_z, tracks in events:
            task.process(vtx_z, tracks)

    The histograms live in task.registry; nothing is kept globally, so
    tasks that ran on disjoint event sets can be combined with merge().
    """

    def __init__(self, config=None):
        self.config   = config if config is not None else TaskConfig()
        self.registry = None

        self.n_seen            = 0
        self.n_accepted        = 0
        self.n_tracks_accepted = 0

    @property
    def ready(self):
        return self.registry is not None

    def init(self):
        """
        Validate the configuration, build the axes and declare the
        histograms. Must be called exactly once, before process().
        """
        if self.ready:
            raise RuntimeError("SpectrumTask.init() called twice")

        self.config.validate()
        pt_ax   = bn.pt_axis(self.config)
        vtxz_ax = bn.vtxz_axis(self.config)

        registry = HistogramRegistry('HistRegistry')
        registry.add(H_PT,   ';' + PT_TITLE,   pt_ax)
        registry.add(H_VTXZ, ';' + VTXZ_TITLE, vtxz_ax)
        self.registry = registry

        logger.info("pT axis: %d bins in [%g, %g]", pt_ax.nbins, pt_ax.low, pt_ax.high)
        return registry

    def process(self, vtx_z, tracks):
        """
        Per-event fill.

        Parameters
        ----------
        vtx_z  : float      — collision vertex z [cm]
        tracks : np.ndarray — structured array with at least 'pt' and 'eta'

        Returns
        -------
        bool — whether the event passed the event selection. Rejected
        events leave every histogram untouched.
        """
        if not self.ready:
            raise RuntimeError("SpectrumTask.process() called before init()")

        self.n_seen += 1
        if not kn.accept_event(vtx_z, self.config.vtx_z_cut):
            return False

        self.n_accepted += 1
        self.registry.fill(H_VTXZ, vtx_z)

        selected = kn.select_tracks(tracks, self.config)
        if len(selected) > 0:
            self.registry.fill_many(H_PT, selected['pt'])
            self.n_tracks_accepted += len(selected)
        return True

    def run(self, events):
        """Process an iterable of (vtx_z, tracks) pairs, return the registry."""
        if not self.ready:
            self.init()
        for vtx_z, tracks in events:
            self.process(vtx_z, tracks)
        return self.registry

    def merge(self, other):
        """Fold another task, run with the same configuration, into this one."""
        if not (self.ready and other.ready):
            raise RuntimeError("both tasks must be initialised before merging")
        if self.config.as_dict() != other.config.as_dict():
            raise ValueError("cannot merge tasks with different configurations")
        self.registry.merge(other.registry)
        self.n_seen            += other.n_seen
        self.n_accepted        += other.n_accepted
        self.n_tracks_accepted += other.n_tracks_accepted
        return self


# ══════════════════════════════════════════════════════════════════════════════
# Section 2: HDF5 output
# ══════════════════════════════════════════════════════════════════════════════

def _store_attr(attrs, key, value):
    # HDF5 attributes cannot hold None; store it as an empty array.
    if value is None:
        attrs[key] = np.array([], dtype=np.float64)
    else:
        attrs[key] = np.asarray(value) if isinstance(value, (list, tuple)) else value


def _read_attr(attrs, key):
    value = attrs[key]
    if isinstance(value, np.ndarray):
        if value.size == 0:
            return None
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return value


def save_hdf5(filename, registry, config, metadata=None):
    """
    Write histograms and run configuration to an HDF5 file.

    File structure
    --------------
    /config/
        attrs: pt_min, pt_max, eta_cut, vtx_z_cut, pt_bins, vtx_z_nbins,
               vtx_z_range (None stored as an empty array)
    /metadata/
        attrs: anything passed in `metadata` (job id, event counts, ...)
    /histograms/<name>/
        attrs: title, underflow, overflow
        edges  : float64 (nbins + 1,)
        counts : int64   (nbins,)
    """
    with h5py.File(filename, 'w') as f:

        cfg = f.create_group('config')
        for key, value in config.as_dict().items():
            _store_attr(cfg.attrs, key, value)

        meta = f.create_group('metadata')
        for key, value in (metadata or {}).items():
            _store_attr(meta.attrs, key, value)

        for name, hist in registry.items():
            h   = hist.to_dict()
            grp = f.create_group(f'histograms/{name}')
            grp.attrs['title']     = h['title']
            grp.attrs['underflow'] = h['underflow']
            grp.attrs['overflow']  = h['overflow']
            grp.create_dataset('edges',  data=np.asarray(h['edges'], dtype=np.float64))
            grp.create_dataset('counts', data=np.asarray(h['counts'], dtype=np.int64),
                               compression='gzip', compression_opts=4)


def load_hdf5(filename):
    """
    Inverse of save_hdf5().

    Returns
    -------
    registry : HistogramRegistry
    config   : TaskConfig
    metadata : dict
    """
    with h5py.File(filename, 'r') as f:
        if 'histograms' not in f:
            raise KeyError(f"no /histograms group in {filename}")

        config   = TaskConfig.from_dict({k: _read_attr(f['config'].attrs, k)
                                         for k in f['config'].attrs})
        metadata = {k: _read_attr(f['metadata'].attrs, k)
                    for k in f['metadata'].attrs} if 'metadata' in f else {}

        registry = HistogramRegistry('HistRegistry')
        for name in f['histograms']:
            grp  = f[f'histograms/{name}']
            title = grp.attrs['title']
            if isinstance(title, bytes):
                title = title.decode()
            hist = registry.add(name, title, bn.Axis(grp['edges'][:]))
            hist.counts    = grp['counts'][:].astype(np.int64)
            hist.underflow = int(grp.attrs['underflow'])
            hist.overflow  = int(grp.attrs['overflow'])

    return registry, config, metadata


# ══════════════════════════════════════════════════════════════════════════════
# Section 3: Sanity checks
# ══════════════════════════════════════════════════════════════════════════════

def sanity_check(registry):
    """
    Print basic diagnostics after a run.

    Checks performed:
    - Entries, underflow and overflow per histogram
    - Mean vertex z (should be close to 0 cm)
    - Mean pT inside the axis (should be ~0.5-0.7 GeV/c for min-bias pp)
    """
    print("=" * 55)
    print("Sanity check — filled histograms")
    for name, hist in registry.items():
        print(f"  {name:8s} entries={hist.entries:<10d} "
              f"underflow={hist.underflow:<6d} overflow={hist.overflow}")

    if H_VTXZ in registry:
        mean_z = _mean(registry[H_VTXZ])
        print(f"  <z_vtx> (cm)       : {mean_z:.3f}  (expect ~0)")
    if H_PT in registry:
        mean_pt = _mean(registry[H_PT])
        print(f"  <pT> (GeV/c)       : {mean_pt:.3f}  (expect 0.5—0.7)")
    print("=" * 55)


def _mean(hist):
    n = hist.counts.sum()
    if n == 0:
        return float('nan')
    return float((hist.counts * hist.axis.centers).sum() / n)
