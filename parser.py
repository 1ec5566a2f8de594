import fnmatch
import logging
import os
import re
from typing import Dict

import numpy as np
import h5py

import kinematics as kn
from analyser import make_tracks

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# Event files
# ══════════════════════════════════════════════════════════════════════════════
#
# Layout:
#   /collisions/posZ        float64 (n_collisions,)
#   /tracks/collisionId     int     (n_tracks,)  index into /collisions
#   /tracks/pt, /tracks/eta float64 (n_tracks,)  [optional /tracks/phi]
# or, instead of pt/eta, the raw momenta /tracks/px, /tracks/py, /tracks/pz.

def read_events(filename):
    """
    Yield (vtx_z, tracks) for every collision in an event file.

    Collisions without tracks are still yielded, with an empty track array,
    so they enter the vertex-Z distribution.
    """
    with h5py.File(filename, 'r') as f:
        for path in ('collisions/posZ', 'tracks/collisionId'):
            if path not in f:
                raise KeyError(f"'{path}' not found in {filename}")

        pos_z   = f['collisions/posZ'][:]
        coll_id = f['tracks/collisionId'][:].astype(np.int64)
        trk     = f['tracks']

        if 'pt' in trk and 'eta' in trk:
            pt  = trk['pt'][:]
            eta = trk['eta'][:]
            phi = trk['phi'][:] if 'phi' in trk else None
        elif all(k in trk for k in ('px', 'py', 'pz')):
            pt, phi, eta = kn.get_kinematics(trk['px'][:], trk['py'][:], trk['pz'][:])
        else:
            raise KeyError(f"{filename}: /tracks needs either pt and eta "
                           f"or px, py and pz. Found: {list(trk.keys())}")

    n_coll = len(pos_z)
    if len(coll_id) and (coll_id.min() < 0 or coll_id.max() >= n_coll):
        raise ValueError(f"{filename}: track collisionId out of range "
                         f"[0, {n_coll}) — got [{coll_id.min()}, {coll_id.max()}]")
    if n_coll == 0:
        logger.warning("no collisions in %s", filename)

    tracks = make_tracks(pt, eta, phi)

    # Group tracks by collision without assuming they are sorted.
    order  = np.argsort(coll_id, kind='stable')
    bounds = np.searchsorted(coll_id[order], np.arange(n_coll + 1))
    for icoll in range(n_coll):
        sel = order[bounds[icoll]:bounds[icoll + 1]]
        yield float(pos_z[icoll]), tracks[sel]


def write_events(filename, pos_z, tracks, collision_ids):
    """
    Write collisions and tracks in the layout read_events() expects.

    tracks is a structured array with 'pt', 'eta' and optionally 'phi'.
    """
    collision_ids = np.asarray(collision_ids, dtype=np.int64)
    if len(collision_ids) != len(tracks):
        raise ValueError(f"{len(tracks)} tracks but {len(collision_ids)} collision ids")

    with h5py.File(filename, 'w') as f:
        f.create_dataset('collisions/posZ', data=np.asarray(pos_z, dtype=np.float64))
        f.create_dataset('tracks/collisionId', data=collision_ids)
        for key in tracks.dtype.names:
            f.create_dataset(f'tracks/{key}', data=tracks[key],
                             compression='gzip', compression_opts=4)


class Parser:
    """
    Collect the input files of one processing step.

    base_path may hold the files directly, or job folders named
    out_<campaignID>_<clusterID>_<jobID> with exactly one matching file
    each (the layout a grid submission leaves behind). Both can be mixed.

    Produces a dictionary:
        file_id -> {jobID, folder_path, h5_path}
    """

    FOLDER_PATTERN = re.compile(r"^out_(\d+)_(\d+)_(\d+)$")

    def __init__(self, base_path: str, pattern: str = "*.h5"):
        if not os.path.isdir(base_path):
            raise FileNotFoundError(f"Input directory not found: {base_path}")
        self.base_path = base_path
        self.pattern   = pattern
        self.files: Dict[int, Dict[str, object]] = {}
        self.scan()

    def scan(self):
        self.files.clear()
        for entry in sorted(os.scandir(self.base_path), key=lambda e: e.name):
            if entry.is_file() and fnmatch.fnmatch(entry.name, self.pattern):
                self._register(None, self.base_path, entry.path)
            elif entry.is_dir():
                match = self.FOLDER_PATTERN.match(entry.name)
                if match:
                    job_id = int(match.group(3))
                    self._register(job_id, entry.path, self.find_h5_file(entry.path))
        logger.debug("indexed %d files matching %s in %s",
                     len(self.files), self.pattern, self.base_path)

    def _register(self, job_id, folder, h5_path):
        file_id = len(self.files)
        self.files[file_id] = {
            "jobID": file_id if job_id is None else job_id,
            "folder_path": folder,
            "h5_path": h5_path,
        }

    def find_h5_file(self, folder_path):
        """
        The one file in a job folder matching self.pattern.

        A job folder with no match means the job never finished, one with
        several matches is ambiguous; both are errors.
        """
        matches = sorted(fnmatch.filter(os.listdir(folder_path), self.pattern))
        if not matches:
            raise FileNotFoundError(f"no file matching {self.pattern} in {folder_path}")
        if len(matches) > 1:
            raise ValueError(f"{folder_path}: expected one file matching "
                             f"{self.pattern}, found {matches}")
        return os.path.join(folder_path, matches[0])

    def get_all_h5_paths(self):
        return [info["h5_path"] for info in self.files.values()]

    def __len__(self):
        return len(self.files)
