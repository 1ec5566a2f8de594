import numpy as np
# Track kinematics and the event / track selections.


def get_kinematics(px, py, pz):
    px, py, pz = (np.asarray(a, dtype=np.float64) for a in (px, py, pz))

    pt  = np.sqrt(px**2 + py**2)
    pv  = np.sqrt(px**2 + py**2 + pz**2)
    phi = np.arctan2(py, px)
    # Tracks exactly along the beam axis have no finite eta; they get NaN
    # and therefore fail any eta cut.
    with np.errstate(divide='ignore', invalid='ignore'):
        safe = np.where(pv - pz > 0, (pv + pz) / (pv - pz), np.inf)
        eta  = np.where((safe > 0) & np.isfinite(safe), 0.5 * np.log(safe), np.nan)

    return pt, phi, eta


def accept_event(vtx_z, vtx_z_cut):
    """|z_vtx| < vtx_z_cut. A cut of None accepts every event."""
    if vtx_z_cut is None:
        return True
    return bool(abs(vtx_z) < vtx_z_cut)


def track_mask(pt, eta, pt_min, pt_max, eta_cut):
    """
    Parameters
    ----------
    pt, eta        : np.ndarray — track kinematics
    pt_min, pt_max : float      — keep pt_min < pT < pt_max (strict)
    eta_cut        : float      — keep |eta| < eta_cut, None to skip

    Returns
    -------
    mask : np.ndarray of bool
    """
    pt  = np.asarray(pt,  dtype=np.float64)
    eta = np.asarray(eta, dtype=np.float64)

    mask = (pt > pt_min) & (pt < pt_max)
    if eta_cut is not None:
        mask &= np.abs(eta) < eta_cut
    return mask


def accept_track(pt, eta, pt_min, pt_max, eta_cut):
    return bool(track_mask([pt], [eta], pt_min, pt_max, eta_cut)[0])


def select_tracks(tracks, config):
    """
    Keep the tracks of a structured array (fields 'pt', 'eta') that pass
    the track selection of a TaskConfig.
    """
    if len(tracks) == 0:
        return tracks
    mask = track_mask(tracks['pt'], tracks['eta'],
                      config.pt_min, config.pt_max, config.eta_cut)
    return tracks[mask]
