"""
Copyright (c) 2026, Oscar Garcia-Montero
For private use only. All rights reserved.

====================
Per-node spectrum extraction.

Reads one event file (collisions + tracks), applies the event selection
|z_vtx| < vtxz-cut and the track selection |eta| < eta-cut,
pt-min < pT < pt-max, and fills

    hPt   : pT spectrum on a variable-width axis
            (0.1 GeV/c steps below 1, 0.5 up to 5, 1 up to 10, 10 beyond)
    hVtxZ : vertex z, 160 bins in [-20, 20] cm

The histograms and the configuration used are written to
<output_dir>/spectra_<job_id:04d>.h5. Files from many nodes are combined
afterwards with post_process.py.

Usage
-----
    python extractor.py <event_file> <output_dir> [--job-id N]
                        [--pt-min 0.2] [--pt-max 10] [--eta-cut 0.8]
                        [--vtxz-cut 10] [--pt-bins 0.2,0.5,1,2,5,10]
"""

import argparse
import logging
import os
import sys

from parameters import *
import parser as pa
import analyser as an


def _float_or_none(text):
    if text.lower() in ('none', 'off'):
        return None
    return float(text)


def _edge_list(text):
    try:
        return [float(x) for x in text.split(',') if x.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma separated numbers, got '{text}'")


def build_arg_parser():
    ap = argparse.ArgumentParser(description="Fill pT and vertex-Z spectra from one event file")
    ap.add_argument("event_file", help="HDF5 file with /collisions and /tracks")
    ap.add_argument("output_dir", help="directory for the spectra HDF5 file")
    ap.add_argument("--job-id", type=int, default=0, help="ID used in the output file name")
    ap.add_argument("--pt-min", type=float, default=PT_MIN, help="Minimum pt (GeV/c)")
    ap.add_argument("--pt-max", type=float, default=PT_MAX, help="Maximum pt (GeV/c)")
    ap.add_argument("--eta-cut", type=_float_or_none, default=ETA_CUT,
                    help="|eta| cut, 'none' to disable")
    ap.add_argument("--vtxz-cut", type=_float_or_none, default=VTXZ_CUT,
                    help="|z_vtx| cut (cm), 'none' to disable")
    ap.add_argument("--pt-bins", type=_edge_list, default=None,
                    help="literal pT bin edges, overrides the step schedule")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def config_from_args(args):
    return TaskConfig(
        pt_min    = args.pt_min,
        pt_max    = args.pt_max,
        eta_cut   = args.eta_cut,
        vtx_z_cut = args.vtxz_cut,
        pt_bins   = args.pt_bins,
    )


def main(argv=None):
    """
    Main entry point for per-node execution. Returns the output file path.
    """
    ap   = build_arg_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    tag = f"[Job {args.job_id}]"
    if not os.path.isfile(args.event_file):
        ap.error(f"event file not found: {args.event_file}")

    task = an.SpectrumTask(config_from_args(args))
    try:
        task.init()
    except ConfigError as err:
        ap.error(str(err))

    os.makedirs(args.output_dir, exist_ok=True)
    output_file = os.path.join(args.output_dir, f'spectra_{args.job_id:04d}.h5')

    print(f"{tag} Reading {args.event_file} ...")
    task.run(pa.read_events(args.event_file))
    print(f"{tag} {task.n_accepted}/{task.n_seen} events accepted, "
          f"{task.n_tracks_accepted} tracks filled")

    an.sanity_check(task.registry)

    print(f"{tag} Writing {output_file} ...")
    an.save_hdf5(
        filename = output_file,
        registry = task.registry,
        config   = task.config,
        metadata = {
            'job_id':            args.job_id,
            'event_file':        os.path.abspath(args.event_file),
            'n_events':          task.n_seen,
            'n_events_accepted': task.n_accepted,
            'n_tracks_accepted': task.n_tracks_accepted,
        },
    )
    print(f"{tag} Done. Output: {output_file}")
    return output_file


if __name__ == "__main__":
    main(sys.argv[1:])
