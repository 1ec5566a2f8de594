"""
Merge the per-node spectra files written by extractor.py and draw the
sanity plots.

Usage
-----
    python post_process.py <input_dir> <output_dir>

<input_dir> is scanned for spectra_*.h5 files, either directly or inside
out_<campaign>_<cluster>_<job> job folders (one file per folder). The
merged histograms go to <output_dir>/merged.h5 and the plots to
<output_dir>/SanityPlots.
"""

import os
import sys

import analyser as an
import parser as pa
import sanityplots as sanity

SPECTRA_PATTERN = "spectra_*.h5"


def merge_files(filenames):
    """
    Add up the histograms of several spectra files.

    All files must have been produced with the same configuration, otherwise
    the bins would not line up.

    Returns
    -------
    registry : HistogramRegistry — merged histograms
    config   : TaskConfig        — the common configuration
    metadata : dict              — summed event / track counters
    """
    filenames = sorted(filenames)
    if len(filenames) == 0:
        raise FileNotFoundError("no spectra files to merge")

    merged = config = None
    totals = {'n_files': 0, 'n_events': 0, 'n_events_accepted': 0, 'n_tracks_accepted': 0}

    for ifile, fname in enumerate(filenames):
        registry, this_config, meta = an.load_hdf5(fname)
        if merged is None:
            merged, config = registry, this_config
        else:
            if this_config.as_dict() != config.as_dict():
                raise ValueError(
                    f"configuration mismatch: {fname} has {this_config.as_dict()}, "
                    f"expected {config.as_dict()} (from {filenames[0]})"
                )
            merged.merge(registry)

        totals['n_files'] += 1
        for key in ('n_events', 'n_events_accepted', 'n_tracks_accepted'):
            totals[key] += int(meta.get(key, 0))

        if (ifile + 1) % 50 == 0 or (ifile + 1) == len(filenames):
            print(f"  {ifile+1}/{len(filenames)} files merged, "
                  f"{totals['n_events_accepted']} accepted events ...")

    return merged, config, totals


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 2:
        print("Usage: python post_process.py <input_dir> <output_dir>")
        sys.exit(1)

    input_dir  = argv[0]
    output_dir = argv[1]

    files = pa.Parser(input_dir, pattern=SPECTRA_PATTERN).get_all_h5_paths()
    print(f"Found {len(files)} spectra files in {input_dir}")

    registry, config, totals = merge_files(files)
    an.sanity_check(registry)

    os.makedirs(output_dir, exist_ok=True)
    output_file = os.path.join(output_dir, 'merged.h5')
    an.save_hdf5(output_file, registry, config, metadata=totals)
    print(f"Saved {output_file}")

    sanity.plot_all(registry, os.path.join(output_dir, 'SanityPlots'))
    return output_file


if __name__ == "__main__":
    main()
