# ruff: noqa: PLR2004

from pathlib import Path

import pytest

import analyser as an
import extractor
import parser as pa
import post_process
from parameters import H_PT, H_VTXZ


def write_toy_events(path: Path, vtx_z: list, pts: list, etas: list, ids: list) -> Path:
    pa.write_events(path, vtx_z, an.make_tracks(pts, etas), ids)
    return path


@pytest.fixture
def node_outputs(tmp_path: Path) -> Path:
    out = tmp_path / "nodes"
    first = write_toy_events(tmp_path / "ev0.h5", [-5.0, 15.0], [0.5, 2.0, 0.7], [0.1, 0.2, 0.0], [0, 0, 1])
    second = write_toy_events(tmp_path / "ev1.h5", [2.0], [0.35, 1.2], [0.0, 1.1], [0, 0])
    extractor.main([str(first), str(out), "--job-id", "0"])
    extractor.main([str(second), str(out), "--job-id", "1"])
    return out


class TestExtractor:
    def test_writes_spectra_file(self, tmp_path: Path) -> None:
        events = write_toy_events(tmp_path / "ev.h5", [-5.0, 15.0], [0.5, 2.0, 0.7], [0.1, 0.2, 0.0], [0, 0, 1])
        output = extractor.main([str(events), str(tmp_path / "out"), "--job-id", "42"])

        assert Path(output).name == "spectra_0042.h5"
        registry, config, meta = an.load_hdf5(output)
        assert registry[H_VTXZ].entries == 1
        assert registry[H_PT].entries == 2
        assert meta["n_events"] == 2
        assert meta["n_events_accepted"] == 1
        assert config.vtx_z_cut == 10.0

    def test_options(self, tmp_path: Path) -> None:
        events = write_toy_events(tmp_path / "ev.h5", [15.0], [0.5], [2.0], [0])
        output = extractor.main([str(events), str(tmp_path / "out"),
                                 "--vtxz-cut", "none", "--eta-cut", "off",
                                 "--pt-bins", "0.2,1,5,10"])
        registry, config, _ = an.load_hdf5(output)
        assert config.eta_cut is None
        assert registry[H_PT].edges.tolist() == [0.2, 1.0, 5.0, 10.0]
        assert registry[H_PT].counts.tolist() == [1, 0, 0]

    def test_invalid_bounds_exit(self, tmp_path: Path) -> None:
        events = write_toy_events(tmp_path / "ev.h5", [0.0], [0.5], [0.0], [0])
        with pytest.raises(SystemExit) as exc:
            extractor.main([str(events), str(tmp_path / "out"), "--pt-min", "5", "--pt-max", "1"])
        assert exc.value.code == 2

    def test_module_header(self) -> None:
        assert extractor.__doc__.lstrip().startswith("Copyright (c)")

    def test_missing_input_exit(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            extractor.main([str(tmp_path / "nope.h5"), str(tmp_path / "out")])


class TestPostProcess:
    def test_merge_files(self, node_outputs: Path) -> None:
        files = sorted(str(p) for p in node_outputs.glob("spectra_*.h5"))
        registry, _, totals = post_process.merge_files(files)
        assert registry[H_VTXZ].entries == 2
        # 0.5 and 2.0 from the first file, 0.35 from the second
        assert registry[H_PT].entries == 3
        assert totals == {"n_files": 2, "n_events": 3, "n_events_accepted": 2, "n_tracks_accepted": 3}

    def test_config_mismatch(self, tmp_path: Path, node_outputs: Path) -> None:
        events = write_toy_events(tmp_path / "ev2.h5", [0.0], [0.5], [0.0], [0])
        extractor.main([str(events), str(node_outputs), "--job-id", "2", "--eta-cut", "0.5"])
        with pytest.raises(ValueError, match="configuration mismatch"):
            post_process.merge_files([str(p) for p in node_outputs.glob("spectra_*.h5")])

    def test_no_files(self) -> None:
        with pytest.raises(FileNotFoundError):
            post_process.merge_files([])

    def test_main_writes_merged_file_and_plots(self, tmp_path: Path, node_outputs: Path) -> None:
        out = tmp_path / "merged"
        output = post_process.main([str(node_outputs), str(out)])
        registry, _, meta = an.load_hdf5(output)
        assert registry[H_VTXZ].entries == 2
        assert meta["n_files"] == 2
        assert (out / "SanityPlots" / "hPt.pdf").exists()
        assert (out / "SanityPlots" / "hVtxZ.pdf").exists()

    def test_main_reads_job_folders(self, tmp_path: Path) -> None:
        grid = tmp_path / "grid"
        inputs = [
            ([-5.0, 15.0], [0.5, 2.0, 0.7], [0.1, 0.2, 0.0], [0, 0, 1]),
            ([2.0], [0.35, 1.2], [0.0, 1.1], [0, 0]),
        ]
        for job, (vtx_z, pts, etas, ids) in enumerate(inputs):
            job_dir = grid / f"out_1_100_{job}"
            events = write_toy_events(tmp_path / f"ev{job}.h5", vtx_z, pts, etas, ids)
            extractor.main([str(events), str(job_dir), "--job-id", str(job)])

        output = post_process.main([str(grid), str(tmp_path / "merged")])
        registry, _, meta = an.load_hdf5(output)
        assert meta["n_files"] == 2
        assert meta["n_events_accepted"] == 2
        assert registry[H_PT].entries == 3

    def test_main_skips_other_files(self, tmp_path: Path, node_outputs: Path) -> None:
        # a previous merge output sitting next to the node files is not re-merged
        post_process.main([str(node_outputs), str(node_outputs)])
        output = post_process.main([str(node_outputs), str(tmp_path / "again")])
        _, _, meta = an.load_hdf5(output)
        assert meta["n_files"] == 2
