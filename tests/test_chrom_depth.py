import gzip
from pathlib import Path

import pytest

from gvcfsite.chrom_depth import estimate_chrom_depth, read_chrom_depth, write_chrom_depth


def test_write_then_read(tmp_path: Path):
    path = tmp_path / "depth.txt"
    write_chrom_depth(path, {"chr1": 31.5, "chrX": 15.25})
    assert read_chrom_depth(path) == {"chr1": 31.5, "chrX": 15.25}


def test_read_skips_comments_and_blank_lines(tmp_path: Path):
    path = tmp_path / "depth.txt"
    path.write_text("# chrom\tdepth\n\nchr2\t12\n", encoding="utf-8")
    assert read_chrom_depth(path) == {"chr2": 12.0}


@pytest.mark.parametrize("line", ["chr1\n", "chr1\tdeep\n", "chr1\t-3\n"])
def test_read_rejects_bad_lines(tmp_path: Path, line: str):
    path = tmp_path / "depth.txt"
    path.write_text(line, encoding="utf-8")
    with pytest.raises(ValueError, match="depth.txt:1"):
        read_chrom_depth(path)


def test_estimate_from_bam(toy_inputs):
    depths = estimate_chrom_depth(toy_inputs["bam"])
    # 6 reads x 20bp over a 200bp contig
    assert depths["chr1"] == pytest.approx(0.6)


def test_read_gzipped_depth_file(tmp_path: Path):
    path = tmp_path / "depth.txt.gz"
    with gzip.open(path, "wt") as fh:
        fh.write("chr1\t30.5\nchrM\t900\n")
    assert read_chrom_depth(path) == {"chr1": 30.5, "chrM": 900.0}
