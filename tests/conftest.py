from pathlib import Path
from typing import Dict, List

import pysam
import pytest

CONTIG = "chr1"
REF_SEQ = ("ACGT" * 50)[:200]


def _write_fasta(path: Path, contig: str, seq: str) -> None:
    lines = [f">{contig}"]
    for i in range(0, len(seq), 60):
        lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _make_read(
    name: str,
    start0: int,
    seq: str,
    mapq: int = 60,
    flag: int = 0,
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = flag
    a.reference_id = 0
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = [(0, len(seq))]
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    return a


def _write_inputs(outdir: Path, reads: List[pysam.AlignedSegment]) -> Dict[str, str]:
    ref_fa = outdir / "ref.fa"
    _write_fasta(ref_fa, CONTIG, REF_SEQ)
    pysam.faidx(str(ref_fa))

    bam_path = outdir / "sample.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": CONTIG, "LN": len(REF_SEQ)}],
    }
    reads.sort(key=lambda r: r.reference_start)
    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in reads:
            bam.write(r)
    pysam.index(str(bam_path))

    return {"ref_fa": str(ref_fa), "bam": str(bam_path), "contig": CONTIG}


@pytest.fixture
def toy_inputs(tmp_path: Path) -> Dict[str, str]:
    """Tiny reference + BAM: six 20bp reads over chr1:10-29 (0-based).

    Read 0 carries an A at position 15 (reference T); read 5 has MAPQ 5.
    """
    start0 = 10
    reads = []
    for i in range(6):
        seq = list(REF_SEQ[start0 : start0 + 20])
        if i == 0:
            seq[15 - start0] = "A"
        reads.append(_make_read(f"r{i}", start0, "".join(seq), mapq=5 if i == 5 else 60))
    return _write_inputs(tmp_path, reads)


@pytest.fixture
def overlapping_pair_inputs(tmp_path: Path) -> Dict[str, str]:
    """One properly paired fragment whose 20bp mates overlap over chr1:15-29 (0-based)."""
    r1 = _make_read("p", 10, REF_SEQ[10:30], flag=99)
    r2 = _make_read("p", 15, REF_SEQ[15:35], flag=147)
    for mate, other in ((r1, r2), (r2, r1)):
        mate.next_reference_id = 0
        mate.next_reference_start = other.reference_start
    r1.template_length = 25
    r2.template_length = -25
    return _write_inputs(tmp_path, [r1, r2])
