from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


def check_bam_index(bam_path: str | Path) -> None:
    """Ensure a BAM has an index; raise ValueError with fix instructions."""
    bam = Path(bam_path)
    bai1 = bam.with_suffix(bam.suffix + ".bai")
    bai2 = bam.with_suffix(".bai")
    if bai1.exists() or bai2.exists():
        return
    raise ValueError(
        "BAM is not indexed. Run: samtools index " + str(bam)
    )


def check_fasta_index(ref_fa: str | Path) -> None:
    """Ensure a reference FASTA has a .fai index; raise ValueError with fix instructions."""
    fa = Path(ref_fa)
    fai = fa.with_suffix(fa.suffix + ".fai")
    if fai.exists():
        return
    raise ValueError(
        "Reference FASTA is not indexed. Run: samtools faidx " + str(fa)
    )


def parse_region(text: str) -> Tuple[int, int]:
    """Parse a 1-based inclusive ``START-END`` string into a 0-based half-open interval."""
    try:
        start_s, end_s = text.replace(",", "").split("-", 1)
        start1, end1 = int(start_s), int(end_s)
    except ValueError:
        raise ValueError(f"Region must look like START-END (1-based), got: {text!r}") from None
    if start1 < 1 or end1 < start1:
        raise ValueError(f"Invalid region: {text!r}")
    return start1 - 1, end1


def parse_regions(texts: Iterable[str]) -> Tuple[Tuple[int, int], ...]:
    regions: List[Tuple[int, int]] = [parse_region(t) for t in texts]
    logger.debug("Parsed %d regions", len(regions))
    return tuple(regions)


def parse_report_range(begin: Optional[int], end: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    """Convert 1-based inclusive ``--begin``/``--end`` into 0-based half-open bounds."""
    if begin is not None and begin < 1:
        raise ValueError(f"--begin must be >= 1 (1-based), got: {begin}")
    if end is not None and end < 1:
        raise ValueError(f"--end must be >= 1 (1-based), got: {end}")
    if begin is not None and end is not None and end < begin:
        raise ValueError(f"--end ({end}) must be >= --begin ({begin})")
    begin0 = begin - 1 if begin is not None else None
    return begin0, end
