"""Expected per-chromosome depth, used to set the HighDepth threshold.

The file format is one ``chrom<TAB>depth`` line per contig. Estimates assume
whole-genome data; exome or other targeted BAMs give meaningless values.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping

import numpy as np
import pysam

from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


def read_chrom_depth(path: str | Path) -> Dict[str, float]:
    depths: Dict[str, float] = {}
    with open_textmaybe_gzip(path, "rt") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split("\t")
            if len(fields) < 2:
                raise ValueError(f"{path}:{lineno}: expected 'chrom<TAB>depth', got {line!r}")
            try:
                depth = float(fields[1])
            except ValueError:
                raise ValueError(f"{path}:{lineno}: depth is not a number: {fields[1]!r}") from None
            if depth < 0:
                raise ValueError(f"{path}:{lineno}: negative depth for {fields[0]}")
            depths[fields[0]] = depth
    return depths


def write_chrom_depth(path: str | Path, depths: Mapping[str, float]) -> None:
    with open_textmaybe_gzip(path, "wt") as fh:
        for chrom, depth in depths.items():
            fh.write(f"{chrom}\t{depth:.3f}\n")


def _mean_read_length(bam: pysam.AlignmentFile, contig: str, sample_reads: int) -> float:
    lengths: List[int] = []
    for read in bam.fetch(contig):
        if read.is_unmapped or read.is_secondary or read.is_supplementary:
            continue
        lengths.append(int(read.query_alignment_length or 0))
        if len(lengths) >= sample_reads:
            break
    if not lengths:
        return 0.0
    return float(np.mean(lengths))


def estimate_chrom_depth(bam_path: str | Path, *, sample_reads: int = 200_000) -> Dict[str, float]:
    """Estimate average depth per contig from index statistics.

    depth = mapped reads * mean aligned read length / contig length, with the
    read length sampled from the first ``sample_reads`` primary alignments.
    """
    if sample_reads <= 0:
        raise ValueError("sample_reads must be > 0")

    depths: Dict[str, float] = {}
    with pysam.AlignmentFile(str(bam_path), "rb") as bam:
        lengths = dict(zip(bam.references, bam.lengths))
        for stat in bam.get_index_statistics():
            contig_len = lengths.get(stat.contig, 0)
            if stat.mapped == 0 or contig_len == 0:
                continue
            read_len = _mean_read_length(bam, stat.contig, sample_reads)
            depths[stat.contig] = stat.mapped * read_len / contig_len
            logger.info(
                "%s: %d mapped reads, mean length %.1f -> depth %.2f",
                stat.contig,
                stat.mapped,
                read_len,
                depths[stat.contig],
            )
    return depths
