from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

import pysam

from .models import BaseId, PileupEvidence

logger = logging.getLogger(__name__)

_BASE_IDS = {"A": BaseId.A, "C": BaseId.C, "G": BaseId.G, "T": BaseId.T}
_UNCAPPED_DEPTH = 1_000_000


def base_to_id(base: str) -> BaseId:
    """Map a nucleotide character to its id; anything outside ACGT is ``ANY``."""
    return _BASE_IDS.get(base.upper(), BaseId.ANY)


def column_evidence(
    column: pysam.PileupColumn,
    *,
    min_baseq: int,
    min_mapq: int,
) -> PileupEvidence:
    """Split one pileup column into used and filtered basecalls."""
    calls: List[BaseId] = []
    n_filtered = 0

    for pread in column.pileups:
        if pread.is_del or pread.is_refskip or pread.query_position is None:
            continue
        aln = pread.alignment
        qpos = pread.query_position
        seq = aln.query_sequence
        if seq is None:
            continue
        quals = aln.query_qualities
        bq = int(quals[qpos]) if quals is not None else 0
        base_id = base_to_id(seq[qpos])

        if base_id == BaseId.ANY or bq < min_baseq or int(aln.mapping_quality) < min_mapq:
            n_filtered += 1
            continue
        calls.append(base_id)

    return PileupEvidence(calls=tuple(calls), n_filtered=n_filtered)


def iter_pileup_evidence(
    bam_path: str,
    ref_fa: str,
    contig: str,
    *,
    begin: Optional[int] = None,
    end: Optional[int] = None,
    min_baseq: int = 17,
    min_mapq: int = 20,
    max_input_depth: Optional[int] = None,
) -> Iterator[Tuple[int, BaseId, PileupEvidence]]:
    """Yield ``(pos0, ref_id, evidence)`` for covered positions of ``contig``, in order.

    ``begin``/``end`` are 0-based half-open bounds. Uncovered positions are not
    yielded. Duplicate, secondary, QC-fail and unmapped reads are skipped by the
    pysam pileup engine. Overlapping mates are both counted. ``max_input_depth``
    caps the reads piled up per position; ``None`` leaves it effectively uncapped.
    """
    if max_input_depth is not None and max_input_depth <= 0:
        raise ValueError("max_input_depth must be > 0")

    with pysam.FastaFile(ref_fa) as fasta, pysam.AlignmentFile(bam_path, "rb") as bam:
        contig_len = fasta.get_reference_length(contig)
        start0 = 0 if begin is None else max(0, begin)
        stop0 = contig_len if end is None else min(end, contig_len)
        if start0 >= stop0:
            logger.warning("Empty region %s:%d-%d", contig, start0, stop0)
            return

        ref_seq = fasta.fetch(contig, start0, stop0).upper()
        logger.debug("Loaded %d reference bases for %s", len(ref_seq), contig)

        columns = bam.pileup(
            contig,
            start0,
            stop0,
            truncate=True,
            min_base_quality=0,
            ignore_orphans=False,
            ignore_overlaps=False,
            max_depth=_UNCAPPED_DEPTH if max_input_depth is None else max_input_depth,
        )
        for column in columns:
            pos0 = int(column.reference_pos)
            ref_id = base_to_id(ref_seq[pos0 - start0])
            yield pos0, ref_id, column_evidence(column, min_baseq=min_baseq, min_mapq=min_mapq)
