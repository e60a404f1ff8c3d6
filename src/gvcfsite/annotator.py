from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from .depth_buffer import DepthBuffer
from .locus_info import SiteModifiers
from .models import BaseId, ModifiedSiteGt, PileupEvidence, VcfFilter, filter_label
from .pos_processor import PosProcessorBase
from .snp_util import is_spi_allref

logger = logging.getLogger(__name__)

STAGE_DEPTH = 0
STAGE_ANNOTATE = 1

Region = Tuple[int, int]
SiteSink = Callable[[int, BaseId, SiteModifiers], None]


def _in_regions(pos: int, regions: Sequence[Region]) -> bool:
    return any(start <= pos < end for start, end in regions)


@dataclass(frozen=True)
class AnnotatorOptions:
    """Site annotation settings.

    Attributes
    ----------
    max_depth_factor:
        Sites deeper than ``max_depth_factor * chrom_depth`` get ``HighDepth``.
    chrom_depth:
        Expected depth of the contig. ``None`` disables the depth filter.
    max_filtered_basecall_frac:
        Sites whose filtered basecall fraction exceeds this get ``HighDPFRatio``.
    min_baseq, min_mapq:
        Thresholds separating used from filtered basecalls (applied by the
        evidence source).
    max_input_depth:
        Cap on reads piled up per position by the evidence source. ``None``
        means no cap.
    report_begin, report_end:
        Half-open 0-based range of positions to emit. Reaching ``report_end``
        stops all further processing.
    haploid_regions, zero_ploidy_regions:
        Half-open 0-based intervals with non-diploid copy number.
    """

    max_depth_factor: float = 3.0
    chrom_depth: Optional[float] = None
    max_filtered_basecall_frac: float = 0.3
    min_baseq: int = 17
    min_mapq: int = 20
    max_input_depth: Optional[int] = None
    report_begin: Optional[int] = None
    report_end: Optional[int] = None
    haploid_regions: Tuple[Region, ...] = ()
    zero_ploidy_regions: Tuple[Region, ...] = ()

    def __post_init__(self) -> None:
        if self.max_depth_factor <= 0:
            raise ValueError("max_depth_factor must be > 0")
        if self.chrom_depth is not None and self.chrom_depth < 0:
            raise ValueError("chrom_depth must be >= 0")
        if not 0.0 <= self.max_filtered_basecall_frac <= 1.0:
            raise ValueError("max_filtered_basecall_frac must be in [0, 1]")
        if self.max_input_depth is not None and self.max_input_depth <= 0:
            raise ValueError("max_input_depth must be > 0")
        if (
            self.report_begin is not None
            and self.report_end is not None
            and self.report_begin > self.report_end
        ):
            raise ValueError("report_begin must be <= report_end")
        for start, end in self.haploid_regions + self.zero_ploidy_regions:
            if start >= end:
                raise ValueError(f"Empty or inverted region: {start}-{end}")

    @property
    def max_depth(self) -> Optional[float]:
        if self.chrom_depth is None:
            return None
        return self.max_depth_factor * self.chrom_depth


class SiteAnnotator(PosProcessorBase):
    """Two-stage gVCF site annotator.

    ``STAGE_DEPTH`` counts every basecall at a position into the depth buffer.
    ``STAGE_ANNOTATE`` turns the buffered evidence into a :class:`SiteModifiers`
    record and hands it to ``emit``. The orchestrator decides when a position
    can be evicted from :attr:`depth`.
    """

    stages = (STAGE_DEPTH, STAGE_ANNOTATE)

    def __init__(
        self,
        emit: SiteSink,
        options: Optional[AnnotatorOptions] = None,
        *,
        depth: Optional[DepthBuffer] = None,
    ) -> None:
        super().__init__()
        self.options = options if options is not None else AnnotatorOptions()
        self.depth = depth if depth is not None else DepthBuffer()
        self._emit = emit
        self._pending: Dict[int, Tuple[BaseId, PileupEvidence]] = {}
        self._counts: Dict[str, int] = {
            "sites_seen": 0,
            "sites_emitted": 0,
            "sites_block": 0,
            "sites_filtered": 0,
            "sites_unknown": 0,
        }
        self._filter_counts: Dict[str, int] = {filter_label(k): 0 for k in VcfFilter}

    def add_evidence(self, pos: int, ref_id: BaseId, evidence: PileupEvidence) -> None:
        self._pending[pos] = (ref_id, evidence)

    def close(self) -> None:
        """Stop processing; later positions are ignored."""
        self._suppress()
        self._pending.clear()

    def process_pos(self, stage_no: int, pos: int) -> None:
        if self.options.report_end is not None and pos >= self.options.report_end:
            logger.info("Reached end of report range at position %d", pos)
            self.close()
            return

        if stage_no == STAGE_DEPTH:
            self._process_depth(pos)
        elif stage_no == STAGE_ANNOTATE:
            self._process_annotate(pos)
        else:
            raise ValueError(f"Unknown processing stage: {stage_no}")

    def _process_depth(self, pos: int) -> None:
        if pos not in self._pending:
            return
        _, evidence = self._pending[pos]
        self._counts["sites_seen"] += 1
        for _ in range(evidence.depth):
            self.depth.increment(pos)

    def _process_annotate(self, pos: int) -> None:
        pending = self._pending.pop(pos, None)
        if pending is None:
            return
        ref_id, evidence = pending
        if self.options.report_begin is not None and pos < self.options.report_begin:
            return

        smod = self.annotate_site(pos, ref_id, evidence)
        self._tally(smod)
        self._emit(pos, ref_id, smod)

    def annotate_site(self, pos: int, ref_id: BaseId, evidence: PileupEvidence) -> SiteModifiers:
        opts = self.options
        depth = self.depth.value(pos)

        smod = SiteModifiers()
        smod.is_unknown = ref_id == BaseId.ANY
        smod.is_covered = depth > 0
        smod.is_used_coverage = len(evidence.calls) > 0
        smod.is_zero_ploidy = _in_regions(pos, opts.zero_ploidy_regions)

        max_depth = opts.max_depth
        if max_depth is not None and depth > max_depth:
            smod.filters.set(VcfFilter.HighDepth)
        if depth > 0 and evidence.n_filtered / depth > opts.max_filtered_basecall_frac:
            smod.filters.set(VcfFilter.HighDPFRatio)

        if smod.is_unknown or not smod.is_used_coverage:
            return smod

        is_allref = is_spi_allref(evidence.calls, ref_id)

        if not smod.is_zero_ploidy:
            if _in_regions(pos, opts.haploid_regions):
                smod.modified_gt = ModifiedSiteGt.ZERO if is_allref else ModifiedSiteGt.ONE
            smod.is_block = is_allref and smod.filters.none()
        return smod

    def _tally(self, smod: SiteModifiers) -> None:
        self._counts["sites_emitted"] += 1
        if smod.is_block:
            self._counts["sites_block"] += 1
        if smod.is_unknown:
            self._counts["sites_unknown"] += 1
        if not smod.filters.none():
            self._counts["sites_filtered"] += 1
            for kind in smod.filters:
                self._filter_counts[filter_label(kind)] += 1

    def stats(self) -> Dict[str, object]:
        return {
            "counts": dict(self._counts),
            "filters": dict(self._filter_counts),
            "live_depth_positions": len(self.depth),
        }
