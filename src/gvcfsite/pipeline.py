from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, Optional, Tuple

from tqdm import tqdm

from .annotator import SiteAnnotator
from .models import BaseId, PileupEvidence

logger = logging.getLogger(__name__)


def annotate_sites(
    evidence: Iterable[Tuple[int, BaseId, PileupEvidence]],
    annotator: SiteAnnotator,
    *,
    progress: bool = False,
    total: Optional[int] = None,
) -> Dict[str, object]:
    """Drive ``annotator`` over a position-sorted evidence stream.

    Each position is run through every stage in ascending order and then
    evicted from the depth buffer, since no stage looks back past it. The
    annotator is closed once the stream is exhausted.
    """
    t0 = time.time()
    last_pos: Optional[int] = None
    positions = 0

    it: Iterable[Tuple[int, BaseId, PileupEvidence]] = evidence
    if progress:
        it = tqdm(it, unit="site", desc="Annotating sites", total=total)

    for pos, ref_id, ev in it:
        if last_pos is not None and pos < last_pos:
            raise ValueError(f"Evidence out of order: position {pos} after {last_pos}")
        last_pos = pos

        if annotator.is_suppressed:
            logger.debug("Annotator suppressed; stopping at position %d", pos)
            break

        annotator.add_evidence(pos, ref_id, ev)
        for stage in annotator.stages:
            annotator.check_process_pos(stage, pos)
        annotator.depth.evict(pos)

        if annotator.is_suppressed:
            logger.debug("Annotator suppressed at position %d", pos)
            break
        positions += 1

    annotator.close()

    summary = annotator.stats()
    summary["positions_processed"] = positions
    summary["runtime_seconds"] = float(time.time() - t0)
    logger.info("Annotated %d positions in %.2fs", positions, summary["runtime_seconds"])
    return summary
