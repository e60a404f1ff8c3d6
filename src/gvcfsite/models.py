from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple


class BaseId(IntEnum):
    """Observed basecall identifier. ``ANY`` is the unknown/any sentinel (N)."""

    A = 0
    C = 1
    G = 2
    T = 3
    ANY = 4


class VcfFilter(IntEnum):
    """gVCF site filters, in the canonical order used for FILTER output."""

    IndelConflict = 0
    SiteConflict = 1
    LowGQX = 2
    HighDPFRatio = 3
    HighSNVSB = 4
    HighSNVHPOL = 5
    HighRefRep = 6
    HighDepth = 7


_FILTER_LABELS: Tuple[str, ...] = (
    "IndelConflict",
    "SiteConflict",
    "LowGQX",
    "HighDPFRatio",
    "HighSNVSB",
    "HighSNVHPOL",
    "HighRefRep",
    "HighDepth",
)

assert len(_FILTER_LABELS) == len(VcfFilter), "filter label table out of sync with VcfFilter"


def filter_label(kind: VcfFilter) -> str:
    return _FILTER_LABELS[kind]


class ModifiedSiteGt(IntEnum):
    """Genotype override for a site. ``NONE`` means no override."""

    NONE = 0
    ZERO = 1
    ONE = 2


_MODIFIED_GT_LABELS: Tuple[str, ...] = ("", "0", "1")

assert len(_MODIFIED_GT_LABELS) == len(ModifiedSiteGt), "modgt label table out of sync"


def modified_gt_label(gt: ModifiedSiteGt) -> str:
    if gt == ModifiedSiteGt.NONE:
        raise ValueError("ModifiedSiteGt.NONE has no label")
    return _MODIFIED_GT_LABELS[gt]


@dataclass(frozen=True)
class PileupEvidence:
    """Basecall evidence for one reference position.

    Attributes
    ----------
    calls:
        Used basecalls, in pileup order. Never contains ``BaseId.ANY``.
    n_filtered:
        Basecalls seen at the position but rejected (N, low baseQ/MAPQ).
    """

    calls: Tuple[BaseId, ...] = ()
    n_filtered: int = 0

    @property
    def depth(self) -> int:
        return len(self.calls) + self.n_filtered
