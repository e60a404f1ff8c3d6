"""Per-site gVCF annotation record and its FILTER rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .models import ModifiedSiteGt, VcfFilter, filter_label, modified_gt_label

_PASS = "PASS"


class FilterSet:
    """Fixed-size bit-set over :class:`VcfFilter`."""

    __slots__ = ("_bits",)

    def __init__(self) -> None:
        self._bits = 0

    def set(self, kind: VcfFilter) -> None:
        self._bits |= 1 << kind

    def test(self, kind: VcfFilter) -> bool:
        return bool(self._bits & (1 << kind))

    def none(self) -> bool:
        return self._bits == 0

    def __iter__(self) -> Iterator[VcfFilter]:
        # canonical order, independent of insertion order
        for kind in VcfFilter:
            if self.test(kind):
                yield kind

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterSet):
            return NotImplemented
        return self._bits == other._bits

    def __repr__(self) -> str:
        return f"FilterSet({[filter_label(k) for k in self]})"


@dataclass
class SiteModifiers:
    """Annotation state for one site.

    The boolean flags are independent; combinations such as ``is_zero_ploidy``
    with a genotype override are not rejected here.
    """

    is_unknown: bool = False
    is_covered: bool = False
    is_used_coverage: bool = False
    is_zero_ploidy: bool = False
    is_block: bool = False
    filters: FilterSet = field(default_factory=FilterSet)
    modified_gt: ModifiedSiteGt = ModifiedSiteGt.NONE


def encode_filters(smod: SiteModifiers) -> str:
    """Render the VCF FILTER value: ``PASS`` or ``;``-joined labels in canonical order."""
    if smod.filters.none():
        return _PASS
    return ";".join(filter_label(kind) for kind in smod.filters)


def describe(smod: SiteModifiers) -> str:
    """Debug dump of the site flags."""
    parts = [
        f"is_unknown: {int(smod.is_unknown)}",
        f"is_covered: {int(smod.is_covered)}",
        f"is_used_coverage: {int(smod.is_used_coverage)}",
        f"is_zero_ploidy: {int(smod.is_zero_ploidy)}",
        f"is_block: {int(smod.is_block)}",
    ]
    if smod.modified_gt != ModifiedSiteGt.NONE:
        parts.append(f"modgt: {modified_gt_label(smod.modified_gt)}")
    return " ".join(parts)
