from __future__ import annotations

from typing import Iterable

from .models import BaseId


def is_spi_allref(calls: Iterable[BaseId], ref_id: BaseId) -> bool:
    """Return True if every observed basecall matches the reference base.

    An empty pileup is trivially all-reference. Callers must drop ``BaseId.ANY``
    calls beforehand; seeing one here is a programming error.
    """
    for obs_id in calls:
        assert obs_id != BaseId.ANY, "unknown basecall reached the all-reference check"
        if obs_id != ref_id:
            return False
    return True
