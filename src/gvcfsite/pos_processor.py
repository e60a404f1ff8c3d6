from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class PosProcessorBase(ABC):
    """Base class for per-position, multi-stage processors.

    The orchestrator calls :meth:`check_process_pos` once per (stage, position).
    While the processor is active each call reaches :meth:`process_pos` exactly
    once; once a subclass has suppressed it, every call is a no-op. Stages are
    not reordered or buffered here, and errors raised by :meth:`process_pos`
    propagate unchanged.
    """

    def __init__(self) -> None:
        self._is_skip_process_pos = False

    @property
    def is_suppressed(self) -> bool:
        return self._is_skip_process_pos

    def check_process_pos(self, stage_no: int, pos: int) -> None:
        if self._is_skip_process_pos:
            return
        self.process_pos(stage_no, pos)

    def dispatch(self, stage_no: int, pos: int) -> None:
        self.check_process_pos(stage_no, pos)

    @abstractmethod
    def process_pos(self, stage_no: int, pos: int) -> None:
        """Stage-specific work for one position."""

    def _suppress(self) -> None:
        if not self._is_skip_process_pos:
            logger.debug("%s: position processing suppressed", type(self).__name__)
        self._is_skip_process_pos = True

    def _activate(self) -> None:
        self._is_skip_process_pos = False
