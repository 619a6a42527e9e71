"""
Enhancement gate for one import run.

The gate decides whether the next item may be sent for AI enhancement.
It moves ENHANCING -> RATE_LIMITED on the first rate-limit signal, and
RATE_LIMITED -> INSERTING_ONLY once the next item is processed. It never
goes back, and every transition is kept in ``history``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class EnhancementState(str, Enum):
    DISABLED = "disabled"
    ENHANCING = "enhancing"
    RATE_LIMITED = "rate_limited"
    INSERTING_ONLY = "inserting_only"


@dataclass
class Transition:
    source: EnhancementState
    target: EnhancementState
    item: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class EnhancementGate:
    state: EnhancementState = EnhancementState.ENHANCING
    history: List[Transition] = field(default_factory=list)

    @classmethod
    def for_request(cls, enhance: bool) -> "EnhancementGate":
        return cls(EnhancementState.ENHANCING if enhance else EnhancementState.DISABLED)

    @property
    def can_enhance(self) -> bool:
        return self.state is EnhancementState.ENHANCING

    @property
    def rate_limited(self) -> bool:
        return self.state in (EnhancementState.RATE_LIMITED, EnhancementState.INSERTING_ONLY)

    def _move(self, target: EnhancementState, item: Optional[str], reason: Optional[str]) -> None:
        self.history.append(Transition(self.state, target, item, reason))
        logger.info(f"Enhancement {self.state.value} -> {target.value}" + (f" ({item})" if item else ""))
        self.state = target

    def record_rate_limit(self, item: Optional[str] = None, reason: Optional[str] = None) -> None:
        """A provider signalled throttling; no further item will be enhanced in this run."""
        if self.state is EnhancementState.ENHANCING:
            self._move(EnhancementState.RATE_LIMITED, item, reason)

    def next_item(self, item: Optional[str] = None) -> None:
        """Call before each item; settles a rate-limited gate into insert-only mode."""
        if self.state is EnhancementState.RATE_LIMITED:
            self._move(EnhancementState.INSERTING_ONLY, item, "rate limited earlier in this run")
