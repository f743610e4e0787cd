"""
Debounced duplicate title detection.

While a user types a job code the client asks, possibly many times,
whether the title already exists.  Each :class:`DuplicateDetector`
call takes a sequence number, waits for a quiet period and is
abandoned if a newer call arrived in the meantime.  A lookup that
finishes after a newer call was issued is discarded, so a result for a
superseded title never replaces the result for a later one.

Detectors are kept per user in an in‑process registry bounded to the
most recently active users (``settings.duplicate_detector_limit``).
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from ..core.config import settings
from ..schemas.service import ServiceRead
from .service_record_service import ServiceRecordService


logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[List[ServiceRead]]]


@dataclass
class DuplicateCheck:
    title: str
    sequence: int
    matches: List[ServiceRead] = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return len(self.matches) > 0


class DuplicateDetector:
    """Apply only the latest of a stream of duplicate lookups."""

    def __init__(self, lookup: Optional[Lookup] = None, debounce_ms: Optional[int] = None) -> None:
        self._lookup = lookup or ServiceRecordService.find_duplicates
        if debounce_ms is None:
            debounce_ms = settings.duplicate_debounce_ms
        self._debounce = debounce_ms / 1000
        self._issued = 0
        self.latest: Optional[DuplicateCheck] = None

    @property
    def issued(self) -> int:
        """Sequence number of the most recent call."""
        return self._issued

    async def check(self, title: str) -> Optional[DuplicateCheck]:
        """Look up ``title`` once the user stops typing.

        Returns the applied result, or ``None`` when this call was
        superseded either during the quiet period or while the lookup
        was in flight.
        """
        self._issued += 1
        sequence = self._issued
        candidate = title.strip()
        if self._debounce > 0:
            await asyncio.sleep(self._debounce)
        if sequence != self._issued:
            return None
        if not candidate:
            result = DuplicateCheck(title=candidate, sequence=sequence)
        else:
            matches = await self._lookup(candidate)
            if sequence != self._issued:
                logger.debug("Discarding stale duplicate lookup #%s for '%s'", sequence, candidate)
                return None
            result = DuplicateCheck(title=candidate, sequence=sequence, matches=matches)
        self.latest = result
        return result


_detectors: "OrderedDict[str, DuplicateDetector]" = OrderedDict()


def get_detector(user_id: str) -> DuplicateDetector:
    """Return the detector for ``user_id``, creating it on first use.

    The least recently used detector is dropped once the registry holds
    more than ``settings.duplicate_detector_limit`` entries.
    """
    detector = _detectors.get(user_id)
    if detector is None:
        detector = _detectors[user_id] = DuplicateDetector()
    else:
        _detectors.move_to_end(user_id)
    while len(_detectors) > max(settings.duplicate_detector_limit, 1):
        _detectors.popitem(last=False)
    return detector


def reset_detectors() -> None:
    _detectors.clear()
