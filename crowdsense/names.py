# path: crowdsense/names.py
"""Beacon lookup by name.

The store does the filtering (equality in strict mode, substring otherwise)
on an over-fetched page; the matcher only truncates to the requested limit.
Results keep store order, no ranking is applied.
"""

from __future__ import annotations

import logging
from typing import List

from .errors import InvalidArgument
from .geo import OVERFETCH_FACTOR
from .schemas import Beacon, MatchMode
from .store import Store

logger = logging.getLogger("crowdsense.names")


class NameMatcher:
    def __init__(self, store: Store, overfetch_factor: int = OVERFETCH_FACTOR) -> None:
        self._store = store
        self._overfetch = overfetch_factor

    async def match_by_name(self, fragment: str, strict: bool, limit: int) -> List[Beacon]:
        if limit < 0:
            raise InvalidArgument(f"limit must be >= 0, got {limit}")
        if limit == 0:
            return []

        mode = MatchMode.from_strict(strict)
        found = await self._store.scan_by_name(fragment, mode, limit * self._overfetch)
        logger.debug("name=%r mode=%s found=%d limit=%d", fragment, mode.value, len(found), limit)
        return list(found[:limit])
