"""Witness deduplication cache.

Records every witness attestation this process has issued, keyed by the
exact string "subject|controller". A hit means the pair is already
witnessed and the stored entry is returned unchanged.

Entries never expire; the cache lives for the process lifetime. A
multi-instance deployment needs an external store with atomic
check-and-set instead.

`claim()` serializes concurrent requests for the same key so that only the
first one can reach submission; the others wait and then see its entry.
Distinct keys never share a lock.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional

log = logging.getLogger("witness.cache")


@dataclass(frozen=True)
class WitnessCacheEntry:
    uid: str
    attester: str
    observed_at: int


def witness_cache_key(subject: str, controller: str) -> str:
    return f"{subject}|{controller}"


class WitnessCache:
    """In-process record of issued witness attestations."""

    def __init__(self) -> None:
        self._entries: Dict[str, WitnessCacheEntry] = {}
        # key -> (lock, number of holders + waiters)
        self._claims: Dict[str, list] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, subject: str, controller: str) -> Optional[WitnessCacheEntry]:
        return self._entries.get(witness_cache_key(subject, controller))

    def record(
        self,
        subject: str,
        controller: str,
        uid: str,
        attester: str,
        observed_at: int,
    ) -> WitnessCacheEntry:
        """Store the attestation issued for a pair.

        An existing entry is never overwritten; the first issued UID wins.
        """
        key = witness_cache_key(subject, controller)
        existing = self._entries.get(key)
        if existing is not None:
            log.warning(f"witness already recorded for {key}: {existing.uid}, ignoring {uid}")
            return existing
        entry = WitnessCacheEntry(uid=uid, attester=attester, observed_at=observed_at)
        self._entries[key] = entry
        return entry

    @asynccontextmanager
    async def claim(self, subject: str, controller: str) -> AsyncIterator[None]:
        """Hold the per-key lock for the duration of one request."""
        key = witness_cache_key(subject, controller)
        slot = self._claims.get(key)
        if slot is None:
            slot = self._claims[key] = [asyncio.Lock(), 0]
        slot[1] += 1
        try:
            async with slot[0]:
                yield
        finally:
            slot[1] -= 1
            if slot[1] == 0:
                del self._claims[key]

    def clear(self) -> None:
        self._entries.clear()


_witness_cache: Optional[WitnessCache] = None


def get_witness_cache() -> WitnessCache:
    """Get or create the witness cache singleton."""
    global _witness_cache
    if _witness_cache is None:
        _witness_cache = WitnessCache()
    return _witness_cache


def reset_witness_cache() -> None:
    """Reset the witness cache singleton (for testing)."""
    global _witness_cache
    _witness_cache = None
