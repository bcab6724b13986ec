"""
Drug Interaction Engine - Canonical Identifier Cache
Process-wide memoization of name -> RXCUI resolutions.
"""
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ResolutionCache:
    """
    Append-only name -> identifier cache.

    Entries are never overwritten or expired: the first identifier stored for a
    lowercase name is the answer for the life of the process.
    """

    def __init__(self):
        self._entries: Dict[str, str] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().lower()

    def get(self, name: str) -> Optional[str]:
        identifier = self._entries.get(self._key(name))
        if identifier is None:
            self.misses += 1
        else:
            self.hits += 1
        return identifier

    def put(self, name: str, identifier: str) -> str:
        """Store an identifier unless one is already cached; returns the cached value"""
        key = self._key(name)
        if not key or not identifier:
            return identifier
        existing = self._entries.setdefault(key, identifier)
        if existing != identifier:
            logger.debug(f"Keeping cached identifier {existing} for '{key}' (ignored {identifier})")
        return existing

    def __contains__(self, name: str) -> bool:
        return self._key(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_statistics(self) -> Dict[str, int]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}
