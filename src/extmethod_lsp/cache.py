"""Cache management for the extension method surface of referenced libraries."""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING

from .constants import ENV_DISABLE_CACHE

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._analyzer.compilation import LibraryIdentity
    from .models import ExtensionCandidate

logger = logging.getLogger(__name__)


class SymbolSurfaceCache:
    """Process-wide cache of extension candidates per library identity.

    Readers get whatever mapping is current when they look; writers build a
    new mapping and swap it in, so an entry a reader holds is never mutated.
    A library that changes version gets a new identity, and storing it drops
    the entries of every other version of that library.
    """

    def __init__(self):
        # key -> (library name, candidates), swapped as a whole
        self._entries: Mapping[str, tuple[str, tuple[ExtensionCandidate, ...]]] = MappingProxyType({})
        self._write_lock = threading.Lock()
        # Check if caching is disabled (useful for tests)
        self._caching_enabled = os.getenv(ENV_DISABLE_CACHE, "").lower() not in (
            "1",
            "true",
            "yes",
        )

    def _get_cache_key(self, identity: LibraryIdentity) -> str:
        """Generate a cache key based on library name, version and content."""
        content = f"{identity.name}:{identity.version}:{identity.content_hash}"
        return hashlib.sha256(content.encode()).hexdigest()

    @property
    def enabled(self) -> bool:
        return self._caching_enabled

    def get(self, identity: LibraryIdentity) -> tuple[ExtensionCandidate, ...] | None:
        """Get the cached candidates of one library build."""
        if not self._caching_enabled:
            return None
        entry = self._entries.get(self._get_cache_key(identity))
        return entry[1] if entry is not None else None

    def set(self, identity: LibraryIdentity, candidates: tuple[ExtensionCandidate, ...]) -> None:
        """Cache the candidates of one library build."""
        if not self._caching_enabled:
            return

        key = self._get_cache_key(identity)
        with self._write_lock:
            current = self._entries
            entries = {
                existing: entry for existing, entry in current.items() if entry[0] != identity.name
            }
            stale = len(current) - len(entries)
            if stale:
                logger.debug(f"Dropping {stale} cached surface(s) of {identity.name}")
            entries[key] = (identity.name, tuple(candidates))

            # Swap, never mutate what readers may hold
            self._entries = MappingProxyType(entries)

    def clear(self, library_name: str | None = None) -> None:
        """Clear cache for a specific library or all libraries."""
        with self._write_lock:
            if library_name:
                self._entries = MappingProxyType(
                    {key: entry for key, entry in self._entries.items() if entry[0] != library_name}
                )
            else:
                self._entries = MappingProxyType({})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: LibraryIdentity) -> bool:
        return self._get_cache_key(identity) in self._entries


# Global cache instance
symbol_surface_cache = SymbolSurfaceCache()
