"""Tree-sitter C# parser singleton with parse tree caching.

Every C# file the engine looks at, user code and reference stubs alike, is
parsed through here so identical text is only parsed once.
"""

from __future__ import annotations

import hashlib
import os
from collections import OrderedDict
from typing import TYPE_CHECKING

from tree_sitter import Language, Parser
from tree_sitter_c_sharp import language

from extmethod_lsp.constants import ENV_CACHE_SIZE, ENV_DISABLE_CACHE

if TYPE_CHECKING:
    from tree_sitter import Tree

_parser: Parser | None = None

# Parse tree cache: hash(source) -> (Tree, source_bytes)
# Using OrderedDict for LRU-like behavior
_parse_cache: OrderedDict[str, tuple[Tree, bytes]] = OrderedDict()

_CACHE_ENABLED = os.environ.get(ENV_DISABLE_CACHE, "").lower() not in ("1", "true", "yes")
_MAX_CACHE_SIZE = int(os.environ.get(ENV_CACHE_SIZE, "100"))


def _get_parser() -> Parser:
    """Get or create the tree-sitter C# parser singleton."""
    global _parser  # noqa: PLW0603
    if _parser is None:
        _parser = Parser(Language(language()))
    return _parser


def _compute_hash(source_bytes: bytes) -> str:
    """Hash C# source for the parse cache key.

    Args:
        source_bytes: UTF-8 encoded source

    Returns:
        Hex digest of the SHA-256 hash
    """
    return hashlib.sha256(source_bytes).hexdigest()


def _cache_get(cache_key: str) -> tuple[Tree, bytes] | None:
    """Look up a cached parse tree and mark it most recently used.

    Args:
        cache_key: Hash of the source

    Returns:
        Tuple of (Tree, source_bytes) if cached, None otherwise
    """
    if not _CACHE_ENABLED:
        return None

    if cache_key in _parse_cache:
        _parse_cache.move_to_end(cache_key)
        return _parse_cache[cache_key]

    return None


def _cache_put(cache_key: str, tree: Tree, source_bytes: bytes) -> None:
    """Store a parse tree, evicting the least recently used ones past capacity.

    Args:
        cache_key: Hash of the source
        tree: Parsed tree
        source_bytes: Source the tree was parsed from
    """
    if not _CACHE_ENABLED:
        return

    _parse_cache[cache_key] = (tree, source_bytes)

    while len(_parse_cache) > _MAX_CACHE_SIZE:
        _parse_cache.popitem(last=False)


def clear_cache() -> None:
    """Clear the parse tree cache."""
    _parse_cache.clear()


def get_cache_stats() -> dict[str, int]:
    """Get cache statistics.

    Returns:
        Dictionary with cache size and capacity
    """
    return {
        "size": len(_parse_cache),
        "capacity": _MAX_CACHE_SIZE,
        "enabled": _CACHE_ENABLED,
    }


def parse(source_code: str | bytes) -> Tree:
    """Parse C# source code using tree-sitter with caching.

    Tree-sitter always recovers from syntax errors, so incomplete code still
    yields a tree (with ``ERROR`` / missing nodes where needed).

    Args:
        source_code: C# source code to parse

    Returns:
        Tree-sitter Tree object
    """
    parser = _get_parser()
    source_bytes = source_code.encode("utf-8") if isinstance(source_code, str) else source_code

    cache_key = _compute_hash(source_bytes)
    cached = _cache_get(cache_key)
    if cached is not None:
        cached_tree, cached_bytes = cached
        # Hash collision protection
        if cached_bytes == source_bytes:
            return cached_tree

    tree = parser.parse(source_bytes)
    _cache_put(cache_key, tree, source_bytes)

    return tree
