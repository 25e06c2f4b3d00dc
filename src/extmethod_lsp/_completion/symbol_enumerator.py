"""
Enumeration of every extension method a program can see.

User code is walked on every request. Referenced libraries are walked once
per library identity and their candidates kept in the process-wide
:data:`~extmethod_lsp.cache.symbol_surface_cache`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from extmethod_lsp import cancellation
from extmethod_lsp._analyzer.symbols import TypeKind, contains_error
from extmethod_lsp.cache import symbol_surface_cache
from extmethod_lsp.exceptions import MalformedProgramState
from extmethod_lsp.models import ExtensionCandidate

if TYPE_CHECKING:
    from collections.abc import Iterator

    from extmethod_lsp._analyzer.compilation import AssemblySymbol, Compilation
    from extmethod_lsp._analyzer.symbols import MethodSymbol, NamedTypeSymbol
    from extmethod_lsp.cache import SymbolSurfaceCache
    from extmethod_lsp.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def is_extension_container(symbol: NamedTypeSymbol) -> bool:
    """Extension methods live in top-level, non-generic static classes."""
    return (
        symbol.kind is TypeKind.CLASS
        and symbol.is_static
        and not symbol.is_generic
        and symbol.containing_type is None
    )


def make_candidate(method: MethodSymbol, assembly_name: str) -> ExtensionCandidate:
    """Describe one extension method.

    Raises:
        MalformedProgramState: The receiver parameter did not bind
    """
    receiver = method.receiver_type
    if receiver is None or contains_error(receiver):
        raise MalformedProgramState(
            f"receiver of {method.containing_type.full_name}.{method.name} is unresolved",
            symbol_name=method.name,
        )
    container = method.containing_type
    return ExtensionCandidate(
        method=method,
        declaring_namespace=container.namespace,
        declaring_container=container,
        is_obsolete=method.is_obsolete or container.is_obsolete,
        accessibility=method.effective_accessibility,
        first_parameter_type=receiver,
        generic_arity=method.arity,
        assembly_name=assembly_name,
    )


class SymbolSpaceEnumerator:
    """Yields extension candidates of a compilation in a deterministic order.

    The order is: the program's own types in declaration order, then each
    reference in reference order with its types in declaration order.
    """

    def __init__(self, cache: SymbolSurfaceCache | None = None):
        self.cache = cache if cache is not None else symbol_surface_cache

    def enumerate(
        self,
        compilation: Compilation,
        token: CancellationToken = cancellation.NONE,
        user_code_only: bool = False,
    ) -> Iterator[ExtensionCandidate]:
        token.raise_if_cancellation_requested()
        yield from self._walk(compilation.assembly, token)
        if user_code_only:
            return
        for reference in compilation.references:
            token.raise_if_cancellation_requested()
            yield from self.library_candidates(reference, token)

    def library_candidates(
        self, assembly: AssemblySymbol, token: CancellationToken = cancellation.NONE
    ) -> tuple[ExtensionCandidate, ...]:
        """Candidates of a referenced library, walked at most once per identity."""
        identity = assembly.identity
        cached = self.cache.get(identity)
        if cached is not None:
            return cached

        # A cancelled walk raises before anything is stored
        candidates = tuple(self._walk(assembly, token))
        self.cache.set(identity, candidates)
        logger.debug(f"Indexed {len(candidates)} extension methods of {assembly.name} {assembly.version}")
        return candidates

    def _walk(self, assembly: AssemblySymbol, token: CancellationToken) -> Iterator[ExtensionCandidate]:
        for container in assembly.types:
            token.raise_if_cancellation_requested()
            if not is_extension_container(container):
                continue
            for method in container.methods:
                if not method.is_extension:
                    continue
                try:
                    yield make_candidate(method, assembly.name)
                except MalformedProgramState as e:
                    logger.debug(f"Skipping extension method: {e}")
