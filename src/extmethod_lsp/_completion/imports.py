"""
Import insertion seen from the completion engine.

The engine does not know how to edit ``using`` directives; it asks the host
for an ``AddImportsService`` when an item is committed. The service is
looked up by name every time, and any way the lookup or the call can go
wrong is reported as :class:`~extmethod_lsp.exceptions.CollaboratorUnavailable`
so the commit can fall back to inserting plain text.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Protocol

from extmethod_lsp._analyzer.compilation import SourceDocument
from extmethod_lsp.exceptions import CollaboratorUnavailable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from extmethod_lsp._analyzer.compilation import Compilation

ADD_IMPORTS_SERVICE = "AddImportsService"


class ImportInserter(Protocol):
    def add_imports(
        self,
        compilation: Compilation,
        document: SourceDocument,
        context_location: int,
        namespaces: Sequence[str],
        place_system_namespace_first: bool,
    ) -> SourceDocument:
        """Return ``document`` with ``namespaces`` imported at ``context_location``."""
        ...


class HostServices(Protocol):
    def get_service(self, name: str) -> Any: ...


class HostServiceImportInserter:
    """Adapter resolving the host's import service at call time."""

    def __init__(self, host_services: HostServices | None):
        self.host_services = host_services

    def add_imports(
        self,
        compilation: Compilation,
        document: SourceDocument,
        context_location: int,
        namespaces: Sequence[str],
        place_system_namespace_first: bool,
    ) -> SourceDocument:
        add_imports = self._resolve()
        arguments = (compilation, document, context_location, tuple(namespaces), place_system_namespace_first)
        try:
            inspect.signature(add_imports).bind(*arguments)
        except (TypeError, ValueError) as e:
            raise CollaboratorUnavailable(f"{ADD_IMPORTS_SERVICE}.add_imports has an unexpected signature: {e}") from e

        try:
            result = add_imports(*arguments)
        except Exception as e:
            raise CollaboratorUnavailable(f"{ADD_IMPORTS_SERVICE} failed: {e}") from e

        if not isinstance(result, SourceDocument):
            raise CollaboratorUnavailable(
                f"{ADD_IMPORTS_SERVICE} returned {type(result).__name__}, expected a SourceDocument"
            )
        return result

    def _resolve(self):
        get_service = getattr(self.host_services, "get_service", None)
        if not callable(get_service):
            raise CollaboratorUnavailable("host services are not available")
        try:
            service = get_service(ADD_IMPORTS_SERVICE)
        except Exception as e:
            raise CollaboratorUnavailable(f"{ADD_IMPORTS_SERVICE} lookup failed: {e}") from e
        if service is None:
            raise CollaboratorUnavailable(f"{ADD_IMPORTS_SERVICE} is not registered")
        add_imports = getattr(service, "add_imports", None)
        if not callable(add_imports):
            raise CollaboratorUnavailable(f"{ADD_IMPORTS_SERVICE} has no add_imports method")
        return add_imports
