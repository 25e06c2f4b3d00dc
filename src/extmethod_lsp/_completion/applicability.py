"""Accept or reject extension candidates for one receiver."""

from __future__ import annotations

from typing import TYPE_CHECKING

from extmethod_lsp._analyzer.type_matcher import TypeMatcher
from extmethod_lsp.models import Accessibility
from extmethod_lsp.options import CompletionOptions

if TYPE_CHECKING:
    from extmethod_lsp._analyzer.symbols import TypeMapping
    from extmethod_lsp.models import ExtensionCandidate, ReceiverContext


class ApplicabilityFilter:
    """Cheap checks first: accessibility, then deprecation, then the type match."""

    def __init__(self, options: CompletionOptions | None = None):
        self.options = options or CompletionOptions()
        self._last_matcher: TypeMatcher | None = None

    def filter(self, candidate: ExtensionCandidate, context: ReceiverContext) -> bool:
        if not self.is_accessible(candidate, context):
            return False
        if self.options.filter_out_obsolete_symbols and candidate.is_obsolete:
            return False
        return self.bindings(candidate, context) is not None

    __call__ = filter

    @staticmethod
    def is_accessible(candidate: ExtensionCandidate, context: ReceiverContext) -> bool:
        if candidate.accessibility is Accessibility.PUBLIC:
            return True
        if candidate.accessibility is Accessibility.INTERNAL:
            return candidate.assembly_name == context.call_site_assembly
        return False

    def bindings(self, candidate: ExtensionCandidate, context: ReceiverContext) -> TypeMapping | None:
        """Inferred method type arguments, or None when the receiver does not fit."""
        return self._matcher(context).match(
            context.receiver_type,
            candidate.first_parameter_type,
            candidate.method.type_parameters,
        )

    def _matcher(self, context: ReceiverContext) -> TypeMatcher:
        matcher = self._last_matcher
        if matcher is None or matcher.universe is not context.compilation:
            matcher = TypeMatcher(
                context.compilation,
                allow_numeric_widening=self.options.receiver_numeric_widening,
            )
            self._last_matcher = matcher
        return matcher
