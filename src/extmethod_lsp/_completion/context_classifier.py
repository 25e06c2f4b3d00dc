"""
Caret classification: is the caret at a member access, and on what receiver?

An incomplete member access (``list.`` or ``obj?.Som``) does not parse into
a member access node on its own, so the identifier being typed is replaced
by a placeholder and the document is re-parsed. The placeholder's parent
then tells plain access from null-conditional access, and the semantic
model of the repaired compilation types the receiver.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from extmethod_lsp import cancellation
from extmethod_lsp._analyzer.semantic_model import ExpressionKind
from extmethod_lsp._analyzer.symbols import contains_error, display_type, is_void
from extmethod_lsp._analyzer.ts_utils import ancestors, field, named_children, node_text, same_node
from extmethod_lsp.constants import CARET_PLACEHOLDER, NON_ACCESS_ANCESTORS
from extmethod_lsp.models import ReceiverContext

if TYPE_CHECKING:
    from tree_sitter import Node

    from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
    from extmethod_lsp._analyzer.semantic_model import ExpressionInfo, SemanticModel
    from extmethod_lsp.cancellation import CancellationToken

logger = logging.getLogger(__name__)

# Receivers extension methods can never be invoked on
_NON_RECEIVER_NODES = frozenset({"base_expression", "base"})


def classify(
    compilation: Compilation,
    document: SourceDocument,
    position: int,
    token: CancellationToken = cancellation.NONE,
) -> ReceiverContext | None:
    """Classify the caret at character ``position`` of ``document``.

    Args:
        compilation: Program the document belongs to
        document: Current text of the document (may differ from the
            compilation's copy)
        position: Caret offset in characters
        token: Cancellation signal of the request

    Returns:
        The receiver context, or None when the caret is not completing a
        member of a value
    """
    token.raise_if_cancellation_requested()
    text = document.text
    if not 0 <= position <= len(text):
        return None

    start, end = identifier_span(text, position)

    typed_prefix = text[start:position]
    if typed_prefix[:1].isdigit():
        # ``1.5``: a real literal, not a member access
        return None

    dot = start
    while dot > 0 and text[dot - 1].isspace():
        dot -= 1
    if dot == 0 or text[dot - 1] != ".":
        return None
    if dot >= 2 and text[dot - 2] == ".":
        # ``..`` range operator
        return None

    repaired = document.with_text(
        text[:start] + CARET_PLACEHOLDER + _terminator(text, end) + text[end:]
    )
    repaired_compilation = compilation.with_document(repaired)
    token.raise_if_cancellation_requested()

    begin = repaired.byte_offset(start)
    node = repaired.tree.root_node.descendant_for_byte_range(begin, begin + len(CARET_PLACEHOLDER))
    if node is None or node.type != "identifier" or node_text(node) != CARET_PLACEHOLDER:
        return None

    access = node.parent
    if access is None:
        return None
    if access.type == "member_access_expression" and same_node(field(access, "name"), node):
        is_null_conditional = False
    elif access.type == "member_binding_expression":
        is_null_conditional = True
    else:
        return None
    if any(ancestor.type in NON_ACCESS_ANCESTORS for ancestor in ancestors(access)):
        return None

    model = repaired_compilation.semantic_model(repaired)
    receiver_node = _receiver_node(model, access, is_null_conditional)
    if receiver_node is None or receiver_node.type in _NON_RECEIVER_NODES:
        return None

    info = model.classify_expression(receiver_node)
    if info is None:
        logger.debug(f"Unresolved receiver {node_text(receiver_node)!r}")
        return None
    if not info.is_value:
        # Type and namespace names: static access is never a target
        return None

    receiver_type = _receiver_type(model, access, info, is_null_conditional)
    if receiver_type is None or contains_error(receiver_type) or is_void(receiver_type):
        logger.debug(
            f"Receiver {node_text(receiver_node)!r} has no usable type "
            f"({display_type(receiver_type)})"
        )
        return None

    return ReceiverContext(
        receiver_type=receiver_type,
        is_type_name_access=info.kind is ExpressionKind.TYPE,
        is_null_conditional=is_null_conditional,
        typed_prefix=typed_prefix,
        insertion_location=start,
        replacement_end=end,
        call_site_assembly=repaired_compilation.assembly_name,
        compilation=repaired_compilation,
    )


def identifier_span(text: str, position: int) -> tuple[int, int]:
    """Bounds of the identifier the caret at ``position`` is in (empty when none)."""
    start = position
    while start > 0 and _is_identifier_char(text[start - 1]):
        start -= 1
    end = position
    while end < len(text) and _is_identifier_char(text[end]):
        end += 1
    return start, end


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _terminator(text: str, end: int) -> str:
    """``;`` when the member access ends its line, so the next line parses on its own."""
    rest = text[end:].split("\n", 1)[0].strip()
    if not rest or rest.startswith("}"):
        return ";"
    return ""


def _receiver_node(model: SemanticModel, access: Node, is_null_conditional: bool) -> Node | None:
    if is_null_conditional:
        return model.conditional_receiver(access)
    receiver = field(access, "expression")
    if receiver is None:
        children = named_children(access)
        receiver = children[0] if children else None
    return receiver


def _receiver_type(model: SemanticModel, access: Node, info: ExpressionInfo, is_null_conditional: bool):
    if is_null_conditional:
        # ``x?.`` on a Nullable<T> operates on T
        return model.conditional_receiver_type(access)
    return info.type
