"""
Utilities for working with tree-sitter C# nodes.
Provides helper functions for common node operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable

    from tree_sitter import Node

TYPE_DECLARATION_NODES = frozenset(
    {
        "class_declaration",
        "struct_declaration",
        "interface_declaration",
        "enum_declaration",
        "record_declaration",
        "record_struct_declaration",
        "delegate_declaration",
    }
)

NAMESPACE_NODES = frozenset({"namespace_declaration", "file_scoped_namespace_declaration"})

FUNCTION_NODES = frozenset(
    {
        "method_declaration",
        "constructor_declaration",
        "destructor_declaration",
        "operator_declaration",
        "conversion_operator_declaration",
        "local_function_statement",
        "lambda_expression",
        "anonymous_method_expression",
        "indexer_declaration",
    }
)


def node_text(node: Node | None) -> str:
    """Decode the source text covered by ``node``."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def named_children(node: Node) -> list[Node]:
    """Named children of ``node`` without comments."""
    return [child for child in node.named_children if child.type != "comment"]


def children_of_type(node: Node, *types: str) -> list[Node]:
    return [child for child in node.children if child.type in types]


def first_child_of_type(node: Node, *types: str) -> Node | None:
    for child in node.children:
        if child.type in types:
            return child
    return None


def field(node: Node, *names: str) -> Node | None:
    """Return the first present field among ``names``.

    Grammar releases renamed a few fields (``returns``/``type``), so callers
    list every spelling they accept.
    """
    for name in names:
        child = node.child_by_field_name(name)
        if child is not None:
            return child
    return None


def has_token(node: Node, text: str) -> bool:
    """Check whether an anonymous child token with ``text`` exists."""
    return any(not child.is_named and node_text(child) == text for child in node.children)


def get_modifiers(node: Node) -> set[str]:
    """Collect modifier keywords (``public``, ``static``...) of a declaration."""
    return {node_text(child) for child in node.children if child.type == "modifier"}


def walk_tree(node: Node) -> Generator[Node, None, None]:
    """Walk a tree recursively, yielding all nodes."""
    yield node
    for child in node.children:
        yield from walk_tree(child)


def ancestors(node: Node) -> Generator[Node, None, None]:
    """Yield the parents of ``node``, innermost first."""
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def contains(outer: Node, inner: Node) -> bool:
    return outer.start_byte <= inner.start_byte and inner.end_byte <= outer.end_byte


def same_node(left: Node | None, right: Node | None) -> bool:
    if left is None or right is None:
        return False
    return (
        left.start_byte == right.start_byte
        and left.end_byte == right.end_byte
        and left.type == right.type
    )


def identifier_of(node: Node) -> Node | None:
    """Return the identifier of a simple name (``Foo`` or ``Foo<T>``)."""
    if node.type == "identifier":
        return node
    if node.type == "generic_name":
        return first_child_of_type(node, "identifier")
    return None


def type_argument_nodes(node: Node) -> list[Node]:
    """Type arguments of a ``generic_name``."""
    arguments = first_child_of_type(node, "type_argument_list")
    if arguments is None:
        return []
    return named_children(arguments)


def type_parameter_nodes(node: Node) -> list[Node]:
    """``type_parameter`` nodes of a generic declaration."""
    parameter_list = first_child_of_type(node, "type_parameter_list")
    if parameter_list is None:
        return []
    return children_of_type(parameter_list, "type_parameter")


def parameter_nodes(node: Node) -> list[Node]:
    """Parameters of a method-like declaration."""
    parameter_list = field(node, "parameters") or first_child_of_type(
        node, "parameter_list", "bracketed_parameter_list"
    )
    if parameter_list is None:
        return []
    if parameter_list.type == "identifier":
        # Lambda with a single untyped parameter
        return [parameter_list]
    return children_of_type(parameter_list, "parameter", "parameter_array")


def declarator_initializer(declarator: Node) -> Node | None:
    """Initializer expression of a ``variable_declarator``.

    Older grammars wrap it in ``equals_value_clause``; newer ones put the
    expression right after the ``=`` token.
    """
    clause = first_child_of_type(declarator, "equals_value_clause")
    if clause is not None:
        values = named_children(clause)
        return values[0] if values else None
    seen_equals = False
    for child in declarator.children:
        if not child.is_named and node_text(child) == "=":
            seen_equals = True
        elif seen_equals and child.is_named and child.type != "comment":
            return child
    return None


def declarator_name(declarator: Node) -> str | None:
    name = field(declarator, "name") or first_child_of_type(declarator, "identifier")
    return node_text(name) if name is not None else None


def iter_declarators(declaration: Node) -> Iterable[Node]:
    """``variable_declarator`` children of a ``variable_declaration``."""
    return children_of_type(declaration, "variable_declarator")
