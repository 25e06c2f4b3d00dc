"""
Static typing of expressions within one document of a compilation.

The semantic model answers two questions about an expression node: is it
a value, a type or a namespace, and (for values) what is its static type.
It understands enough of C# to type the receivers people complete on:
locals (including ``var``), parameters, fields and properties, literals,
object creation, casts, member access chains, indexers and invocations of
instance and extension methods.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from extmethod_lsp.constants import (
    GENERIC_ENUMERABLE_TYPE,
    LITERAL_TYPES,
    NULLABLE_TYPE,
    STRING_TYPE,
    TASK_OF_T_TYPE,
    TYPE_TYPE,
)

from .binder import BindingContext
from .symbols import (
    ArrayTypeRef,
    ErrorTypeRef,
    FieldSymbol,
    MethodSymbol,
    NamedTypeRef,
    NamedTypeSymbol,
    NamespaceRef,
    NullTypeRef,
    TypeRef,
    all_supertypes,
    contains_error,
    contains_type_parameters,
    is_named,
    is_void,
    substitute,
    type_mapping,
)
from .ts_utils import (
    FUNCTION_NODES,
    TYPE_DECLARATION_NODES,
    ancestors,
    children_of_type,
    declarator_initializer,
    declarator_name,
    field,
    first_child_of_type,
    identifier_of,
    iter_declarators,
    named_children,
    node_text,
    parameter_nodes,
    type_argument_nodes,
)
from .type_matcher import TypeMatcher

if TYPE_CHECKING:
    from collections.abc import Iterator

    from tree_sitter import Node

    from .compilation import Compilation, SourceDocument
    from .symbols import TypeMapping

logger = logging.getLogger(__name__)

_BOOLEAN_OPERATORS = frozenset({"==", "!=", "<", ">", "<=", ">=", "&&", "||"})

# Wider numeric types win in binary arithmetic
_NUMERIC_RANK = {
    "System.Int32": 1,
    "System.UInt32": 2,
    "System.Int64": 3,
    "System.UInt64": 4,
    "System.Single": 5,
    "System.Double": 6,
    "System.Decimal": 7,
}

# Syntax whose pattern variables are not visible outside of it
_SCOPE_BARRIERS = frozenset({"block", "lambda_expression", "anonymous_method_expression"}) | (
    TYPE_DECLARATION_NODES | {"local_function_statement"}
)

_PATTERN_DECLARATIONS = frozenset({"declaration_pattern", "declaration_expression", "recursive_pattern"})

_MAX_DEPTH = 64


class ExpressionKind(Enum):
    VALUE = "value"
    TYPE = "type"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class ExpressionInfo:
    """Classification of an expression and, for values and types, its type."""

    kind: ExpressionKind
    type: TypeRef | None = None
    namespace: str | None = None

    @classmethod
    def value(cls, type_ref: TypeRef | None) -> ExpressionInfo | None:
        if type_ref is None:
            return None
        return cls(ExpressionKind.VALUE, type_ref)

    @property
    def is_value(self) -> bool:
        return self.kind is ExpressionKind.VALUE


class SemanticModel:
    def __init__(self, compilation: Compilation, document: SourceDocument):
        self.compilation = compilation
        self.document = document
        self.path = document.path
        self.binder = compilation.binder
        self.matcher = TypeMatcher(compilation)
        self._local_types: dict[int, TypeRef | None] = {}
        self._resolving: set[int] = set()
        self._depth = 0

    # Scopes

    def binding_context(self, node: Node) -> BindingContext:
        """Type parameters, containing type and usings visible at ``node``."""
        scope = self.compilation.import_scope_at(self.path, node.start_byte)
        containing_type = None
        method_type_parameters = []
        for ancestor in ancestors(node):
            symbol = self.compilation.declared_symbol(self.path, ancestor)
            if isinstance(symbol, MethodSymbol):
                method_type_parameters.extend(symbol.type_parameters)
                if containing_type is None:
                    containing_type = symbol.containing_type
            elif isinstance(symbol, NamedTypeSymbol) and containing_type is None:
                containing_type = symbol
            elif isinstance(symbol, FieldSymbol) and containing_type is None:
                containing_type = symbol.containing_type
        return BindingContext(scope, containing_type, tuple(method_type_parameters))

    def enclosing_type(self, node: Node) -> NamedTypeSymbol | None:
        return self.binding_context(node).containing_type

    def bind_type_syntax(self, node: Node) -> TypeRef:
        return self.binder.bind_type(node, self.binding_context(node))

    # Expressions

    def type_of(self, node: Node) -> TypeRef | None:
        """Static type of a value expression, or None."""
        info = self.classify_expression(node)
        if info is None or not info.is_value:
            return None
        return info.type

    def classify_expression(self, node: Node) -> ExpressionInfo | None:
        if self._depth > _MAX_DEPTH:
            return None
        self._depth += 1
        try:
            return self._classify(node)
        finally:
            self._depth -= 1

    def _classify(self, node: Node) -> ExpressionInfo | None:
        kind = node.type
        handler = getattr(self, f"_classify_{kind}", None)
        if handler is not None:
            return handler(node)
        if kind in LITERAL_TYPES:
            return ExpressionInfo.value(self.compilation.special_type(LITERAL_TYPES[kind]))
        if kind in ("parenthesized_expression", "checked_expression", "ref_expression"):
            inner = named_children(node)
            return self.classify_expression(inner[0]) if inner else None
        if kind in ("this_expression", "this"):
            containing = self.enclosing_type(node)
            return ExpressionInfo.value(containing.self_reference() if containing else None)
        if kind in ("base_expression", "base"):
            containing = self.enclosing_type(node)
            return ExpressionInfo.value(containing.base_type if containing else None)
        if kind == "predefined_type":
            return ExpressionInfo(ExpressionKind.TYPE, self.binder.special_type(node_text(node)))
        if kind in ("is_expression", "is_pattern_expression"):
            return ExpressionInfo.value(self.compilation.special_type("bool"))
        if kind in ("typeof_expression",):
            return ExpressionInfo.value(self.compilation.special_type(TYPE_TYPE))
        if kind == "sizeof_expression":
            return ExpressionInfo.value(self.compilation.special_type("int"))
        if kind in ("object_creation_expression", "array_creation_expression", "cast_expression"):
            return ExpressionInfo.value(self._bound_type_field(node, "type"))
        if kind == "as_expression":
            type_node = field(node, "right", "type") or named_children(node)[-1]
            return ExpressionInfo.value(self.bind_type_syntax(type_node))
        if kind in ("default_expression", "stackalloc_expression"):
            return ExpressionInfo.value(self._bound_type_field(node, "type"))
        if kind in ("assignment_expression", "with_expression"):
            left = field(node, "left") or named_children(node)[0]
            return ExpressionInfo.value(self.type_of(left))
        return None

    def _bound_type_field(self, node: Node, name: str) -> TypeRef | None:
        type_node = field(node, name)
        if type_node is None:
            return None
        return self.bind_type_syntax(type_node)

    def _classify_null_literal(self, node: Node) -> ExpressionInfo | None:
        return ExpressionInfo.value(NullTypeRef())

    def _classify_integer_literal(self, node: Node) -> ExpressionInfo | None:
        return ExpressionInfo.value(self.compilation.special_type(integer_literal_type(node_text(node))))

    def _classify_real_literal(self, node: Node) -> ExpressionInfo | None:
        suffix = node_text(node)[-1:].lower()
        keyword = {"f": "float", "m": "decimal"}.get(suffix, "double")
        return ExpressionInfo.value(self.compilation.special_type(keyword))

    def _classify_identifier(self, node: Node) -> ExpressionInfo | None:
        name = node_text(node)
        local = self.lookup_local(node, name)
        if local is not None:
            return ExpressionInfo.value(local)

        containing = self.enclosing_type(node)
        while containing is not None:
            member = self.lookup_member(containing.self_reference(), name, static_only=False)
            if member is not None:
                return member
            containing = containing.containing_type

        found = self.binder.lookup_simple_name(name, 0, self.binding_context(node))
        return self._name_info(found)

    def _classify_generic_name(self, node: Node) -> ExpressionInfo | None:
        found = self.binder.resolve_name(node, self.binding_context(node))
        return self._name_info(found)

    def _classify_qualified_name(self, node: Node) -> ExpressionInfo | None:
        return self._classify_generic_name(node)

    def _classify_alias_qualified_name(self, node: Node) -> ExpressionInfo | None:
        return self._classify_generic_name(node)

    def _name_info(self, found) -> ExpressionInfo | None:
        if found is None:
            return None
        if isinstance(found, NamespaceRef):
            return ExpressionInfo(ExpressionKind.NAMESPACE, namespace=found.name)
        if isinstance(found, NamedTypeSymbol):
            found = NamedTypeRef(found) if not found.is_generic else found.self_reference()
        return ExpressionInfo(ExpressionKind.TYPE, found)

    def _classify_member_access_expression(self, node: Node) -> ExpressionInfo | None:
        receiver = field(node, "expression") or named_children(node)[0]
        name = field(node, "name") or named_children(node)[-1]
        return self.member_of(self.classify_expression(receiver), name, node)

    def _classify_member_binding_expression(self, node: Node) -> ExpressionInfo | None:
        receiver = self.conditional_receiver_type(node)
        name = field(node, "name") or named_children(node)[-1]
        return self.member_of(ExpressionInfo.value(receiver), name, node)

    def _classify_conditional_access_expression(self, node: Node) -> ExpressionInfo | None:
        condition = field(node, "condition")
        parts = [
            child for child in named_children(node) if condition is None or child.id != condition.id
        ]
        if not parts:
            return None
        return self.classify_expression(parts[-1])

    def _classify_element_binding_expression(self, node: Node) -> ExpressionInfo | None:
        return ExpressionInfo.value(self._element_access_type(self.conditional_receiver_type(node)))

    def _classify_element_access_expression(self, node: Node) -> ExpressionInfo | None:
        receiver = field(node, "expression") or named_children(node)[0]
        return ExpressionInfo.value(self._element_access_type(self.type_of(receiver)))

    def _classify_invocation_expression(self, node: Node) -> ExpressionInfo | None:
        return ExpressionInfo.value(self.invocation_type(node))

    def _classify_await_expression(self, node: Node) -> ExpressionInfo | None:
        operand = named_children(node)
        awaited = self.type_of(operand[-1]) if operand else None
        if is_named(awaited, TASK_OF_T_TYPE):
            return ExpressionInfo.value(awaited.type_arguments[0])
        return None

    def _classify_interpolated_string_expression(self, node: Node) -> ExpressionInfo | None:
        return ExpressionInfo.value(self.compilation.special_type(STRING_TYPE))

    def _classify_prefix_unary_expression(self, node: Node) -> ExpressionInfo | None:
        operand = named_children(node)
        if not operand:
            return None
        if node_text(node).lstrip().startswith("!"):
            return ExpressionInfo.value(self.compilation.special_type("bool"))
        return ExpressionInfo.value(self.type_of(operand[-1]))

    def _classify_postfix_unary_expression(self, node: Node) -> ExpressionInfo | None:
        operand = named_children(node)
        return ExpressionInfo.value(self.type_of(operand[0])) if operand else None

    def _classify_binary_expression(self, node: Node) -> ExpressionInfo | None:
        operator = field(node, "operator")
        operator_text = node_text(operator) if operator is not None else ""
        if not operator_text:
            tokens = [child for child in node.children if not child.is_named]
            operator_text = node_text(tokens[0]) if tokens else ""
        if operator_text in _BOOLEAN_OPERATORS:
            return ExpressionInfo.value(self.compilation.special_type("bool"))
        left = field(node, "left") or named_children(node)[0]
        right = field(node, "right") or named_children(node)[-1]
        left_type = self.type_of(left)
        if operator_text == "??":
            if is_named(left_type, NULLABLE_TYPE):
                return ExpressionInfo.value(left_type.type_arguments[0])
            return ExpressionInfo.value(left_type or self.type_of(right))
        right_type = self.type_of(right)
        if operator_text == "+" and (is_named(left_type, STRING_TYPE) or is_named(right_type, STRING_TYPE)):
            return ExpressionInfo.value(self.compilation.special_type(STRING_TYPE))
        return ExpressionInfo.value(_wider_numeric(left_type, right_type))

    def _classify_conditional_expression(self, node: Node) -> ExpressionInfo | None:
        consequence = field(node, "consequence")
        alternative = field(node, "alternative")
        for branch in (consequence, alternative):
            if branch is None:
                continue
            branch_type = self.type_of(branch)
            if branch_type is not None and not isinstance(branch_type, NullTypeRef):
                return ExpressionInfo.value(branch_type)
        return None

    def _classify_implicit_array_creation_expression(self, node: Node) -> ExpressionInfo | None:
        initializer = first_child_of_type(node, "initializer_expression")
        elements = named_children(initializer) if initializer is not None else []
        element_type = self.type_of(elements[0]) if elements else None
        if element_type is None:
            return None
        return ExpressionInfo.value(ArrayTypeRef(element_type))

    def _classify_tuple_expression(self, node: Node) -> ExpressionInfo | None:
        elements = []
        for argument in children_of_type(node, "argument"):
            value = named_children(argument)
            elements.append(self.type_of(value[-1]) if value else None)
        if any(element is None for element in elements):
            return None
        tuple_symbol = self.compilation.get_type(f"System.ValueTuple`{len(elements)}")
        if tuple_symbol is None:
            return None
        return ExpressionInfo.value(NamedTypeRef(tuple_symbol, tuple(elements)))

    def _classify_switch_expression(self, node: Node) -> ExpressionInfo | None:
        for arm in children_of_type(node, "switch_expression_arm"):
            value = named_children(arm)
            if value:
                arm_type = self.type_of(value[-1])
                if arm_type is not None and not isinstance(arm_type, NullTypeRef):
                    return ExpressionInfo.value(arm_type)
        return None

    # Members

    def member_of(self, receiver: ExpressionInfo | None, name_node: Node, node: Node) -> ExpressionInfo | None:
        """Classify ``receiver.name`` (field, property or nested type)."""
        if receiver is None or name_node is None:
            return None
        identifier = identifier_of(name_node)
        if identifier is None:
            return None
        name = node_text(identifier)
        if receiver.kind is ExpressionKind.NAMESPACE:
            found = self.binder.resolve_member_name(
                NamespaceRef(receiver.namespace or ""), name_node, self.binding_context(node)
            )
            return self._name_info(found)
        if receiver.kind is ExpressionKind.TYPE:
            if isinstance(receiver.type, NamedTypeRef):
                arguments = [self.bind_type_syntax(argument) for argument in type_argument_nodes(name_node)]
                nested = receiver.type.symbol.nested_type(name, len(arguments))
                if nested is not None:
                    return ExpressionInfo(ExpressionKind.TYPE, NamedTypeRef(nested, tuple(arguments)))
            return self.lookup_member(receiver.type, name, static_only=True)
        return self.lookup_member(receiver.type, name, static_only=False)

    def lookup_member(self, receiver: TypeRef | None, name: str, static_only: bool) -> ExpressionInfo | None:
        """Find a field, property, event or nested type named ``name``."""
        for candidate in self._member_search_order(receiver):
            mapping = type_mapping(candidate)
            fields, _ = candidate.symbol.members_named(name)
            for member in fields:
                if static_only and not member.is_static:
                    continue
                if member.type is None:
                    continue
                return ExpressionInfo.value(substitute(member.type, mapping))
            nested = candidate.symbol.nested_type(name)
            if nested is not None:
                return ExpressionInfo(ExpressionKind.TYPE, NamedTypeRef(nested))
        return None

    def lookup_methods(self, receiver: TypeRef | None, name: str) -> list[tuple[MethodSymbol, TypeMapping]]:
        methods = []
        for candidate in self._member_search_order(receiver):
            mapping = type_mapping(candidate)
            _, found = candidate.symbol.members_named(name)
            methods.extend((method, mapping) for method in found)
        return methods

    def _member_search_order(self, receiver: TypeRef | None) -> list[NamedTypeRef]:
        if receiver is None or contains_error(receiver):
            return []
        if isinstance(receiver, NamedTypeRef):
            order = [receiver, *all_supertypes(receiver)]
        else:
            order = self.matcher.supertypes(receiver)
        if not any(candidate.symbol.full_name == "System.Object" for candidate in order):
            obj = self.compilation.special_type("object")
            if isinstance(obj, NamedTypeRef):
                order.append(obj)
        return order

    def _element_access_type(self, receiver: TypeRef | None) -> TypeRef | None:
        if isinstance(receiver, ArrayTypeRef):
            return receiver.element_type
        if is_named(receiver, STRING_TYPE):
            return self.compilation.special_type("char")
        info = self.lookup_member(receiver, "this[]", static_only=False)
        return info.type if info is not None else None

    def conditional_receiver(self, node: Node) -> Node | None:
        """Expression in front of the ``?.`` that ``node`` (a member binding) hangs off."""
        for ancestor in ancestors(node):
            if ancestor.type != "conditional_access_expression":
                continue
            condition = field(ancestor, "condition") or named_children(ancestor)[0]
            if condition.start_byte <= node.start_byte < condition.end_byte:
                continue
            return condition
        return None

    def conditional_receiver_type(self, node: Node) -> TypeRef | None:
        condition = self.conditional_receiver(node)
        if condition is None:
            return None
        receiver = self.type_of(condition)
        if is_named(receiver, NULLABLE_TYPE):
            return receiver.type_arguments[0]
        return receiver

    def element_type(self, collection: TypeRef | None) -> TypeRef | None:
        """Element type seen by ``foreach`` over ``collection``."""
        if isinstance(collection, ArrayTypeRef):
            return collection.element_type
        if is_named(collection, STRING_TYPE):
            return self.compilation.special_type("char")
        for candidate in self._member_search_order(collection):
            if candidate.symbol.full_name == GENERIC_ENUMERABLE_TYPE and candidate.type_arguments:
                return candidate.type_arguments[0]
        if collection is None:
            return None
        return self.compilation.special_type("object")

    # Invocations

    def invocation_type(self, node: Node) -> TypeRef | None:
        function = field(node, "function") or named_children(node)[0]
        arguments = self._argument_nodes(node)

        if function.type in ("member_access_expression", "member_binding_expression"):
            name_node = field(function, "name") or named_children(function)[-1]
            if function.type == "member_access_expression":
                receiver_node = field(function, "expression") or named_children(function)[0]
                receiver = self.classify_expression(receiver_node)
            else:
                receiver = ExpressionInfo.value(self.conditional_receiver_type(function))
            if receiver is None or receiver.kind is ExpressionKind.NAMESPACE:
                return None
            identifier = identifier_of(name_node)
            if identifier is None:
                return None
            explicit = [self.bind_type_syntax(argument) for argument in type_argument_nodes(name_node)]
            name = node_text(identifier)
            methods = [
                (method, mapping)
                for method, mapping in self.lookup_methods(receiver.type, name)
                if method.is_static == (receiver.kind is ExpressionKind.TYPE)
            ]
            result = self._pick_method(methods, arguments, explicit)
            if result is None and receiver.is_value:
                result = self._extension_invocation(node, receiver.type, name, arguments, explicit)
            return result

        if function.type in ("identifier", "generic_name"):
            identifier = identifier_of(function)
            name = node_text(identifier)
            explicit = [self.bind_type_syntax(argument) for argument in type_argument_nodes(function)]
            containing = self.enclosing_type(node)
            while containing is not None:
                methods = self.lookup_methods(containing.self_reference(), name)
                result = self._pick_method(methods, arguments, explicit)
                if result is not None:
                    return result
                containing = containing.containing_type
            local_function = self._local_function(node, name)
            if local_function is not None:
                return self.bind_type_syntax(field(local_function, "type", "returns"))
            if name == "nameof":
                return self.compilation.special_type(STRING_TYPE)

        # Delegate invocation
        delegate = self.type_of(function)
        if isinstance(delegate, NamedTypeRef):
            invoke = [(method, type_mapping(delegate)) for method in delegate.symbol.methods if method.name == "Invoke"]
            return self._pick_method(invoke, arguments, [])
        return None

    def _argument_nodes(self, node: Node) -> list[Node]:
        argument_list = field(node, "arguments") or first_child_of_type(node, "argument_list")
        if argument_list is None:
            return []
        values = []
        for argument in children_of_type(argument_list, "argument"):
            parts = named_children(argument)
            values.append(parts[-1] if parts else argument)
        return values

    def _pick_method(
        self,
        methods: list[tuple[MethodSymbol, TypeMapping]],
        arguments: list[Node],
        explicit: list[TypeRef],
        skip_receiver: bool = False,
    ) -> TypeRef | None:
        for method, mapping in methods:
            parameters = method.parameters[1:] if skip_receiver else method.parameters
            if not _arity_fits(parameters, len(arguments)):
                continue
            if explicit and len(explicit) != method.arity:
                continue
            bindings = dict(mapping)
            if explicit:
                bindings.update(zip(method.type_parameters, explicit))
            elif method.type_parameters:
                bindings.update(self._infer_from_arguments(method, parameters, arguments, bindings))
            if method.return_type is None:
                continue
            return substitute(method.return_type, bindings)
        return None

    def _infer_from_arguments(
        self, method: MethodSymbol, parameters, arguments: list[Node], bindings: TypeMapping
    ) -> TypeMapping:
        inferred: TypeMapping = {}
        for parameter, argument in zip(parameters, arguments):
            declared = substitute(parameter.type, bindings)
            actual = self.type_of(argument)
            if actual is None or contains_error(actual):
                continue
            found = self.matcher.infer(actual, declared, method.type_parameters)
            if not found:
                continue
            for type_parameter, value in found.items():
                inferred.setdefault(type_parameter, value)
        return inferred

    def _extension_invocation(
        self, node: Node, receiver: TypeRef | None, name: str, arguments: list[Node], explicit: list[TypeRef]
    ) -> TypeRef | None:
        if receiver is None or contains_error(receiver):
            return None
        imported = self.compilation.imported_namespaces_at(self.path, node.start_byte)
        for method in self.extension_methods_named(name):
            if method.containing_type.namespace and method.containing_type.namespace not in imported:
                continue
            bindings = self.matcher.match(receiver, method.parameters[0].type, method.type_parameters)
            if bindings is None:
                continue
            result = self._pick_method([(method, bindings)], arguments, explicit, skip_receiver=True)
            if result is not None:
                return result
        return None

    def extension_methods_named(self, name: str) -> list[MethodSymbol]:
        methods = []
        for assembly in self.compilation.assemblies:
            for symbol in assembly.types:
                if not symbol.is_static or symbol.is_generic:
                    continue
                methods.extend(
                    method for method in symbol.methods if method.name == name and method.is_extension
                )
        return methods

    # Lambdas and queries

    def lambda_parameter_type(self, lambda_node: Node, index: int) -> TypeRef | None:
        """Type of the implicitly typed parameter ``index`` of a lambda argument.

        The type comes from the delegate parameter of the invoked method the
        lambda is passed to, after inferring the method's type arguments from
        the receiver and the other arguments (``list.Where(x => ...)`` types
        ``x`` as the list's element type).
        """
        argument = lambda_node.parent
        argument_list = argument.parent if argument is not None else None
        invocation = argument_list.parent if argument_list is not None else None
        if (
            argument is None
            or argument.type != "argument"
            or invocation is None
            or invocation.type != "invocation_expression"
        ):
            return None
        arguments = children_of_type(argument_list, "argument")
        position = next((i for i, item in enumerate(arguments) if item.id == argument.id), None)
        if position is None:
            return None
        count = len(parameter_nodes(lambda_node))

        for method, parameters, bindings in self._invocation_candidates(invocation):
            if position >= len(parameters):
                continue
            delegate = substitute(parameters[position].type, bindings)
            if not isinstance(delegate, NamedTypeRef):
                continue
            invoke = next((item for item in delegate.symbol.methods if item.name == "Invoke"), None)
            if invoke is None or len(invoke.parameters) != count:
                continue
            result = substitute(invoke.parameters[index].type, type_mapping(delegate))
            if contains_error(result) or contains_type_parameters(result, method.type_parameters):
                continue
            return result
        return None

    def _invocation_candidates(self, node: Node) -> Iterator[tuple[MethodSymbol, list, TypeMapping]]:
        """Methods ``node`` may invoke, with the parameters its arguments bind to."""
        function = field(node, "function") or named_children(node)[0]
        arguments = self._argument_nodes(node)
        candidates: list[tuple[MethodSymbol, TypeMapping, bool]] = []

        if function.type in ("member_access_expression", "member_binding_expression"):
            name_node = field(function, "name") or named_children(function)[-1]
            if function.type == "member_access_expression":
                receiver_node = field(function, "expression") or named_children(function)[0]
                receiver = self.classify_expression(receiver_node)
            else:
                receiver = ExpressionInfo.value(self.conditional_receiver_type(function))
            identifier = identifier_of(name_node)
            if receiver is None or receiver.kind is ExpressionKind.NAMESPACE or identifier is None:
                return
            name = node_text(identifier)
            explicit = [self.bind_type_syntax(argument) for argument in type_argument_nodes(name_node)]
            candidates.extend(
                (method, mapping, False)
                for method, mapping in self.lookup_methods(receiver.type, name)
                if method.is_static == (receiver.kind is ExpressionKind.TYPE)
            )
            if receiver.is_value and not contains_error(receiver.type):
                imported = self.compilation.imported_namespaces_at(self.path, node.start_byte)
                for method in self.extension_methods_named(name):
                    namespace = method.containing_type.namespace
                    if namespace and namespace not in imported:
                        continue
                    bindings = self.matcher.match(
                        receiver.type, method.parameters[0].type, method.type_parameters
                    )
                    if bindings is not None:
                        candidates.append((method, bindings, True))
        elif function.type in ("identifier", "generic_name"):
            identifier = identifier_of(function)
            if identifier is None:
                return
            name = node_text(identifier)
            explicit = [self.bind_type_syntax(argument) for argument in type_argument_nodes(function)]
            containing = self.enclosing_type(node)
            while containing is not None:
                candidates.extend(
                    (method, mapping, False)
                    for method, mapping in self.lookup_methods(containing.self_reference(), name)
                )
                containing = containing.containing_type
        else:
            return

        for method, mapping, skip_receiver in candidates:
            parameters = method.parameters[1:] if skip_receiver else method.parameters
            if not _arity_fits(parameters, len(arguments)):
                continue
            if explicit and len(explicit) != method.arity:
                continue
            bindings = dict(mapping)
            if explicit:
                bindings.update(zip(method.type_parameters, explicit))
            elif method.type_parameters:
                bindings.update(self._infer_from_arguments(method, parameters, arguments, bindings))
            yield method, parameters, bindings

    def _range_variable(self, query: Node, child: Node, name: str) -> TypeRef | None:
        """Range variable ``name`` introduced by a clause of ``query`` before ``child``."""
        found = None
        previous = query.prev_named_sibling if query.type == "query_continuation" else None
        for clause in named_children(query):
            if clause.start_byte >= child.start_byte:
                break
            if clause.type in ("from_clause", "join_clause"):
                variable, type_node, source = _range_declaration(clause)
                if variable is not None and node_text(variable) == name:
                    if type_node is not None:
                        found = self.bind_type_syntax(type_node)
                    else:
                        found = self.element_type(self.type_of(source)) if source is not None else None
                        found = found or ErrorTypeRef(name)
            elif clause.type == "let_clause":
                parts = named_children(clause)
                if len(parts) >= 2 and node_text(parts[0]) == name:
                    found = self.type_of(parts[-1]) or ErrorTypeRef(name)
            elif clause.type == "identifier" and query.type == "query_continuation":
                # ``select ... into name`` continues with the selected values
                if node_text(clause) == name:
                    selected = named_children(previous) if previous is not None else []
                    if previous is not None and previous.type == "select_clause" and selected:
                        found = self.type_of(selected[-1]) or ErrorTypeRef(name)
                    else:
                        found = ErrorTypeRef(name)
            previous = clause
        return found

    # Locals and parameters

    def lookup_local(self, node: Node, name: str) -> TypeRef | None:
        """Type of the local, parameter or range variable ``name`` visible at ``node``."""
        child = node
        for ancestor in ancestors(node):
            found = self._declared_in(ancestor, child, node, name)
            if found is not None:
                return found
            if ancestor.type in TYPE_DECLARATION_NODES:
                return None
            child = ancestor
        return None

    def _declared_in(self, ancestor: Node, child: Node, node: Node, name: str) -> TypeRef | None:
        kind = ancestor.type

        if kind in FUNCTION_NODES or kind in TYPE_DECLARATION_NODES:
            for index, parameter in enumerate(parameter_nodes(ancestor)):
                if parameter.type == "identifier":
                    parameter_name, type_node = parameter, None
                else:
                    parameter_name, type_node = field(parameter, "name"), field(parameter, "type")
                if parameter_name is None or node_text(parameter_name) != name:
                    continue
                if type_node is not None:
                    return self.bind_type_syntax(type_node)
                if kind == "lambda_expression":
                    return self.lambda_parameter_type(ancestor, index) or ErrorTypeRef(name)
                return ErrorTypeRef(name)

        if kind in ("query_expression", "query_continuation"):
            found = self._range_variable(ancestor, child, name)
            if found is not None:
                return found

        if kind == "accessor_declaration" and name == "value":
            tokens = {node_text(token) for token in ancestor.children}
            if tokens & {"set", "init", "add", "remove"}:
                owner = next(
                    (
                        item
                        for item in ancestors(ancestor)
                        if item.type
                        in ("property_declaration", "indexer_declaration", "event_declaration")
                    ),
                    None,
                )
                if owner is not None:
                    return self.bind_type_syntax(field(owner, "type"))

        if kind == "foreach_statement":
            variable = field(ancestor, "left")
            if variable is not None and node_text(variable) == name and not _inside(child, variable):
                type_node = field(ancestor, "type")
                if type_node is not None and type_node.type != "implicit_type":
                    return self.bind_type_syntax(type_node)
                collection = field(ancestor, "right")
                return self.element_type(self.type_of(collection)) if collection is not None else None

        if kind == "catch_clause":
            declaration = first_child_of_type(ancestor, "catch_declaration")
            if declaration is not None:
                catch_name = field(declaration, "name") or first_child_of_type(declaration, "identifier")
                if catch_name is not None and node_text(catch_name) == name:
                    return self.bind_type_syntax(field(declaration, "type") or named_children(declaration)[0])

        # Declarations that precede the path to ``node``
        for sibling in ancestor.children:
            if sibling.start_byte >= child.start_byte:
                break
            found = self._declaration_in(sibling, name)
            if found is not None:
                return found
        return None

    def _declaration_in(self, node: Node, name: str) -> TypeRef | None:
        kind = node.type
        if kind == "global_statement":
            inner = named_children(node)
            return self._declaration_in(inner[0], name) if inner else None
        if kind in ("local_declaration_statement", "using_statement", "fixed_statement"):
            declaration = first_child_of_type(node, "variable_declaration")
            if declaration is not None:
                found = self._declaration_in(declaration, name)
                if found is not None:
                    return found
        if kind == "variable_declaration":
            for declarator in iter_declarators(node):
                if declarator_name(declarator) == name:
                    return self._declarator_type(node, declarator)
            return None
        if kind == "local_function_statement" or kind in _SCOPE_BARRIERS:
            return None
        return self._pattern_variable(node, name)

    def _pattern_variable(self, node: Node, name: str) -> TypeRef | None:
        if node.type in _PATTERN_DECLARATIONS:
            designation = field(node, "name", "designation") or first_child_of_type(
                node, "single_variable_designation", "identifier"
            )
            if designation is not None and node_text(designation) == name:
                type_node = field(node, "type")
                if type_node is None or type_node.type == "implicit_type":
                    return ErrorTypeRef(name)
                return self.bind_type_syntax(type_node)
        for child in node.children:
            if child.type in _SCOPE_BARRIERS:
                continue
            found = self._pattern_variable(child, name)
            if found is not None:
                return found
        return None

    def _declarator_type(self, declaration: Node, declarator: Node) -> TypeRef | None:
        key = declarator.start_byte
        if key in self._local_types:
            return self._local_types[key]
        if key in self._resolving:
            return ErrorTypeRef(declarator_name(declarator) or "?")
        self._resolving.add(key)
        try:
            type_node = field(declaration, "type")
            if type_node is not None and type_node.type != "implicit_type" and node_text(type_node) != "var":
                result: TypeRef | None = self.bind_type_syntax(type_node)
            else:
                initializer = declarator_initializer(declarator)
                result = self.type_of(initializer) if initializer is not None else None
                if result is None or isinstance(result, NullTypeRef) or is_void(result):
                    result = ErrorTypeRef(declarator_name(declarator) or "var")
        finally:
            self._resolving.discard(key)
        self._local_types[key] = result
        return result

    def _local_function(self, node: Node, name: str) -> Node | None:
        for ancestor in ancestors(node):
            for child in named_children(ancestor):
                if child.type == "local_function_statement":
                    function_name = field(child, "name")
                    if function_name is not None and node_text(function_name) == name:
                        return child
            if ancestor.type in TYPE_DECLARATION_NODES:
                return None
        return None


def integer_literal_type(text: str) -> str:
    """Keyword of the type of an integer literal (``10L`` -> ``long``)."""
    lowered = text.lower().replace("_", "")
    suffix = ""
    while lowered[-1:] in ("u", "l"):
        suffix = lowered[-1] + suffix
        lowered = lowered[:-1]
    if "u" in suffix and "l" in suffix:
        return "ulong"
    try:
        if lowered.startswith("0x"):
            value = int(lowered[2:] or "0", 16)
        elif lowered.startswith("0b"):
            value = int(lowered[2:] or "0", 2)
        else:
            value = int(lowered or "0")
    except ValueError:
        value = 0
    if suffix == "u":
        return "uint" if value <= 0xFFFFFFFF else "ulong"
    if suffix == "l":
        return "long" if value <= 0x7FFFFFFFFFFFFFFF else "ulong"
    if value <= 0x7FFFFFFF:
        return "int"
    if value <= 0xFFFFFFFF:
        return "uint"
    if value <= 0x7FFFFFFFFFFFFFFF:
        return "long"
    return "ulong"


def _wider_numeric(left: TypeRef | None, right: TypeRef | None) -> TypeRef | None:
    def rank(type_ref):
        if isinstance(type_ref, NamedTypeRef):
            return _NUMERIC_RANK.get(type_ref.symbol.full_name, 0)
        return 0

    if left is None:
        return right
    if right is None:
        return left
    return left if rank(left) >= rank(right) else right


def _arity_fits(parameters, count: int) -> bool:
    if parameters and parameters[-1].is_params:
        return count >= len(parameters) - 1
    required = sum(1 for parameter in parameters if not parameter.has_default)
    return required <= count <= len(parameters)


def _inside(node: Node, container: Node) -> bool:
    return container.start_byte <= node.start_byte and node.end_byte <= container.end_byte


def _range_declaration(clause: Node) -> tuple[Node | None, Node | None, Node | None]:
    """(variable, explicit type, source) of a ``from`` or ``join`` clause."""
    children = [child for child in clause.children if child.type != "comment"]
    position = next(
        (i for i, child in enumerate(children) if not child.is_named and child.type == "in"), None
    )
    if position is None:
        return None, None, None
    before = [child for child in children[:position] if child.is_named]
    after = [child for child in children[position + 1 :] if child.is_named]
    if not before:
        return None, None, None
    type_node = before[-2] if len(before) > 1 else None
    return before[-1], type_node, after[0] if after else None
