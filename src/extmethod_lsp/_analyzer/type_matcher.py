"""
Type compatibility between a receiver and an extension method's receiver
parameter.

Everything here is a pure function of the type graph: no syntax, no
caches. ``TypeMatcher.match`` answers "can a value of type R be passed as
``this P``" and, when ``P`` mentions the method's own type parameters,
which substitution makes it so.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from extmethod_lsp.constants import (
    ARRAY_GENERIC_INTERFACES,
    ARRAY_TYPE,
    NULLABLE_TYPE,
    NUMERIC_WIDENING,
    OBJECT_TYPE,
    VALUE_TYPE,
)

from .symbols import (
    ArrayTypeRef,
    NamedTypeRef,
    NullTypeRef,
    TypeKind,
    TypeParameterRef,
    TypeParameterSymbol,
    TypeRef,
    Variance,
    all_supertypes,
    contains_error,
    contains_type_parameters,
    is_named,
    is_object,
    substitute,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .binder import TypeLookup
    from .symbols import TypeMapping

logger = logging.getLogger(__name__)


class _Conflict(Exception):
    """Two occurrences of a type parameter inferred different types."""


class TypeMatcher:
    """Receiver applicability and generic inference over the type graph.

    Args:
        universe: Resolves well-known types (``System.Object``, array
            interfaces...) by metadata name
        allow_numeric_widening: Accept ``int`` receivers for ``long``
            parameters and the like
    """

    def __init__(self, universe: TypeLookup, allow_numeric_widening: bool = True):
        self.universe = universe
        self.allow_numeric_widening = allow_numeric_widening

    # Entry point

    def match(
        self,
        receiver: TypeRef,
        parameter: TypeRef,
        type_parameters: Sequence[TypeParameterSymbol] = (),
    ) -> TypeMapping | None:
        """Check applicability of ``receiver`` to ``parameter``.

        Returns:
            The inferred bindings for ``type_parameters`` (empty when nothing
            needed inferring), or None when the receiver does not apply
        """
        if contains_error(receiver) or contains_error(parameter):
            return None
        open_parameters = list(type_parameters)

        if self._is_opaque_receiver(receiver, open_parameters):
            return self._match_opaque(receiver, parameter, open_parameters)

        if not open_parameters or not contains_type_parameters(parameter, open_parameters):
            return {} if self.is_convertible(receiver, parameter) else None

        bindings = self.infer(receiver, parameter, open_parameters)
        if bindings is None:
            return None
        if not self.is_convertible(receiver, substitute(parameter, bindings)):
            return None
        if not self.satisfies_constraints(bindings, open_parameters):
            return None
        return bindings

    @staticmethod
    def _is_opaque_receiver(receiver: TypeRef, open_parameters: list[TypeParameterSymbol]) -> bool:
        if isinstance(receiver, NullTypeRef):
            return True
        return (
            isinstance(receiver, TypeParameterRef)
            and receiver.parameter not in open_parameters
            and receiver.parameter.is_unconstrained
        )

    def _match_opaque(
        self, receiver: TypeRef, parameter: TypeRef, open_parameters: list[TypeParameterSymbol]
    ) -> TypeMapping | None:
        # Nothing is known about null or an unconstrained T: only object or
        # an equally unconstrained type parameter can accept it.
        if is_object(parameter):
            return {}
        if isinstance(parameter, TypeParameterRef):
            if parameter == receiver:
                return {}
            if parameter.parameter in open_parameters and parameter.parameter.is_unconstrained:
                if isinstance(receiver, NullTypeRef):
                    return {parameter.parameter: self._object()}
                return {parameter.parameter: receiver}
        return None

    # Inference

    def infer(
        self,
        receiver: TypeRef,
        parameter: TypeRef,
        type_parameters: Sequence[TypeParameterSymbol],
    ) -> TypeMapping | None:
        """Infer bindings for ``type_parameters`` from one argument.

        Only the parameters that occur in ``parameter`` get bound. Returns
        None when the shapes do not unify, inference conflicts, or the
        receiver implements the parameter's generic definition more than
        once with different arguments.
        """
        try:
            return self._lower_bound(receiver, parameter, list(type_parameters), {})
        except _Conflict:
            return None

    def _bind(
        self, parameter: TypeParameterSymbol, inferred: TypeRef, bindings: TypeMapping
    ) -> TypeMapping:
        existing = bindings.get(parameter)
        if existing is not None and existing != inferred:
            raise _Conflict(parameter.name)
        result = dict(bindings)
        result[parameter] = inferred
        return result

    def _exact(
        self,
        receiver: TypeRef,
        parameter: TypeRef,
        open_parameters: list[TypeParameterSymbol],
        bindings: TypeMapping,
    ) -> TypeMapping | None:
        if isinstance(parameter, TypeParameterRef) and parameter.parameter in open_parameters:
            return self._bind(parameter.parameter, receiver, bindings)
        if not contains_type_parameters(parameter, open_parameters):
            return bindings if receiver == parameter else None
        if isinstance(parameter, ArrayTypeRef):
            if not isinstance(receiver, ArrayTypeRef) or receiver.rank != parameter.rank:
                return None
            return self._exact(receiver.element_type, parameter.element_type, open_parameters, bindings)
        if isinstance(parameter, NamedTypeRef):
            if not isinstance(receiver, NamedTypeRef) or receiver.symbol is not parameter.symbol:
                return None
            for actual, declared in zip(receiver.type_arguments, parameter.type_arguments):
                bindings = self._exact(actual, declared, open_parameters, bindings)
                if bindings is None:
                    return None
            return bindings
        return None

    def _lower_bound(
        self,
        receiver: TypeRef,
        parameter: TypeRef,
        open_parameters: list[TypeParameterSymbol],
        bindings: TypeMapping,
    ) -> TypeMapping | None:
        if isinstance(parameter, TypeParameterRef) and parameter.parameter in open_parameters:
            return self._bind(parameter.parameter, receiver, bindings)
        if not contains_type_parameters(parameter, open_parameters):
            return bindings if self.is_convertible(receiver, parameter) else None

        if isinstance(parameter, ArrayTypeRef):
            if not isinstance(receiver, ArrayTypeRef) or receiver.rank != parameter.rank:
                return None
            if self.is_reference_type(receiver.element_type):
                return self._lower_bound(
                    receiver.element_type, parameter.element_type, open_parameters, bindings
                )
            return self._exact(receiver.element_type, parameter.element_type, open_parameters, bindings)

        if not isinstance(parameter, NamedTypeRef):
            return None

        # Every way the receiver can be seen as the parameter's definition
        results: list[TypeMapping] = []
        for candidate in self._self_and_supertypes(receiver):
            if candidate.symbol is not parameter.symbol:
                continue
            inferred = self._unify_arguments(candidate, parameter, open_parameters, bindings)
            if inferred is not None and inferred not in results:
                results.append(inferred)
        if len(results) != 1:
            if len(results) > 1:
                logger.debug(f"Ambiguous inference for {parameter!r}")
            return None
        return results[0]

    def _unify_arguments(
        self,
        candidate: NamedTypeRef,
        parameter: NamedTypeRef,
        open_parameters: list[TypeParameterSymbol],
        bindings: TypeMapping,
    ) -> TypeMapping | None:
        definition = parameter.symbol.type_parameters
        try:
            for index, (actual, declared) in enumerate(
                zip(candidate.type_arguments, parameter.type_arguments)
            ):
                variance = definition[index].variance if index < len(definition) else Variance.INVARIANT
                if variance is Variance.COVARIANT and self.is_reference_type(actual):
                    bindings = self._lower_bound(actual, declared, open_parameters, bindings)
                else:
                    bindings = self._exact(actual, declared, open_parameters, bindings)
                if bindings is None:
                    return None
        except _Conflict:
            return None
        return bindings

    # Constraints

    def satisfies_constraints(
        self, bindings: TypeMapping, type_parameters: Sequence[TypeParameterSymbol]
    ) -> bool:
        unbound = [parameter for parameter in type_parameters if parameter not in bindings]
        for parameter, argument in bindings.items():
            if not self.satisfies(parameter, argument, bindings, unbound):
                logger.debug(f"{argument!r} violates the constraints of {parameter.name}")
                return False
        return True

    def satisfies(
        self,
        parameter: TypeParameterSymbol,
        argument: TypeRef,
        bindings: TypeMapping,
        unbound: list[TypeParameterSymbol] | None = None,
    ) -> bool:
        if contains_error(argument):
            return False
        if parameter.has_reference_constraint and not self.is_reference_type(argument):
            return False
        if parameter.has_value_constraint and not self.is_non_nullable_value_type(argument):
            return False
        if parameter.has_notnull_constraint and isinstance(argument, NullTypeRef):
            return False
        if parameter.has_constructor_constraint and not self._has_default_constructor(argument):
            return False
        for constraint in parameter.constraint_types:
            bound = substitute(constraint, bindings)
            if unbound and contains_type_parameters(bound, unbound):
                # Depends on a parameter inferred from other arguments
                continue
            if not self._convertible(argument, bound, allow_value_conversions=False):
                return False
        return True

    def _has_default_constructor(self, argument: TypeRef) -> bool:
        if isinstance(argument, NamedTypeRef):
            return argument.symbol.has_default_constructor
        if isinstance(argument, TypeParameterRef):
            return (
                argument.parameter.has_constructor_constraint
                or argument.parameter.has_value_constraint
            )
        return False

    # Conversions

    def is_convertible(self, source: TypeRef, target: TypeRef) -> bool:
        """Implicit identity, reference, boxing, nullable or numeric conversion."""
        return self._convertible(source, target, allow_value_conversions=True)

    def _convertible(self, source: TypeRef, target: TypeRef, allow_value_conversions: bool) -> bool:
        if source == target:
            return True
        if contains_error(source) or contains_error(target):
            return False
        if isinstance(source, NullTypeRef):
            return self.is_reference_type(target) or is_named(target, NULLABLE_TYPE)
        if is_object(target):
            return True
        if isinstance(target, TypeParameterRef):
            return False

        if isinstance(source, NamedTypeRef) and allow_value_conversions:
            if self.allow_numeric_widening and isinstance(target, NamedTypeRef):
                widened = NUMERIC_WIDENING.get(source.symbol.full_name, ())
                if target.symbol.full_name in widened:
                    return True
            if (
                is_named(target, NULLABLE_TYPE)
                and target.type_arguments
                and not is_named(source, NULLABLE_TYPE)
                and source.symbol.is_value_type
            ):
                return self._convertible(source, target.type_arguments[0], True)

        if isinstance(source, ArrayTypeRef) and isinstance(target, ArrayTypeRef):
            if source.rank != target.rank:
                return False
            return self.is_reference_type(source.element_type) and self._convertible(
                source.element_type, target.element_type, allow_value_conversions=False
            )

        if not isinstance(target, NamedTypeRef):
            return False
        return any(
            self._variant_equal(supertype, target)
            for supertype in self._self_and_supertypes(source)
        )

    def _variant_equal(self, source: NamedTypeRef, target: NamedTypeRef) -> bool:
        if source.symbol is not target.symbol:
            return False
        definition = target.symbol.type_parameters
        for index, (actual, expected) in enumerate(zip(source.type_arguments, target.type_arguments)):
            if actual == expected:
                continue
            variance = definition[index].variance if index < len(definition) else Variance.INVARIANT
            if variance is Variance.COVARIANT:
                if not (
                    self.is_reference_type(actual)
                    and self._convertible(actual, expected, allow_value_conversions=False)
                ):
                    return False
            elif variance is Variance.CONTRAVARIANT:
                if not (
                    self.is_reference_type(expected)
                    and self._convertible(expected, actual, allow_value_conversions=False)
                ):
                    return False
            else:
                return False
        return True

    # Type graph helpers

    def is_reference_type(self, type_ref: TypeRef) -> bool:
        if isinstance(type_ref, (ArrayTypeRef, NullTypeRef)):
            return True
        if isinstance(type_ref, NamedTypeRef):
            return type_ref.symbol.is_reference_type
        if isinstance(type_ref, TypeParameterRef):
            parameter = type_ref.parameter
            if parameter.has_reference_constraint:
                return True
            return any(
                isinstance(constraint, NamedTypeRef)
                and constraint.symbol.is_reference_type
                and not is_object(constraint)
                and constraint.symbol.kind is TypeKind.CLASS
                for constraint in parameter.constraint_types
            )
        return False

    def is_non_nullable_value_type(self, type_ref: TypeRef) -> bool:
        if isinstance(type_ref, NamedTypeRef):
            return type_ref.symbol.is_value_type and not is_named(type_ref, NULLABLE_TYPE)
        if isinstance(type_ref, TypeParameterRef):
            return type_ref.parameter.has_value_constraint
        return False

    def _object(self) -> TypeRef:
        symbol = self.universe.get_type(OBJECT_TYPE)
        return NamedTypeRef(symbol) if symbol is not None else NullTypeRef()

    def _self_and_supertypes(self, type_ref: TypeRef) -> list[NamedTypeRef]:
        if isinstance(type_ref, NamedTypeRef):
            return [type_ref, *self.supertypes(type_ref)]
        return self.supertypes(type_ref)

    def supertypes(self, type_ref: TypeRef) -> list[NamedTypeRef]:
        """Named types ``type_ref`` converts to by reference or boxing conversion."""
        if isinstance(type_ref, NamedTypeRef):
            return all_supertypes(type_ref)
        result: list[NamedTypeRef] = []
        if isinstance(type_ref, ArrayTypeRef):
            array = self.universe.get_type(ARRAY_TYPE)
            if array is not None:
                array_ref = NamedTypeRef(array)
                result.append(array_ref)
                result.extend(all_supertypes(array_ref))
            if type_ref.rank == 1:
                for name in ARRAY_GENERIC_INTERFACES:
                    interface = self.universe.get_type(name)
                    if interface is None:
                        continue
                    constructed = NamedTypeRef(interface, (type_ref.element_type,))
                    result.append(constructed)
                    result.extend(all_supertypes(constructed))
        elif isinstance(type_ref, TypeParameterRef):
            parameter = type_ref.parameter
            for constraint in parameter.constraint_types:
                if isinstance(constraint, NamedTypeRef):
                    result.append(constraint)
                result.extend(self.supertypes(constraint))
            if parameter.has_value_constraint:
                value_type = self.universe.get_type(VALUE_TYPE)
                if value_type is not None:
                    result.append(NamedTypeRef(value_type))
        deduplicated: list[NamedTypeRef] = []
        for supertype in result:
            if supertype not in deduplicated:
                deduplicated.append(supertype)
        return deduplicated
