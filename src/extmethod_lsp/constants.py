"""Constants shared across the analyzer, the completion engine and the server."""

from __future__ import annotations

# C# keyword -> metadata name of the corresponding System type
PREDEFINED_TYPES: dict[str, str] = {
    "object": "System.Object",
    "string": "System.String",
    "bool": "System.Boolean",
    "char": "System.Char",
    "sbyte": "System.SByte",
    "byte": "System.Byte",
    "short": "System.Int16",
    "ushort": "System.UInt16",
    "int": "System.Int32",
    "uint": "System.UInt32",
    "long": "System.Int64",
    "ulong": "System.UInt64",
    "nint": "System.IntPtr",
    "nuint": "System.UIntPtr",
    "float": "System.Single",
    "double": "System.Double",
    "decimal": "System.Decimal",
    "void": "System.Void",
    "dynamic": "System.Object",
}

# Reverse lookup used when rendering types
TYPE_KEYWORDS: dict[str, str] = {
    name: keyword for keyword, name in PREDEFINED_TYPES.items() if keyword != "dynamic"
}

# Implicit numeric conversions
NUMERIC_WIDENING: dict[str, frozenset[str]] = {
    "System.SByte": frozenset(
        {
            "System.Int16",
            "System.Int32",
            "System.Int64",
            "System.Single",
            "System.Double",
            "System.Decimal",
        }
    ),
    "System.Byte": frozenset(
        {
            "System.Int16",
            "System.UInt16",
            "System.Int32",
            "System.UInt32",
            "System.Int64",
            "System.UInt64",
            "System.Single",
            "System.Double",
            "System.Decimal",
        }
    ),
    "System.Int16": frozenset(
        {"System.Int32", "System.Int64", "System.Single", "System.Double", "System.Decimal"}
    ),
    "System.UInt16": frozenset(
        {
            "System.Int32",
            "System.UInt32",
            "System.Int64",
            "System.UInt64",
            "System.Single",
            "System.Double",
            "System.Decimal",
        }
    ),
    "System.Int32": frozenset(
        {"System.Int64", "System.Single", "System.Double", "System.Decimal"}
    ),
    "System.UInt32": frozenset(
        {"System.Int64", "System.UInt64", "System.Single", "System.Double", "System.Decimal"}
    ),
    "System.Int64": frozenset({"System.Single", "System.Double", "System.Decimal"}),
    "System.UInt64": frozenset({"System.Single", "System.Double", "System.Decimal"}),
    "System.Char": frozenset(
        {
            "System.UInt16",
            "System.Int32",
            "System.UInt32",
            "System.Int64",
            "System.UInt64",
            "System.Single",
            "System.Double",
            "System.Decimal",
        }
    ),
    "System.Single": frozenset({"System.Double"}),
}

# Well-known metadata names
OBJECT_TYPE = "System.Object"
VALUE_TYPE = "System.ValueType"
ENUM_TYPE = "System.Enum"
ARRAY_TYPE = "System.Array"
STRING_TYPE = "System.String"
VOID_TYPE = "System.Void"
NULLABLE_TYPE = "System.Nullable`1"
MULTICAST_DELEGATE_TYPE = "System.MulticastDelegate"
TYPE_TYPE = "System.Type"
TASK_OF_T_TYPE = "System.Threading.Tasks.Task`1"
GENERIC_ENUMERABLE_TYPE = "System.Collections.Generic.IEnumerable`1"

# Generic interfaces implemented by every single-dimensional array
ARRAY_GENERIC_INTERFACES: tuple[str, ...] = (
    "System.Collections.Generic.IList`1",
    "System.Collections.Generic.IReadOnlyList`1",
)

# Attribute names that mark a symbol as deprecated
OBSOLETE_ATTRIBUTE_NAMES = frozenset({"Obsolete", "ObsoleteAttribute"})

# Literal node types -> metadata name of their type
LITERAL_TYPES: dict[str, str] = {
    "string_literal": "System.String",
    "verbatim_string_literal": "System.String",
    "raw_string_literal": "System.String",
    "interpolated_string_expression": "System.String",
    "character_literal": "System.Char",
    "boolean_literal": "System.Boolean",
}

# Syntax that can never host a member access worth completing
NON_ACCESS_ANCESTORS = frozenset(
    {
        "attribute_list",
        "attribute_argument_list",
        "using_directive",
        "extern_alias_directive",
        "base_list",
        "type_parameter_constraints_clause",
        "parameter",
        "comment",
        "preproc_if",
        "preproc_elif",
        "preproc_define",
        "preproc_undef",
        "preproc_pragma",
        "preproc_region",
        "preproc_line",
    }
)

# Identifier inserted at the caret so an incomplete member access parses
CARET_PLACEHOLDER = "__extmethod_caret__"

# Assembly name given to user code
SOURCE_ASSEMBLY_NAME = "SourceAssembly"

# Directories skipped while scanning a workspace for C# files
EXCLUDED_DIRS = frozenset({"bin", "obj", ".git", ".vs", "node_modules", "packages"})

# Environment variables
ENV_DISABLE_CACHE = "EXTMETHOD_LSP_DISABLE_CACHE"
ENV_CACHE_SIZE = "EXTMETHOD_LSP_CACHE_SIZE"
ENV_OPTION_PREFIX = "EXTMETHOD_LSP_"

# Tags attached to completion items
TAG_EXTENSION_METHOD = "ExtensionMethod"
TAG_PUBLIC = "Public"
TAG_INTERNAL = "Internal"
