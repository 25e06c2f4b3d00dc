"""Tests for declaration collection, binding and compilation snapshots."""

from __future__ import annotations

from extmethod_lsp._analyzer import ts_parser
from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
from extmethod_lsp._analyzer.declarations import is_obsolete_attribute
from extmethod_lsp._analyzer.symbols import TypeKind, display_type
from extmethod_lsp.models import Accessibility


def compile_one(references, text, path="/src/A.cs"):
    return Compilation([SourceDocument(path, text)], references)


class TestDeclarations:
    """Types, members and their accessibility."""

    def test_partial_classes_merge(self, references):
        compilation = Compilation(
            [
                SourceDocument("/src/A.cs", "namespace NM { public static partial class Ext { public static void A(this int x) { } } }"),
                SourceDocument("/src/B.cs", "namespace NM { static partial class Ext { public static void B(this int x) { } } }"),
            ],
            references,
        )
        ext = compilation.get_type("NM.Ext")
        assert [method.name for method in ext.methods] == ["A", "B"]
        assert ext.declared_accessibility is Accessibility.PUBLIC
        assert ext.is_static

    def test_default_accessibility(self, references):
        compilation = compile_one(
            references,
            """\
class TopLevel
{
    void Member() { }
    class Nested { }
}
interface IShape
{
    void Draw();
}
""",
        )
        top = compilation.get_type("TopLevel")
        assert top.declared_accessibility is Accessibility.INTERNAL
        assert top.methods[0].declared_accessibility is Accessibility.PROTECTED_OR_PRIVATE
        assert top.nested_type("Nested").effective_accessibility is Accessibility.PROTECTED_OR_PRIVATE
        assert compilation.get_type("IShape").methods[0].declared_accessibility is Accessibility.PUBLIC

    def test_type_kinds_and_implicit_bases(self, references):
        compilation = compile_one(
            references,
            """\
struct Point { }
enum Color { Red, Green }
record Person(string Name);
delegate void Handler(int value);
""",
        )
        assert compilation.get_type("Point").kind is TypeKind.STRUCT
        assert display_type(compilation.get_type("Point").base_type) == "ValueType"
        assert display_type(compilation.get_type("Color").base_type) == "Enum"
        person = compilation.get_type("Person")
        assert person.is_record
        assert display_type(person.fields[0].type) == "string"
        assert compilation.get_type("Handler").kind is TypeKind.DELEGATE

    def test_extension_method_shape(self, references):
        compilation = compile_one(
            references,
            """\
using System.Collections.Generic;
namespace NM
{
    public static class Ext
    {
        public static IEnumerable<T> Twice<T>(this IEnumerable<T> source, int count = 2) where T : class { return source; }
    }
}
""",
        )
        method = compilation.get_type("NM.Ext").methods[0]
        assert method.is_extension
        assert display_type(method.receiver_type) == "IEnumerable<T>"
        assert method.type_parameters[0].has_reference_constraint
        assert method.parameters[1].has_default
        assert method.signature() == "IEnumerable<T> Twice<T>(int count)"

    def test_obsolete_attribute_names(self):
        assert is_obsolete_attribute("Obsolete")
        assert is_obsolete_attribute("System.Obsolete")
        assert is_obsolete_attribute("global::System.ObsoleteAttribute")
        assert not is_obsolete_attribute("Other.Obsolete")
        assert not is_obsolete_attribute("ObsoleteLike")


class TestBinding:
    def test_generic_bases_are_substituted(self, references):
        compilation = compile_one(
            references,
            """\
using System.Collections.Generic;
class Names : List<string> { }
""",
        )
        names = compilation.get_type("Names")
        assert display_type(names.base_type) == "List<string>"

    def test_unresolved_types_become_errors(self, references):
        compilation = compile_one(references, "class C { Missing Field; }")
        assert display_type(compilation.get_type("C").fields[0].type) == "Missing"

    def test_using_alias(self, references):
        compilation = compile_one(
            references,
            """\
using Strings = System.Collections.Generic.List<string>;
class C { Strings Field; }
""",
        )
        assert display_type(compilation.get_type("C").fields[0].type) == "List<string>"

    def test_global_using_applies_to_every_file(self, references):
        compilation = Compilation(
            [
                SourceDocument("/src/Usings.cs", "global using System.Collections.Generic;"),
                SourceDocument("/src/C.cs", "class C { List<int> Field; }"),
            ],
            references,
        )
        assert display_type(compilation.get_type("C").fields[0].type) == "List<int>"


class TestScopes:
    SOURCE = """\
using System;

namespace Outer.Inner
{
    using System.Linq;

    class C { }
}

class D { }
"""

    def test_imported_namespaces(self, references):
        compilation = compile_one(references, self.SOURCE)
        inside = compilation.imported_namespaces_at("/src/A.cs", self.SOURCE.index("class C"))
        outside = compilation.imported_namespaces_at("/src/A.cs", self.SOURCE.index("class D"))

        assert {"System", "System.Linq", "Outer", "Outer.Inner"} <= inside
        assert "System.Linq" not in outside
        assert "System" in outside

    def test_file_scoped_namespace(self, references):
        compilation = compile_one(references, "namespace App;\n\npublic class Widget { }\n")
        assert compilation.get_type("App.Widget") is not None


class TestSnapshots:
    def test_with_document_shares_references(self, references):
        compilation = compile_one(references, "class A { }")
        updated = compilation.with_document(SourceDocument("/src/A.cs", "class B { }"))

        assert updated.references == compilation.references
        assert updated.get_type("B") is not None
        assert updated.get_type("A") is None
        assert compilation.get_type("A") is not None

    def test_with_new_document_adds_it(self, references):
        compilation = compile_one(references, "class A { }")
        updated = compilation.with_document(SourceDocument("/src/B.cs", "class B { }"))
        assert len(updated.documents) == 2

    def test_source_types_shadow_references(self, references):
        compilation = compile_one(references, "namespace System.Linq { public static class Enumerable { } }")
        assert compilation.get_type("System.Linq.Enumerable").assembly_name == compilation.assembly_name

    def test_character_offsets(self):
        document = SourceDocument("/src/A.cs", "// é\nclass C { }")
        offset = document.text.index("class")
        assert document.byte_offset(offset) == offset + 1
        assert document.char_offset(document.byte_offset(offset)) == offset


class TestParseCache:
    def test_identical_text_is_parsed_once(self):
        source = "class Cached { }"
        first = ts_parser.parse(source)
        second = ts_parser.parse(source.encode("utf-8"))
        if ts_parser.get_cache_stats()["enabled"]:
            assert first is second

    def test_clear_cache(self):
        ts_parser.parse("class Cleared { }")
        ts_parser.clear_cache()
        assert ts_parser.get_cache_stats()["size"] == 0
