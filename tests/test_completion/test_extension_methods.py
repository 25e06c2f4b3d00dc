"""Tests for extension method completion end to end."""

from __future__ import annotations

from extmethod_lsp._analyzer.compilation import SourceDocument
from extmethod_lsp.metadata import build_reference, default_references
from extmethod_lsp.options import CompletionOptions

OBJECT_EXTENSIONS = """\
namespace NM
{
    public static class ObjectExtensions
    {
        public static void Do(this object obj)
        { }
    }
}
"""


STRING_EXTENSIONS = """\
namespace NM
{
    public static class StringExtensions
    {
        public static string Shout(this string text) { return text; }
    }
}
"""


def contains(items, display_text, namespace):
    return any(
        item.display_text == display_text and item.origin_namespace == namespace for item in items
    )


def names(items):
    return [item.display_text for item in items]


class TestReferencedLibraries:
    """Suggestions coming from referenced assemblies."""

    def test_linq_on_list(self, get_completions):
        """List<string> gets the LINQ operators of System.Linq."""
        source = """\
using System.Collections.Generic;
public class Test {
    public void Method() {
        var list = new List<string>();
        list.
    }
}
"""
        completions = get_completions(source, marker="list.")
        assert contains(completions, "Select<>", "System.Linq")
        assert contains(completions, "Where<>", "System.Linq")
        assert contains(completions, "ToList<>", "System.Linq")

    def test_linq_on_list_null_conditional(self, get_completions):
        """``list?.`` offers the same methods as ``list.``."""
        source = """\
using System.Collections.Generic;
public class Test {
    public void Method() {
        var list = new List<string>();
        list?.
    }
}
"""
        completions = get_completions(source, marker="list?.")
        assert contains(completions, "Select<>", "System.Linq")

    def test_element_type_specific_overloads(self, get_completions):
        """Sum(this IEnumerable<int>) applies to int lists only."""
        template = """\
using System.Collections.Generic;
public class Test {
    public void Method() {
        var values = new List<%s>();
        values.Su
    }
}
"""
        ints = get_completions(template % "int", marker="values.Su")
        strings = get_completions(template % "string", marker="values.Su")

        int_signatures = [item.candidate.parameter_signature for item in ints if item.display_text == "Sum"]
        assert "()" in int_signatures
        # Only the selector overload is generic enough for strings
        assert not any(item.display_text == "Sum" for item in strings)
        assert contains(strings, "Sum<>", "System.Linq")

    def test_arrays_see_enumerable_methods(self, get_completions):
        """Single-dimensional arrays implement IEnumerable<T>."""
        source = """\
public class Test {
    public void Method(string[] words) {
        words.
    }
}
"""
        completions = get_completions(source, marker="words.")
        assert contains(completions, "Select<>", "System.Linq")

    def test_non_generic_enumerable_only_gets_cast(self, get_completions):
        """ArrayList-like receivers only get Cast and OfType."""
        source = """\
using System.Collections;
public class Test {
    public void Method(IEnumerable items) {
        items.
    }
}
"""
        completions = get_completions(source, marker="items.")
        assert contains(completions, "Cast<>", "System.Linq")
        assert contains(completions, "OfType<>", "System.Linq")
        assert not contains(completions, "Select<>", "System.Linq")


class TestUserCode:
    """Suggestions declared in the program being edited."""

    def test_object_extension(self, get_completions):
        """An extension on object applies to an object local."""
        source = """\
public class Test {
    public void Method() {
        object obj = null;
        obj.
    }
}
"""
        completions = get_completions(source, OBJECT_EXTENSIONS, marker="obj.")
        assert contains(completions, "Do", "NM")

    def test_literal_receiver(self, get_completions):
        """Integer literals are values too."""
        source = """\
public class Test {
    public void Method() {
        111.
    }
}
"""
        completions = get_completions(source, OBJECT_EXTENSIONS, marker="111.")
        assert contains(completions, "Do", "NM")

    def test_type_name_access(self, get_completions):
        """``object.`` is a static access and gets nothing."""
        source = """\
public class Test {
    public void Method() {
        object.
    }
}
"""
        completions = get_completions(source, OBJECT_EXTENSIONS, marker="object.")
        assert completions == []

    def test_user_type_name_access(self, get_completions):
        """Type names declared in user code are not receivers either."""
        source = """\
public class Test {
    public void Method() {
        Test.
    }
}
"""
        completions = get_completions(source, OBJECT_EXTENSIONS, marker="Test.")
        assert completions == []

    def test_obsolete_methods_and_containers(self, get_completions):
        """Obsolete methods and methods of obsolete classes are hidden."""
        source = """\
public class Test {
    public void Method() {
        object obj = null;
        obj.
    }
}
"""
        extensions = """\
namespace NM
{
    [System.Obsolete]
    public static class ObjectExtensions1
    {
        public static void Do1(this object obj)
        { }
    }

    public static class ObjectExtensions2
    {
        [System.Obsolete]
        public static void Do2(this object obj)
        { }

        public static void Do3(this object obj)
        { }
    }
}
"""
        completions = get_completions(source, extensions, marker="obj.")
        assert not contains(completions, "Do1", "NM")
        assert not contains(completions, "Do2", "NM")
        assert contains(completions, "Do3", "NM")

    def test_obsolete_shown_when_filter_disabled(self, get_completions):
        """Turning the option off brings obsolete methods back."""
        source = """\
public class Test {
    public void Method(object obj) {
        obj.
    }
}
"""
        extensions = """\
namespace NM
{
    public static class ObjectExtensions
    {
        [Obsolete("use something else")]
        public static void Old(this object obj)
        { }
    }
}
"""
        options = CompletionOptions(filter_out_obsolete_symbols=False)
        completions = get_completions(source, extensions, marker="obj.", options=options)
        assert contains(completions, "Old", "NM")

    def test_private_extension_methods(self, get_completions):
        """Private extension methods are never suggested."""
        source = """\
public class Test {
    public void Method() {
        object obj = null;
        obj.
    }
}
"""
        extensions = """\
namespace NM
{
    public static class ObjectExtensions1
    {
        private static void PrivateExtMethod(this object obj)
        { }
    }
}
"""
        completions = get_completions(source, extensions, marker="obj.")
        assert not contains(completions, "PrivateExtMethod", "NM")

    def test_typed_prefix(self, get_completions):
        """Text already typed after the dot filters the suggestions."""
        source = """\
public class Test {
    public void Method() {
        object obj = null;
        obj.Some
    }
}
"""
        extensions = """\
namespace NM
{
    public static class ObjectExtensions1
    {
        public static void SomeExtension(this object obj)
        { }

        public static void Other(this object obj)
        { }
    }
}
"""
        completions = get_completions(source, extensions, marker="obj.Some")
        assert contains(completions, "SomeExtension", "NM")
        assert not contains(completions, "Other", "NM")

    def test_typed_prefix_null_conditional(self, get_completions):
        """Typed prefix after ``?.``."""
        source = """\
public class Test {
    public void Method() {
        object obj = null;
        obj?.Some
    }
}
"""
        extensions = """\
namespace NM
{
    public static class ObjectExtensions1
    {
        public static void SomeExtension(this object obj)
        { }
    }
}
"""
        completions = get_completions(source, extensions, marker="obj?.Some")
        assert contains(completions, "SomeExtension", "NM")

    def test_no_completions_outside_member_access(self, compile_sources, provider):
        """No caret position of a program without member accesses yields items."""
        source = """\
using System;
namespace A{
    class CA
    {
        [System.Obsolete]
        public void MA(int par)
        {
            var a = 0;
        }
    }
}
namespace B{
    static class B{
        public static void ExtIntM(this int par)
        { }
    }
}
"""
        compilation = compile_sources(source, OBJECT_EXTENSIONS)
        document = compilation.document("/workspace/Main.cs")
        for position in range(len(source) + 1):
            assert provider.provide_completions(compilation, document, position) == [], position

    def test_disabled_by_option(self, get_completions):
        """The master switch turns the provider off."""
        source = """\
public class Test {
    public void Method(object obj) {
        obj.
    }
}
"""
        options = CompletionOptions(enable_extension_methods_suggestions=False)
        assert get_completions(source, OBJECT_EXTENSIONS, marker="obj.", options=options) == []

    def test_user_code_only(self, get_completions):
        """Referenced libraries can be left out."""
        source = """\
using System.Collections.Generic;
public class Test {
    public void Method(List<string> list) {
        list.
    }
}
"""
        extensions = """\
using System.Collections.Generic;
namespace NM
{
    public static class ListExtensions
    {
        public static void Shuffle<T>(this IList<T> list)
        { }
    }
}
"""
        options = CompletionOptions(user_code_only_suggestions=True)
        completions = get_completions(source, extensions, marker="list.", options=options)
        assert contains(completions, "Shuffle<>", "NM")
        assert not contains(completions, "Select<>", "System.Linq")


class TestAccessibility:
    """Internal methods only show up inside their own assembly."""

    INTERNAL_EXTENSIONS = """\
namespace Lib
{
    internal static class Hidden
    {
        public static void Secret(this object obj)
        { }
    }

    public static class Visible
    {
        internal static void AlsoSecret(this object obj)
        { }

        public static void Shown(this object obj)
        { }
    }
}
"""

    SOURCE = """\
public class Test {
    public void Method(object obj) {
        obj.
    }
}
"""

    def test_internal_in_same_assembly(self, get_completions):
        completions = get_completions(self.SOURCE, self.INTERNAL_EXTENSIONS, marker="obj.")
        assert contains(completions, "Secret", "Lib")
        assert contains(completions, "AlsoSecret", "Lib")
        assert contains(completions, "Shown", "Lib")

    def test_internal_in_referenced_assembly(self, get_completions):
        library = build_reference(
            "Lib",
            "1.0.0",
            [SourceDocument("/lib/Lib.cs", self.INTERNAL_EXTENSIONS)],
            default_references(),
        )
        completions = get_completions(self.SOURCE, marker="obj.", extra_references=(library,))
        assert not contains(completions, "Secret", "Lib")
        assert not contains(completions, "AlsoSecret", "Lib")
        assert contains(completions, "Shown", "Lib")

    def test_tags(self, get_completions):
        completions = get_completions(self.SOURCE, self.INTERNAL_EXTENSIONS, marker="obj.")
        by_name = {item.display_text: item for item in completions}
        assert by_name["Shown"].tags == frozenset({"ExtensionMethod", "Public"})
        assert by_name["Secret"].tags == frozenset({"ExtensionMethod", "Internal"})


class TestReceiverTypes:
    """Applicability across constraints, generics and value types."""

    def test_struct_constraint(self, get_completions):
        """``where T : struct`` accepts int and rejects string."""
        extensions = """\
namespace NM
{
    public static class ValueExtensions
    {
        public static T? AsNullable<T>(this T value) where T : struct
        { return value; }
    }
}
"""
        template = """\
public class Test {
    public void Method(%s value) {
        value.
    }
}
"""
        assert contains(get_completions(template % "int", extensions, marker="value."), "AsNullable<>", "NM")
        assert not contains(
            get_completions(template % "string", extensions, marker="value."), "AsNullable<>", "NM"
        )

    def test_conflicting_inference(self, get_completions):
        """Pair<T>(IDictionary<T, T>) does not apply to Dictionary<string, int>."""
        extensions = """\
using System.Collections.Generic;
namespace NM
{
    public static class DictionaryExtensions
    {
        public static void Pair<T>(this IDictionary<T, T> map)
        { }
    }
}
"""
        template = """\
using System.Collections.Generic;
public class Test {
    public void Method() {
        var map = new Dictionary<%s>();
        map.
    }
}
"""
        mixed = get_completions(template % "string, int", extensions, marker="map.")
        same = get_completions(template % "string, string", extensions, marker="map.")
        assert not contains(mixed, "Pair<>", "NM")
        assert contains(same, "Pair<>", "NM")

    def test_nullable_receiver_null_conditional(self, get_completions):
        """``x?.`` on an int? completes members of int."""
        extensions = """\
namespace NM
{
    public static class IntExtensions
    {
        public static bool IsEven(this int value)
        { return value % 2 == 0; }
    }
}
"""
        source = """\
public class Test {
    public void Method(int? count) {
        count?.
    }
}
"""
        completions = get_completions(source, extensions, marker="count?.")
        assert contains(completions, "IsEven", "NM")

    def test_numeric_widening(self, get_completions):
        """An int receiver fits a ``this long`` parameter unless widening is off."""
        extensions = """\
namespace NM
{
    public static class LongExtensions
    {
        public static long Doubled(this long value)
        { return value * 2; }
    }
}
"""
        source = """\
public class Test {
    public void Method(int count) {
        count.
    }
}
"""
        widened = get_completions(source, extensions, marker="count.")
        strict = get_completions(
            source,
            extensions,
            marker="count.",
            options=CompletionOptions(receiver_numeric_widening=False),
        )
        assert contains(widened, "Doubled", "NM")
        assert not contains(strict, "Doubled", "NM")

    def test_generic_containers_are_ignored(self, get_completions):
        """Extension methods must live in non-generic, non-nested static classes."""
        extensions = """\
namespace NM
{
    public static class Outer
    {
        public static class Inner
        {
            public static void FromNested(this object obj)
            { }
        }
    }

    public class NotStatic
    {
        public static void FromInstanceClass(this object obj)
        { }
    }
}
"""
        source = """\
public class Test {
    public void Method(object obj) {
        obj.
    }
}
"""
        completions = get_completions(source, extensions, marker="obj.")
        assert not contains(completions, "FromNested", "NM")
        assert not contains(completions, "FromInstanceClass", "NM")

    def test_unresolved_receiver(self, get_completions):
        """An undeclared identifier has no type and gets nothing."""
        source = """\
public class Test {
    public void Method() {
        missing.
    }
}
"""
        assert get_completions(source, OBJECT_EXTENSIONS, marker="missing.") == []

    def test_void_receiver(self, get_completions):
        """Calls returning void are not receivers."""
        source = """\
public class Test {
    public void Nothing() { }

    public void Method() {
        Nothing().
    }
}
"""
        assert get_completions(source, OBJECT_EXTENSIONS, marker="Nothing().") == []

    def test_base_receiver(self, get_completions):
        """``base.`` never binds to extension methods."""
        source = """\
public class Test {
    public void Method() {
        base.
    }
}
"""
        assert get_completions(source, OBJECT_EXTENSIONS, marker="base.") == []

    def test_member_chain(self, get_completions):
        """The receiver may be a property of a field."""
        source = """\
using System.Collections.Generic;
public class Holder {
    public List<string> Items { get; set; }
}
public class Test {
    private Holder holder = new Holder();

    public void Method() {
        holder.Items.
    }
}
"""
        completions = get_completions(source, marker="holder.Items.")
        assert contains(completions, "Select<>", "System.Linq")

    def test_implicitly_typed_lambda_parameter(self, get_completions):
        """``x`` in ``list.Where(x => x.`` is the list's element type."""
        source = """\
using System.Collections.Generic;
using System.Linq;
public class Test {
    public void Method(List<string> list) {
        var found = list.Where(x => x.);
    }
}
"""
        completions = get_completions(source, STRING_EXTENSIONS, marker="x => x.")
        assert contains(completions, "Shout", "NM")
        assert contains(completions, "Select<>", "System.Linq")

    def test_lambda_overload_picked_by_parameter_count(self, get_completions):
        source = """\
using System.Collections.Generic;
using System.Linq;
public class Test {
    public void Method(List<string> list) {
        var pairs = list.Select((x, i) => x.);
    }
}
"""
        completions = get_completions(source, STRING_EXTENSIONS, marker="(x, i) => x.")
        assert contains(completions, "Shout", "NM")

    def test_query_range_variable(self, get_completions):
        """``from x in list select x.`` completes on the element type."""
        source = """\
using System.Collections.Generic;
using System.Linq;
public class Test {
    public void Method(List<string> list) {
        var query = from x in list select x.
    }
}
"""
        completions = get_completions(source, STRING_EXTENSIONS, marker="select x.")
        assert contains(completions, "Shout", "NM")
        assert contains(completions, "Select<>", "System.Linq")


class TestItems:
    """Shape and order of the produced items."""

    def test_generic_display_and_insertion(self, get_completions):
        source = """\
using System.Collections.Generic;
public class Test {
    public void Method(List<string> list) {
        list.Selec
    }
}
"""
        completions = get_completions(source, marker="list.Selec")
        select = [item for item in completions if item.display_text == "Select<>"]
        assert len(select) == 2
        assert {item.insertion_template for item in select} == {"Select"}
        assert all(item.detail.startswith("(ExtensionMethod) IEnumerable<TResult> Select<") for item in select)
        assert {item.display_text for item in completions} == {"Select<>", "SelectMany<>"}

    def test_imported_namespaces_rank_first(self, get_completions):
        """Methods already in scope sort before those needing an import."""
        extensions = """\
namespace Alpha
{
    public static class A
    {
        public static void Zed(this object obj)
        { }
    }
}
namespace Beta
{
    public static class B
    {
        public static void Able(this object obj)
        { }
    }
}
"""
        source = """\
using Alpha;
public class Test {
    public void Method(object obj) {
        obj.
    }
}
"""
        completions = get_completions(source, extensions, marker="obj.")
        ordered = [item.display_text for item in sorted(completions, key=lambda item: item.sort_text)]
        assert ordered.index("Zed") < ordered.index("Able")

        options = CompletionOptions(sort_completions_after_imported=False)
        unranked = get_completions(source, extensions, marker="obj.", options=options)
        ordered = [item.display_text for item in sorted(unranked, key=lambda item: item.sort_text)]
        assert ordered.index("Able") < ordered.index("Zed")

    def test_same_method_in_two_namespaces(self, get_completions):
        """Identical signatures from different namespaces stay separate items."""
        extensions = """\
namespace First
{
    public static class E
    {
        public static void Dump(this object obj)
        { }
    }
}
namespace Second
{
    public static class E
    {
        public static void Dump(this object obj)
        { }
    }
}
"""
        source = """\
public class Test {
    public void Method(object obj) {
        obj.Dump
    }
}
"""
        completions = get_completions(source, extensions, marker="obj.Dump")
        assert [item.origin_namespace for item in completions] == ["First", "Second"]
