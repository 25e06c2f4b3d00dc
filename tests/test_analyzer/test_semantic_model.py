"""Tests for expression typing in the semantic model."""

from __future__ import annotations

import pytest

from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
from extmethod_lsp._analyzer.semantic_model import ExpressionKind, integer_literal_type
from extmethod_lsp._analyzer.symbols import display_type

PATH = "/src/Program.cs"

PROGRAM = """\
using System;
using System.Collections.Generic;
using System.Linq;
using System.Threading.Tasks;

namespace App
{
    public class Holder
    {
        public List<string> Items { get; set; }
        public Dictionary<string, int> Counts;
        public static int Total;
    }

    public class Program
    {
        private Holder holder = new Holder();

        public async Task<int> LoadAsync() { return 1; }

        public async void Run(object input, int? maybe, string[] words)
        {
            var list = new List<string>();
            var count = 10L;
            var text = "abc";
            var first = text[0];
            var filtered = list.Where(x => x.Length > 0);
            var loaded = await LoadAsync();
            var sum = 1 + 2.5;
            var joined = "a" + 1;
            var lengths = list.Select(item => item.Length);
            var picked = from w in words let upper = w select upper;
            foreach (var word in words)
            {
                Console.WriteLine(word);
            }
            foreach (var pair in holder.Counts)
            {
                Console.WriteLine(pair);
            }
            if (input is string s)
            {
                Console.WriteLine(s);
            }
            Console.WriteLine(maybe);
            Console.WriteLine(holder.Items);
            Console.WriteLine(Holder.Total);
        }
    }
}
"""


@pytest.fixture
def model(references):
    compilation = Compilation([SourceDocument(PATH, PROGRAM)], references)
    return compilation.semantic_model(PATH)


def node_for(model, expression, occurrence=-1, within=None):
    """Smallest node spanning an occurrence of ``expression``.

    With ``within``, the expression is looked up inside the last occurrence
    of that snippet instead.
    """
    text = model.document.text
    if within is not None:
        base = text.rindex(within)
        start = base + within.index(expression)
    else:
        starts = []
        start = text.find(expression)
        while start != -1:
            starts.append(start)
            start = text.find(expression, start + 1)
        start = starts[occurrence]
    root = model.document.tree.root_node
    return root.descendant_for_byte_range(start, start + len(expression))


def type_text(model, expression, occurrence=-1, within=None):
    return display_type(model.type_of(node_for(model, expression, occurrence, within)))


class TestLocals:
    """Locals, parameters and pattern variables."""

    def test_var_from_object_creation(self, model):
        assert type_text(model, "list") == "List<string>"

    def test_var_from_literals(self, model):
        assert display_type(model.type_of(node_for(model, "10L"))) == "long"
        assert display_type(model.type_of(node_for(model, '"abc"'))) == "string"

    def test_string_indexer(self, model):
        assert type_text(model, "text[0]") == "char"

    def test_parameters(self, model):
        assert type_text(model, "maybe") == "int?"
        assert type_text(model, "input", occurrence=1) == "object"

    def test_foreach_over_array(self, model):
        assert type_text(model, "word") == "string"

    def test_foreach_over_dictionary(self, model):
        assert type_text(model, "pair") == "KeyValuePair<string, int>"

    def test_pattern_variable(self, model):
        assert type_text(model, "s", within="WriteLine(s)") == "string"


class TestExpressions:
    def test_member_chain(self, model):
        assert type_text(model, "holder.Items") == "List<string>"

    def test_static_member(self, model):
        assert type_text(model, "Holder.Total") == "int"

    def test_type_name_is_not_a_value(self, model):
        info = model.classify_expression(node_for(model, "Holder", occurrence=-1))
        assert info.kind is ExpressionKind.TYPE

    def test_namespace_name(self, model):
        node = node_for(model, "System", occurrence=0)
        info = model.classify_expression(node)
        assert info.kind is ExpressionKind.NAMESPACE

    def test_extension_invocation(self, model):
        assert type_text(model, "list.Where(x => x.Length > 0)") == "IEnumerable<string>"

    def test_await(self, model):
        assert type_text(model, "await LoadAsync()") == "int"

    def test_binary_operators(self, model):
        assert type_text(model, "1 + 2.5") == "double"
        assert type_text(model, '"a" + 1') == "string"
        assert type_text(model, "x.Length > 0") == "bool"


class TestLambdasAndQueries:
    """Implicitly typed lambda parameters and query range variables."""

    def test_lambda_parameter_from_receiver(self, model):
        assert type_text(model, "x", within="x.Length > 0") == "string"
        assert type_text(model, "item", within="item.Length") == "string"

    def test_range_variable_is_element_type(self, model):
        assert type_text(model, "w", within="= w select") == "string"

    def test_let_variable(self, model):
        assert type_text(model, "upper", within="select upper") == "string"


class TestIntegerLiterals:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1", "int"),
            ("10L", "long"),
            ("10u", "uint"),
            ("10UL", "ulong"),
            ("0xFFFFFFFF", "uint"),
            ("3000000000", "uint"),
            ("10_000_000_000", "long"),
            ("0b101", "int"),
        ],
    )
    def test_literal_type(self, text, expected):
        assert integer_literal_type(text) == expected
