"""End-to-end tests of the Language Server handlers."""

from __future__ import annotations

import pytest
from lsprotocol.types import (
    CompletionList,
    Position,
    Range,
    TextDocumentContentChangeEvent_Type1,
    TextDocumentContentChangeEvent_Type2,
)

from extmethod_lsp._server.server import create_server
from extmethod_lsp.options import CompletionOptions

URI = "file:///workspace/Main.cs"

SOURCE = """\
using System.Collections.Generic;

class Program
{
    void Run()
    {
        var list = new List<int>();
        list.Sel
    }
}
"""

CARET = Position(line=7, character=len("        list.Sel"))


@pytest.fixture
def server(references):
    server = create_server(list(references))
    server._open_document(URI, SOURCE)
    return server


def labels(completions: CompletionList):
    return {item.label for item in completions.items}


class TestCompletion:
    def test_items_replace_typed_prefix(self, server):
        completions = server._get_extension_completions(URI, CARET)

        assert not completions.is_incomplete
        assert "Select<>" in labels(completions)
        item = next(item for item in completions.items if item.label == "Select<>")
        assert item.text_edit.new_text == "Select"
        assert item.text_edit.range == Range(
            start=Position(line=7, character=len("        list.")), end=CARET
        )

    def test_unknown_document(self, server):
        completions = server._get_extension_completions("file:///workspace/Other.cs", CARET)
        assert completions.items == []

    def test_resolve_adds_using_directive(self, server):
        completions = server._get_extension_completions(URI, CARET)
        item = next(item for item in completions.items if item.label == "Select<>")

        resolved = server._resolve_completion_item(item)
        assert [edit.new_text for edit in resolved.additional_text_edits] == ["using System.Linq;\n"]
        assert resolved.additional_text_edits[0].range.start == Position(line=1, character=0)

    def test_no_pending_request_after_completion(self, server):
        server._get_extension_completions(URI, CARET)
        assert server.pending_tokens == {}


class TestDocuments:
    def test_incremental_change(self, server):
        change = TextDocumentContentChangeEvent_Type1(
            range=Range(start=Position(line=7, character=13), end=CARET), text="Whe"
        )
        server._change_document(URI, [change])

        assert "list.Whe\n" in server.documents[URI].text
        completions = server._get_extension_completions(URI, Position(line=7, character=16))
        assert "Where<>" in labels(completions)

    def test_full_change_rebuilds_compilation(self, server):
        before = server._get_compilation()
        server._change_document(URI, [TextDocumentContentChangeEvent_Type2(text="class Empty { }")])

        after = server._get_compilation()
        assert after is not before
        assert after.get_type("Empty") is not None

    def test_close_forgets_document(self, server):
        server._close_document(URI)
        assert URI not in server.documents
        assert server._get_compilation().get_type("Program") is None

    def test_workspace_scan(self, server, tmp_path):
        (tmp_path / "Lib.cs").write_text("public static class Helpers { }\n")
        (tmp_path / "bin").mkdir()
        (tmp_path / "bin" / "Generated.cs").write_text("public class Generated { }\n")

        server.workspace_root = str(tmp_path)
        server._scan_workspace()

        compilation = server._get_compilation()
        assert compilation.get_type("Helpers") is not None
        assert compilation.get_type("Generated") is None


class TestOptions:
    def test_from_environment(self):
        options = CompletionOptions.from_environment(
            {
                "EXTMETHOD_LSP_FILTER_OUT_OBSOLETE_SYMBOLS": "0",
                "EXTMETHOD_LSP_USER_CODE_ONLY_SUGGESTIONS": "yes",
                "EXTMETHOD_LSP_PLACE_SYSTEM_NAMESPACE_FIRST": "maybe",
            }
        )
        assert not options.filter_out_obsolete_symbols
        assert options.user_code_only_suggestions
        assert options.place_system_namespace_first

    def test_merged_accepts_camel_case(self):
        options = CompletionOptions().merged(
            {
                "sortCompletionsAfterImported": False,
                "receiver_numeric_widening": False,
                "unknownOption": True,
                "enableExtensionMethodsSuggestions": "no",
            }
        )
        assert not options.sort_completions_after_imported
        assert not options.receiver_numeric_widening
        assert options.enable_extension_methods_suggestions
