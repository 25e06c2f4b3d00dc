"""Tests for the ``extmethod-lsp complete`` command."""

from __future__ import annotations

import sys

import pytest

from extmethod_lsp.__main__ import _line_column_to_offset, main

MAIN = """\
using System.Collections.Generic;

class Program
{
    void Run()
    {
        var list = new List<int>();
        list.
    }
}
"""

LIBRARY = """\
namespace Tools
{
    public static class ListTools
    {
        public static void Shuffle<T>(this IList<T> list) { }
    }
}
"""


def run_cli(monkeypatch, *args):
    monkeypatch.setattr("extmethod_lsp.__main__.setup_colored_logging", lambda level: None)
    monkeypatch.setattr(sys, "argv", ["extmethod-lsp", "--log-level", "ERROR", *args])
    main()


class TestComplete:
    def test_prints_suggestions(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "Main.cs"
        source.write_text(MAIN)

        run_cli(monkeypatch, "complete", str(source), "--line", "8", "--column", "14")
        lines = capsys.readouterr().out.splitlines()

        assert any(line.startswith("Select<>\tSystem.Linq\t") for line in lines)

    def test_reference_directory(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "Main.cs"
        source.write_text(MAIN)
        library = tmp_path / "lib"
        library.mkdir()
        (library / "ListTools.cs").write_text("using System.Collections.Generic;\n" + LIBRARY)

        run_cli(
            monkeypatch, "complete", str(source), "--line", "8", "--column", "14",
            "--reference", str(library),
        )
        out = capsys.readouterr().out
        assert "Shuffle<>\tTools\t" in out

    def test_position_outside_file(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "Main.cs"
        source.write_text(MAIN)

        with pytest.raises(SystemExit):
            run_cli(monkeypatch, "complete", str(source), "--line", "99", "--column", "1")
        assert "outside" in capsys.readouterr().err

    def test_subcommand_required(self, monkeypatch):
        with pytest.raises(SystemExit):
            run_cli(monkeypatch)


class TestLineColumnToOffset:
    def test_one_based(self):
        assert _line_column_to_offset("ab\ncd", 2, 1) == 3
        assert _line_column_to_offset("ab\ncd", 2, 3) == 5

    def test_out_of_range(self):
        assert _line_column_to_offset("ab\ncd", 3, 1) is None
        assert _line_column_to_offset("ab\ncd", 1, 4) is None
