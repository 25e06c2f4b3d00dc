"""Tests for the using directive service and the host service registry."""

from __future__ import annotations

from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
from extmethod_lsp._server.imports import HostServices, UsingDirectiveService

PATH = "/src/A.cs"


def add_imports(references, text, namespaces, location_marker="class", system_first=True):
    document = SourceDocument(PATH, text)
    compilation = Compilation([document], references)
    location = text.rindex(location_marker)
    result = UsingDirectiveService().add_imports(
        compilation, document, location, namespaces, system_first
    )
    return result.text


class TestUsingDirectiveService:
    """Where new using directives end up."""

    def test_sorted_into_existing_block(self, references):
        text = """\
using System;
using Zeta.Tools;

class C { }
"""
        result = add_imports(references, text, ["Alpha.Core"])
        assert result == """\
using System;
using Alpha.Core;
using Zeta.Tools;

class C { }
"""

    def test_system_first(self, references):
        text = """\
using Alpha.Core;

class C { }
"""
        assert add_imports(references, text, ["System.Linq"]).startswith(
            "using System.Linq;\nusing Alpha.Core;\n"
        )
        assert add_imports(references, text, ["System.Linq"], system_first=False).startswith(
            "using Alpha.Core;\nusing System.Linq;\n"
        )

    def test_no_usings_goes_to_top(self, references):
        text = "class C { }\n"
        assert add_imports(references, text, ["System.Linq"]) == "using System.Linq;\n\nclass C { }\n"

    def test_already_imported_is_unchanged(self, references):
        text = "using System.Linq;\n\nclass C { }\n"
        assert add_imports(references, text, ["System.Linq"]) == text

    def test_enclosing_namespace_counts_as_imported(self, references):
        text = "namespace Company.Tools\n{\n    class C { }\n}\n"
        assert add_imports(references, text, ["Company"]) == text

    def test_namespace_block_with_usings(self, references):
        text = """\
namespace App
{
    using System;

    class C { }
}
"""
        assert add_imports(references, text, ["System.Linq"]) == """\
namespace App
{
    using System;
    using System.Linq;

    class C { }
}
"""

    def test_crlf_line_endings(self, references):
        text = "using System;\r\n\r\nclass C { }\r\n"
        assert add_imports(references, text, ["System.Linq"]) == (
            "using System;\r\nusing System.Linq;\r\n\r\nclass C { }\r\n"
        )

    def test_static_and_alias_usings_are_skipped(self, references):
        text = """\
using static System.Math;
using Text = System.String;

class C { }
"""
        # Lands after the existing directives, before the first declaration
        assert add_imports(references, text, ["System.Linq"]) == """\
using static System.Math;
using Text = System.String;

using System.Linq;

class C { }
"""

    def test_several_namespaces(self, references):
        text = "using System;\n\nclass C { }\n"
        result = add_imports(references, text, ["System.Text", "System.Linq"])
        assert result == "using System;\nusing System.Linq;\nusing System.Text;\n\nclass C { }\n"


class TestHostServices:
    def test_register_and_lookup(self):
        services = HostServices()
        service = UsingDirectiveService()
        services.register("AddImportsService", service)
        assert services.get_service("AddImportsService") is service

        services.unregister("AddImportsService")
        assert services.get_service("AddImportsService") is None

    def test_unknown_service(self):
        assert HostServices().get_service("Missing") is None
