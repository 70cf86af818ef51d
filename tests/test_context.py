"""Tests for larastyle.context: FileContext, create_context, syntax error detection."""

from pathlib import Path

import pytest

from larastyle.context import (
    FileContext,
    create_context,
    first_syntax_error,
    get_line_col,
    get_source_span,
    walk,
)
from larastyle.errors import ParseError
from larastyle.parser import create_parser, parse_bytes


def test_walk_visits_root_first():
    tree = parse_bytes(b"<?php\n$x = 1;\n", parser=create_parser())
    nodes = list(walk(tree.root_node))
    assert nodes[0].type == "program"
    assert any(n.type == "assignment_expression" for n in nodes)


def test_first_syntax_error_none_for_valid_source():
    tree = parse_bytes(b"<?php\n$x = 1;\n", parser=create_parser())
    assert first_syntax_error(tree.root_node) is None


def test_create_context_sample_php(tmp_path):
    php_file = tmp_path / "index.php"
    php_file.write_bytes(b"<?php\necho 'hello';\n")
    ctx = create_context(php_file)
    assert ctx.path == php_file
    assert ctx.display_path == php_file
    assert ctx.source == b"<?php\necho 'hello';\n"
    assert ctx.root_node.type == "program"


def test_create_context_display_path(tmp_path):
    php_file = tmp_path / "index.php"
    php_file.write_bytes(b"<?php\necho 'hello';\n")
    ctx = create_context(php_file, display_path=Path("index.php"))
    assert ctx.path == php_file
    assert ctx.display_path == Path("index.php")


def test_create_context_nonexistent(caplog):
    with pytest.raises(ParseError) as excinfo:
        create_context(Path("/nonexistent/file.php"))
    assert "cannot read file" in excinfo.value.message
    assert "Failed to read file" in caplog.text


def test_create_context_syntax_error_reports_first_error_line(tmp_path):
    php_file = tmp_path / "bad.php"
    php_file.write_bytes(b"<?php\n\n$ok = 1;\nclass Broken {\n    public function x( {\n")
    with pytest.raises(ParseError) as excinfo:
        create_context(php_file)
    assert excinfo.value.message == "syntax error"
    assert excinfo.value.path == php_file
    assert excinfo.value.line >= 1


def test_create_context_invalid_utf8(tmp_path):
    php_file = tmp_path / "latin1.php"
    php_file.write_bytes(b"<?php\n$name = '\xe9t\xe9';\n")
    with pytest.raises(ParseError) as excinfo:
        create_context(php_file)
    assert "UTF-8" in excinfo.value.message


def test_get_source_span():
    source = b"<?php\n$x = 42;\n"
    tree = parse_bytes(source, parser=create_parser())
    ctx = FileContext(path=Path("x.php"), source=source, tree=tree)
    assignment = next(n for n in walk(ctx.root_node) if n.type == "assignment_expression")
    assert get_source_span(ctx, assignment) == "$x = 42"


def test_get_line_col_one_based():
    tree = parse_bytes(b"<?php\n$x = 1;\n  $y = 2;\n", parser=create_parser())
    second = [n for n in walk(tree.root_node) if n.type == "assignment_expression"][1]
    assert get_line_col(second) == (3, 3)
    assert get_line_col(second, one_based=False) == (2, 2)
