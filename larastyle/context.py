# Per-file analysis context: store file path, source code, AST, and span helpers.
# Reading or parsing failures raise ParseError so one bad file never stops a scan.

import logging
from pathlib import Path
from typing import Iterator, Optional

from tree_sitter import Node as TSNode
from tree_sitter import Parser, Tree

from larastyle.errors import ParseError
from larastyle.parser import create_parser, parse_bytes

logger = logging.getLogger(__name__)


def walk(node: TSNode) -> Iterator[TSNode]:
    """
    Yield every descendant of node in document order (DFS).

    Uses an explicit stack: generated PHP can nest expressions thousands of
    levels deep, far past the interpreter's recursion limit.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def first_syntax_error(root: TSNode) -> Optional[TSNode]:
    """Return the first ERROR or MISSING node in document order, or None."""
    if not root.has_error:
        return None
    for node in walk(root):
        if node.is_error or node.is_missing:
            return node
    return root


class FileContext:
    """
    Per-file state for analysis: path, raw source bytes, and AST.

    ``path`` is the location on disk; ``display_path`` is what violations
    report (relative to the scan root when there is one).
    """

    def __init__(
        self,
        path: Path,
        source: bytes,
        tree: Tree,
        *,
        display_path: Optional[Path] = None,
    ) -> None:
        self.path = path
        self.source = source
        self.tree = tree
        self.display_path = display_path if display_path is not None else path

    @property
    def root_node(self) -> TSNode:
        return self.tree.root_node


def get_source_span(context: FileContext, node: TSNode) -> str:
    """
    Return the substring of context.source for the given node's byte range.

    Decodes with errors="replace" so bad UTF-8 does not crash.
    """
    return context.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def get_line_col(node: TSNode, one_based: bool = True) -> tuple[int, int]:
    """
    Return (line, column) for the node's start position.

    Tree-sitter uses 0-based (row, col). If one_based=True (default),
    returns 1-based line and column for display.
    """
    row, col = node.start_point
    if one_based:
        return row + 1, col + 1
    return row, col


def create_context(
    path: Path,
    parser: Optional[Parser] = None,
    *,
    display_path: Optional[Path] = None,
) -> FileContext:
    """
    Read a PHP file and parse it into a FileContext.

    Raises:
        ParseError: the file cannot be read, is not valid UTF-8, or its
            syntax tree contains errors (reported at the first error line).
    """
    shown = display_path if display_path is not None else path
    if parser is None:
        parser = create_parser()

    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        raise ParseError(shown, f"cannot read file: {e.strerror or e}") from e

    try:
        source.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning("File %s is not valid UTF-8: %s", path, e)
        raise ParseError(shown, "file is not valid UTF-8") from e

    tree = parse_bytes(source, parser=parser)
    error_node = first_syntax_error(tree.root_node)
    if error_node is not None:
        line, col = get_line_col(error_node)
        logger.warning("File %s has syntax errors starting at line %d", path, line)
        raise ParseError(shown, "syntax error", line=line, column=col)

    logger.debug("Parsed %s: %d byte(s)", path, len(source))
    return FileContext(path=path, source=source, tree=tree, display_path=display_path)
