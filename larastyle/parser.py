# Tree-sitter setup: one PHP grammar, one parser per worker, bytes in, tree out.
# Reading files and reporting syntax errors live in context.py.

import logging
from typing import Optional

import tree_sitter
from tree_sitter import Language
from tree_sitter_php import language_php

logger = logging.getLogger(__name__)

# PHP grammar with inline HTML, so templates-in-PHP files still parse
PHP_LANGUAGE = Language(language_php())


def create_parser() -> tree_sitter.Parser:
    """Create a PHP parser. Parsers are not thread-safe; each worker makes its own."""
    return tree_sitter.Parser(PHP_LANGUAGE)


def parse_bytes(
    source: bytes,
    parser: Optional[tree_sitter.Parser] = None,
) -> tree_sitter.Tree:
    """
    Parse PHP source bytes into an AST.

    Args:
        source: UTF-8 encoded PHP source code.
        parser: Optional parser instance; if None, a new one is created.

    Returns:
        The parse tree. Check tree.root_node.has_error for syntax errors.
    """
    if parser is None:
        parser = create_parser()
    tree = parser.parse(source)
    if tree.root_node.has_error:
        logger.debug("Parsed %d byte(s) with syntax errors", len(source))
    else:
        logger.debug("Parsed %d byte(s)", len(source))
    return tree
