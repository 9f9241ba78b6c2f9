"""Rust source parsing via tree-sitter.

Files are parsed once; the resulting trees are shared read-only by the
symbol index and every extractor.
"""

from dataclasses import dataclass
from pathlib import Path

import structlog
import tree_sitter_rust
from tree_sitter import Language, Parser, Tree

from openapi_from_source.diagnostics import Category, Diagnostic

logger = structlog.get_logger(__name__)

RUST_LANGUAGE = Language(tree_sitter_rust.language())

_parser: Parser | None = None


@dataclass(frozen=True)
class ParsedFile:
    """A successfully parsed source file."""

    path: Path
    source: bytes
    tree: Tree

    @property
    def root(self):
        return self.tree.root_node


def _get_parser() -> Parser:
    global _parser
    if _parser is None:
        _parser = Parser()
        _parser.language = RUST_LANGUAGE
    return _parser


def parse_source(text: str, path: Path | str = "<memory>") -> ParsedFile:
    """Parse Rust source text. Syntax errors are left in the tree."""
    source = text.encode("utf-8")
    tree = _get_parser().parse(source)
    return ParsedFile(path=Path(path), source=source, tree=tree)


def parse_file(path: Path) -> ParsedFile:
    text = path.read_text(encoding="utf-8")
    return parse_source(text, path)


def parse_files(paths: list[Path]) -> tuple[list[ParsedFile], list[Diagnostic]]:
    """Parse every path, dropping files that cannot be read or contain syntax errors.

    Returns the parsed files in input order plus one diagnostic per dropped file.
    """
    parsed: list[ParsedFile] = []
    diagnostics: list[Diagnostic] = []
    for path in paths:
        try:
            result = parse_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("cannot read file", path=str(path), error=str(e))
            diagnostics.append(Diagnostic(category=Category.PARSE, message=f"cannot read file: {e}", source=str(path)))
            continue
        if result.root.has_error:
            line = _first_error_line(result.root)
            logger.warning("syntax error", path=str(path), line=line)
            diagnostics.append(
                Diagnostic(category=Category.PARSE, message=f"syntax error near line {line}", source=str(path))
            )
            continue
        parsed.append(result)
    logger.debug("parsed files", ok=len(parsed), failed=len(diagnostics))
    return parsed, diagnostics


def _first_error_line(node) -> int:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current.start_point[0] + 1
        stack.extend(reversed([c for c in current.children if c.has_error or c.is_missing]))
    return node.start_point[0] + 1
