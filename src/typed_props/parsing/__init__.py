"""Parsing module for property paths and list literals."""

from typed_props.parsing.list_lexer import ListLexer, split_list_literal
from typed_props.parsing.path_lexer import PathLexer
from typed_props.parsing.path_parser import PathParser, parse_path

__all__ = [
    "ListLexer",
    "PathLexer",
    "PathParser",
    "parse_path",
    "split_list_literal",
]
