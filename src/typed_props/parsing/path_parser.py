"""Parser for property path expressions."""

from __future__ import annotations

import functools
import threading
from typing import Any

import ply.yacc as yacc

from typed_props.errors import PathParseError
from typed_props.parsing.path_lexer import PathLexer
from typed_props.path import PropertyPath, Segment


class PathParser:
    """Parser turning a path expression into a PropertyPath.

    Grammar::

        path    : segment | path DOT segment
        segment : IDENTIFIER
                | IDENTIFIER LBRACKET INTEGER RBRACKET
                | IDENTIFIER LPAREN KEY RPAREN
                | IDENTIFIER LPAREN RPAREN

    Instances are not thread-safe; use parse_path() for shared access.
    """

    tokens = PathLexer.tokens

    def __init__(self) -> None:
        self.lexer = PathLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._expression = ""

    def p_path_single(self, p: yacc.YaccProduction) -> None:
        """path : segment"""
        p[0] = [p[1]]

    def p_path_multiple(self, p: yacc.YaccProduction) -> None:
        """path : path DOT segment"""
        p[0] = p[1]
        p[0].append(p[3])

    def p_segment_simple(self, p: yacc.YaccProduction) -> None:
        """segment : IDENTIFIER"""
        p[0] = Segment(name=p[1])

    def p_segment_indexed(self, p: yacc.YaccProduction) -> None:
        """segment : IDENTIFIER LBRACKET INTEGER RBRACKET"""
        p[0] = Segment(name=p[1], index=p[3])

    def p_segment_mapped(self, p: yacc.YaccProduction) -> None:
        """segment : IDENTIFIER LPAREN KEY RPAREN"""
        p[0] = Segment(name=p[1], key=p[3])

    def p_segment_mapped_empty(self, p: yacc.YaccProduction) -> None:
        """segment : IDENTIFIER LPAREN RPAREN"""
        p[0] = Segment(name=p[1], key="")

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise PathParseError(
                f"Syntax error at '{p.value}' (position {p.lexpos}) in '{self._expression}'",
                expression=self._expression,
                position=p.lexpos,
            )
        raise PathParseError(
            f"Unexpected end of path '{self._expression}'",
            expression=self._expression,
            position=len(self._expression),
        )

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, expression: str) -> PropertyPath:
        """Parse a path expression."""
        if expression is None:
            raise PathParseError("Property path must not be None")
        if not isinstance(expression, str):
            raise PathParseError(f"Property path must be a string, got {type(expression).__name__}")
        if not expression.strip():
            raise PathParseError("Property path must not be empty", expression=expression, position=0)

        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._expression = expression
        self.lexer.input(expression)
        segments = self.parser.parse(expression, lexer=self.lexer.lexer)
        if not segments:
            raise PathParseError(f"Invalid property path '{expression}'", expression=expression)
        return PropertyPath(tuple(segments))


_local = threading.local()


def _thread_parser() -> PathParser:
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = PathParser()
        _local.parser = parser
    return parser


@functools.lru_cache(maxsize=1024)
def _parse_cached(expression: str) -> PropertyPath:
    return _thread_parser().parse(expression)


def parse_path(expression: str | PropertyPath) -> PropertyPath:
    """Parse a path expression, reusing earlier results for the same text."""
    if isinstance(expression, PropertyPath):
        return expression
    if not isinstance(expression, str):
        # Runs the None / wrong-type checks without touching the cache
        return _thread_parser().parse(expression)
    return _parse_cached(expression)
