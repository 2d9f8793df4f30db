"""Lexer for list literals such as ``{1, 2, 3}`` or ``abc 'de,f' "g h"``."""

import threading

import ply.lex as lex


class ListLexer:
    """Lexer splitting a list literal into its elements.

    Elements are separated by commas and/or whitespace. Quoted elements
    (single or double quotes) keep delimiter characters literally.
    """

    # Token list
    tokens = [
        "QUOTED",
        "BARE",
        "COMMA",
    ]

    t_COMMA = r","

    # Whitespace separates elements just like commas do
    t_ignore = " \t\r\n\f\v"
    t_ignore_WHITESPACE = r"\s+"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_QUOTED(self, t: lex.LexToken) -> lex.LexToken:
        r"'[^']*'|\"[^\"]*\""
        t.value = t.value[1:-1]
        return t

    def t_BARE(self, t: lex.LexToken) -> lex.LexToken:
        r"[^\s,'\"]+"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        char = t.value[0]
        if char in "'\"":
            raise ValueError(f"Unterminated quote at position {t.lexpos}")
        raise ValueError(f"Illegal character {char!r} at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens

    def split(self, text: str) -> list[str]:
        """Return the elements of a list literal.

        A single pair of enclosing braces is removed first. Empty input
        (``""``, ``" "``, ``"{}"``) yields an empty list.
        """
        text = text.strip()
        if text.startswith("{") and text.endswith("}"):
            text = text[1:-1]
        return [tok.value for tok in self.tokenize(text) if tok.type != "COMMA"]


_local = threading.local()


def split_list_literal(text: str) -> list[str]:
    """Split a list literal using a lexer owned by the calling thread."""
    lexer = getattr(_local, "lexer", None)
    if lexer is None:
        lexer = ListLexer()
        lexer.build()
        _local.lexer = lexer
    return lexer.split(text)
