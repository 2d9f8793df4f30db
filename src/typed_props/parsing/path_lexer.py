"""Lexer for property path expressions."""

import ply.lex as lex

from typed_props.errors import PathParseError


class PathLexer:
    """Lexer for tokenizing property paths such as ``a.b[0].c(key)``."""

    # Token list
    tokens = [
        "IDENTIFIER",
        "INTEGER",
        "DOT",
        "LBRACKET",
        "RBRACKET",
        "LPAREN",
        "RPAREN",
        "KEY",
    ]

    # Lexer states: everything between ( and ) is an opaque mapped key
    states = (("key", "exclusive"),)

    # Simple tokens (INITIAL state)
    t_DOT = r"\."
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"

    # Whitespace is only meaningful inside keys, and illegal elsewhere
    t_ignore = ""

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_LPAREN(self, t: lex.LexToken) -> lex.LexToken:
        r"\("
        t.lexer.begin("key")
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+"
        t.value = int(t.value)
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise PathParseError(
            f"Illegal character '{t.value[0]}' at position {t.lexpos}",
            expression=t.lexer.lexdata,
            position=t.lexpos,
        )

    # --- Exclusive key state tokens ---

    t_key_ignore = ""

    def t_key_KEY(self, t: lex.LexToken) -> lex.LexToken:
        r"[^)]+"
        return t

    def t_key_RPAREN(self, t: lex.LexToken) -> lex.LexToken:
        r"\)"
        t.lexer.begin("INITIAL")
        return t

    def t_key_error(self, t: lex.LexToken) -> None:
        t.lexer.begin("INITIAL")
        raise PathParseError(
            f"Illegal character '{t.value[0]}' in key at position {t.lexpos}",
            expression=t.lexer.lexdata,
            position=t.lexpos,
        )

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.begin("INITIAL")
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
