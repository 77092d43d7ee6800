"""Lexical analysis for the Kaleidoscope language. The tokenizer pulls one character at a time from its source and
always holds exactly one character of lookahead.

Lexemes can be loosely defined as follows:

```
<identifier> ::= [a-zA-Z][a-zA-Z0-9]*   ; checked against KEYWORDS first
<number>     ::= [0-9.]+                ; "1.2.3" is scanned as one number (rejected later by the parser)
<comment>    ::= "#" <char>* <newline>  ; skipped
<symbol>     ::= <char>                 ; any other single character
```

The tokenizer never raises: whatever it cannot classify comes out as a one-character symbol.
"""

from dataclasses import dataclass
from enum import Enum


class TokenKind(Enum):
    EOF = "end of input"
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    SYMBOL = "symbol"


KEYWORDS = frozenset(["def", "extern", "if", "then", "else", "for", "in", "unary", "binary", "var"])


@dataclass(frozen=True)
class Token:
    """A single lexeme. value is the keyword/identifier/number text or the symbol character ('' at end of input)."""
    kind: TokenKind
    value: str
    line: int = 1
    col: int = 1
    pos: int = 0  # offset of the first character in the source

    def is_keyword(self, word):
        return self.kind is TokenKind.KEYWORD and self.value == word

    def is_symbol(self, char=None):
        """Whether this is a symbol token (equal to char, if given)."""
        return self.kind is TokenKind.SYMBOL and (char is None or self.value == char)

    @property
    def is_ascii_symbol(self):
        return self.kind is TokenKind.SYMBOL and self.value.isascii()

    def __str__(self):
        if self.kind is TokenKind.EOF:
            return "end of input"
        return self.value


class Tokenizer:
    """Turns a character source into tokens. source is either a string or a file-like object read one character at a
    time (so the shell and piped stdin are consumed lazily).
    """

    def __init__(self, source):
        if isinstance(source, str):
            self._chars = iter(source)
            self._read = lambda: next(self._chars, "")
        else:
            self._read = lambda: source.read(1)

        self.line = 1
        self.col = 0
        self.pos = -1
        self.last_char = " "  # one character of lookahead, '' at end of input

    def _advance(self):
        """Consumes the lookahead character and reads the next one."""
        if self.last_char == "\n":
            self.line += 1
            self.col = 0

        self.last_char = self._read()
        if self.last_char:
            self.col += 1
            self.pos += 1
        return self.last_char

    def next_token(self):
        """Returns the next token. Once the source is exhausted, every call returns an EOF token."""
        while True:
            while self.last_char.isspace():
                self._advance()
            if self.last_char != "#":
                break
            while self._advance() and self.last_char not in "\r\n":  # comment runs to end of line
                pass

        line, col, pos = self.line, self.col, self.pos

        if not self.last_char:
            return Token(TokenKind.EOF, "", line, col, max(pos + 1, 0))

        if self.last_char.isascii() and self.last_char.isalpha():
            text = self.last_char
            while self._advance().isascii() and self.last_char.isalnum():
                text += self.last_char
            kind = TokenKind.KEYWORD if text in KEYWORDS else TokenKind.IDENTIFIER
            return Token(kind, text, line, col, pos)

        if (self.last_char.isascii() and self.last_char.isdigit()) or self.last_char == ".":
            text = self.last_char
            while (self._advance().isascii() and self.last_char.isdigit()) or self.last_char == ".":
                text += self.last_char
            return Token(TokenKind.NUMBER, text, line, col, pos)

        char = self.last_char
        self._advance()
        return Token(TokenKind.SYMBOL, char, line, col, pos)

    def tokens(self):
        """Lazily yields every token in the source, ending with a single EOF token."""
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.EOF:
                return
