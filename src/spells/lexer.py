"""
Lexer for the spells dice-expression language.

Converts source text into a list of tokens for the parser.
Supports:
- Natural, decimal and roll literals (42, 2.5, 4d6, d20)
- Postfix roll suffixes (d20a, d20d, 4d6k3, 4d6s)
- String literals with escape sequences
- Single-line comments (#)
- Line/column tracking for diagnostics
"""

import math
from typing import Iterator, List, Optional

from .errors import (
    error_invalid_escape_sequence,
    error_invalid_number_literal,
    error_unexpected_character,
    error_unterminated_string,
)
from .operators import OPERATOR_LITERALS, ROLL_SUFFIXES, Operator
from .tokens import SourceLocation, SourceSpan, Token, TokenType

# Largest natural, roll quantity or face count a literal may spell out
MAX_NATURAL = 2 ** 64 - 1

_DELIMITERS = {
    '(': TokenType.PAREN_OPEN,
    ')': TokenType.PAREN_CLOSE,
    '[': TokenType.BRACKET_OPEN,
    ']': TokenType.BRACKET_CLOSE,
    ',': TokenType.COMMA,
}

_ESCAPES = {
    'n': '\n',
    't': '\t',
    '\\': '\\',
    '"': '"',
}


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch == '_'


class Lexer:
    """
    Tokenizer for the spells language.

    The letters ``a``, ``d``, ``k`` and ``s`` are operators only in roll-suffix
    position: directly after a roll literal (``d20a``), after another suffix
    (``4d6ks``), or after the count of a keep (``10d8k8s``), with no
    whitespace in between and no identifier character following. Anywhere
    else they start identifiers.

    Usage:
        tokens = Lexer("4d6k3 + 2").tokenize()
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

        # Roll-suffix tracking
        self.suffix_position = False
        self.keep_count = False

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_comment(self) -> None:
        """Skip a single-line comment (# to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _make_token(self, token_type: TokenType, value, start: SourceLocation) -> Token:
        lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, self._span(start))

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                esc_start = self._location()
                self._advance()  # consume backslash
                if self._is_at_end():
                    break
                esc = self._advance()
                if esc not in _ESCAPES:
                    raise error_invalid_escape_sequence(
                        esc, self._span(esc_start), self.get_source_line(esc_start.line)
                    )
                chars.append(_ESCAPES[esc])
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_digits(self) -> str:
        begin = self.pos
        while self._peek().isdigit():
            self._advance()
        return self.source[begin:self.pos]

    def _invalid_number(self, start: SourceLocation, hint: Optional[str] = None):
        # Swallow the rest of the malformed literal so the caret covers it
        while _is_identifier_char(self._peek()) or self._peek() == '.':
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        return error_invalid_number_literal(
            lexeme, self._span(start), self.get_source_line(start.line), hint
        )

    def _natural(self, start: SourceLocation, digits: str) -> int:
        # Length first: int() refuses very long digit strings outright
        significant = digits.lstrip("0") or "0"
        if len(significant) > len(str(MAX_NATURAL)) or int(significant) > MAX_NATURAL:
            raise self._invalid_number(start, f"numbers are limited to {MAX_NATURAL}")
        return int(significant)

    def _scan_roll_faces(self, start: SourceLocation, quantity: int) -> Token:
        """Scan the ``dM`` part of a roll literal; the quantity is already read."""
        self._advance()  # consume 'd'
        faces = self._scan_digits()
        if not faces or self._peek() == '.':
            raise self._invalid_number(start)
        return self._make_token(TokenType.ROLL, (quantity, self._natural(start, faces)), start)

    def _scan_number(self) -> Token:
        """Scan a natural, decimal or roll literal."""
        start = self._location()
        whole = self._scan_digits()

        if self._peek() == 'd':
            if not whole:
                raise self._invalid_number(start)
            return self._scan_roll_faces(start, self._natural(start, whole))

        if self._peek() == '.':
            self._advance()  # consume '.'
            fraction = self._scan_digits()
            if not whole and not fraction:
                raise self._invalid_number(start)
            if self._peek() in ('.', 'd'):
                raise self._invalid_number(start)
            value = float(f"{whole or '0'}.{fraction or '0'}")
            if not math.isfinite(value):
                raise self._invalid_number(start, "decimal literal is too large")
            return self._make_token(TokenType.DECIMAL, value, start)

        return self._make_token(TokenType.NATURAL, self._natural(start, whole), start)

    def _scan_identifier(self) -> Token:
        """Scan an identifier, or a roll literal with implied quantity (d20)."""
        start = self._location()
        if self._peek() == 'd' and self._peek(1).isdigit():
            return self._scan_roll_faces(start, 1)

        while _is_identifier_char(self._peek()):
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.IDENTIFIER, lexeme, start)

    def _scan_roll_suffix(self) -> Optional[Token]:
        """Scan a postfix roll operator if one is in suffix position here."""
        ch = self._peek()
        if not self.suffix_position or ch not in ROLL_SUFFIXES:
            return None
        follow = self._peek(1)
        if _is_identifier_char(follow) and not follow.isdigit():
            return None
        if ch == 'd' and follow.isdigit():
            return None
        start = self._location()
        self._advance()
        return self._make_token(TokenType.OPERATOR, ROLL_SUFFIXES[ch], start)

    def _scan_token(self) -> Optional[Token]:
        """Scan the next token, or return None after skipping trivia."""
        ch = self._peek()

        if ch in ' \t\r\n':
            self._advance()
            self.suffix_position = False
            self.keep_count = False
            return None
        if ch == '#':
            self._skip_comment()
            self.suffix_position = False
            self.keep_count = False
            return None

        token = self._scan_roll_suffix()
        if token is not None:
            self.keep_count = token.value is Operator.KEEP
            self.suffix_position = not self.keep_count
            return token

        keep_count = self.keep_count
        self.suffix_position = False
        self.keep_count = False

        if ch.isdigit() or ch == '.':
            token = self._scan_number()
            if token.type == TokenType.ROLL:
                self.suffix_position = True
            elif token.type == TokenType.NATURAL and keep_count:
                self.suffix_position = True
            return token

        if ch.isalpha() or ch == '_':
            token = self._scan_identifier()
            self.suffix_position = token.type == TokenType.ROLL
            return token

        if ch == '"':
            return self._scan_string()

        start = self._location()
        if ch in _DELIMITERS:
            self._advance()
            return self._make_token(_DELIMITERS[ch], ch, start)

        for literal, op in OPERATOR_LITERALS:
            if self.source.startswith(literal, self.pos):
                for _ in literal:
                    self._advance()
                return self._make_token(TokenType.OPERATOR, op, start)

        self._advance()
        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        while not self._is_at_end():
            token = self._scan_token()
            if token is not None:
                yield token


def tokenise(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens (no end-of-input marker)

    Raises:
        LexerError: If tokenization fails
    """
    return Lexer(source, filename).tokenize()
