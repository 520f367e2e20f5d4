"""
Exceptions and diagnostics for the spells interpreter.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Name errors
- E3xx: Type errors
- E4xx: Range errors
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .tokens import SourceSpan


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        if self.span is not None:
            parts.append(f"{self.span.start}: error[{self.code}]: {self.message}")
        else:
            parts.append(f"error[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)


class SpellsError(Exception):
    """Base exception for interpreter errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(SpellsError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(SpellsError):
    """Error during parsing (E1xx)."""
    pass


class NameError(SpellsError):
    """Undefined name or wrong argument count (E2xx)."""
    pass


class TypeError(SpellsError):
    """A value could not be coerced as requested (E3xx)."""
    pass


class RangeError(SpellsError):
    """A value was outside the range an operation accepts (E4xx)."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string",
        span=span,
        source_line=source_line,
        hints=["string literals must be closed on the line they start"],
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E003",
        message=f"invalid escape sequence '\\{seq}'",
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\\", \\\\"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None,
                                 hint: str = None) -> LexerError:
    """E004: Invalid numeric or roll literal."""
    hints = [hint] if hint else []
    if "." in text and "d" in text:
        hints.append("a roll literal cannot contain a decimal point")
    diag = Diagnostic(
        code="E004",
        message=f"invalid number literal '{text}'",
        span=span,
        source_line=source_line,
        hints=hints,
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(found: str, span: SourceSpan, source_line: str = None,
                           expected: str = None) -> ParserError:
    """E101: Unexpected token."""
    message = f"unexpected token {found}"
    if expected:
        message = f"expected {expected}, found {found}"
    diag = Diagnostic(
        code="E101",
        message=message,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_end(expected: str, span: SourceSpan = None, source_line: str = None) -> ParserError:
    """E102: Input ended in the middle of an expression."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unmatched_delimiter(delimiter: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Bracket or parenthesis without its partner."""
    diag = Diagnostic(
        code="E103",
        message=f"unmatched '{delimiter}'",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_keyword_without_if(keyword: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: ``then`` or ``else`` with no preceding ``if``."""
    diag = Diagnostic(
        code="E104",
        message=f"'{keyword}' without a preceding 'if'",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unconsumed_input(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Tokens left over after a complete expression."""
    diag = Diagnostic(
        code="E105",
        message=f"input not fully consumed, stopped at {found}",
        span=span,
        source_line=source_line,
        hints=["use ';' to sequence several expressions on one line"],
    )
    return ParserError(diag)


def error_invalid_assignment_target(target: str) -> ParserError:
    """E106: Left-hand side of '=' is neither a name nor a call."""
    diag = Diagnostic(
        code="E106",
        message=f"cannot assign to '{target}'",
        hints=["assign to a name (x = 1) or define a function (f(x) = x + 1)"],
    )
    return ParserError(diag)


def error_invalid_parameter(function: str, parameter: str) -> ParserError:
    """E107: Function parameter is not a bare name."""
    diag = Diagnostic(
        code="E107",
        message=f"parameter '{parameter}' of '{function}' must be a name",
    )
    return ParserError(diag)


# --- Name error codes ---

def error_undefined_variable(name: str) -> NameError:
    """E201: Undefined variable."""
    return NameError(Diagnostic(code="E201", message=f"undefined variable: {name}"))


def error_undefined_function(name: str) -> NameError:
    """E202: Undefined function."""
    return NameError(Diagnostic(code="E202", message=f"undefined function: {name}"))


def error_argument_count(name: str, expected: int, got: int) -> NameError:
    """E203: Wrong number of arguments."""
    plural = "" if expected == 1 else "s"
    return NameError(Diagnostic(
        code="E203",
        message=f"{name}() takes {expected} argument{plural}, got {got}",
    ))


# --- Type error codes ---

def error_not_coercible(kind: str, target: str) -> TypeError:
    """E301: Value cannot be converted."""
    return TypeError(Diagnostic(code="E301", message=f"cannot convert {kind} to {target}"))


def error_expected_roll(kind: str) -> TypeError:
    """E302: Operation needs an unresolved roll."""
    return TypeError(Diagnostic(
        code="E302",
        message=f"expected a roll, found {kind}",
        hints=["advantage and disadvantage apply to a roll before it is rolled"],
    ))


# --- Range error codes ---

def error_too_many_dice(quantity: int, limit: int) -> RangeError:
    """E401: Dice quantity too large."""
    return RangeError(Diagnostic(
        code="E401",
        message=f"cannot roll {quantity} dice (limit is {limit})",
    ))


def error_invalid_die(die: int) -> RangeError:
    """E402: Die with no faces."""
    return RangeError(Diagnostic(code="E402", message=f"a die needs at least one face, got d{die}"))


def error_index_out_of_range(index: int, length: int) -> RangeError:
    """E403: List index out of bounds."""
    return RangeError(Diagnostic(
        code="E403",
        message=f"index {index} out of range for list of length {length}",
    ))


def error_division_by_zero() -> RangeError:
    """E404: Division by zero."""
    return RangeError(Diagnostic(code="E404", message="division by zero"))


def error_math_domain(operation: str) -> RangeError:
    """E405: Result is not a real number or overflows."""
    return RangeError(Diagnostic(code="E405", message=f"{operation} has no finite real result"))


def error_recursion_limit(name: str = None) -> RangeError:
    """E406: Evaluation nested too deeply."""
    message = "maximum recursion depth exceeded"
    if name:
        message += f" while calling {name}()"
    return RangeError(Diagnostic(code="E406", message=message))
