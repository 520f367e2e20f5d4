"""
Unit tests for the spells lexer.
"""

import pytest
from spells import tokenise, TokenType, LexerError, Operator
from spells.lexer import Lexer


def kinds(source):
    """(type, value) pairs without positions."""
    return [(t.type, t.value) for t in tokenise(source)]


def op(operator):
    return (TokenType.OPERATOR, operator)


def ident(name):
    return (TokenType.IDENTIFIER, name)


def roll(quantity, die):
    return (TokenType.ROLL, (quantity, die))


def nat(n):
    return (TokenType.NATURAL, n)


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_source(self):
        """Empty source produces no tokens."""
        assert tokenise("") == []

    def test_whitespace_and_comments_only(self):
        """Whitespace and comments produce no tokens."""
        assert tokenise("   \t \n # just a comment\n") == []

    def test_comment_runs_to_end_of_line(self):
        """A comment ends at the newline."""
        assert kinds("1 # two\n3") == [nat(1), nat(3)]

    def test_identifier_value(self):
        """Identifier token has correct value."""
        tokens = tokenise("foo_bar123")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "foo_bar123"

    def test_leading_underscore_identifier(self):
        """Identifiers may start with an underscore."""
        assert kinds("_x") == [ident("_x")]

    def test_keywords_are_identifiers(self):
        """Keywords are left for the parser to interpret."""
        assert kinds("if true then else false") == [
            ident("if"), ident("true"), ident("then"), ident("else"), ident("false"),
        ]

    def test_delimiters(self):
        """Parens, brackets and commas are single-character tokens."""
        types = [t.type for t in tokenise("( ) [ ] ,")]
        assert types == [
            TokenType.PAREN_OPEN,
            TokenType.PAREN_CLOSE,
            TokenType.BRACKET_OPEN,
            TokenType.BRACKET_CLOSE,
            TokenType.COMMA,
        ]

    def test_position_tracking(self):
        """Token positions are tracked correctly."""
        tokens = tokenise("x = 5")
        assert tokens[0].span.start.line == 1
        assert tokens[0].span.start.column == 1
        assert tokens[2].span.start.column == 5
        assert tokens[2].span.start.offset == 4

    def test_multiline_position_tracking(self):
        """Position tracking across multiple lines."""
        tokens = tokenise("a = 1\nb = 2")
        b = [t for t in tokens if t.value == "b"][0]
        assert b.span.start.line == 2
        assert b.span.start.column == 1

    def test_lexeme_and_length(self):
        """Tokens keep their source text and byte span."""
        token = tokenise("  4d6")[0]
        assert token.lexeme == "4d6"
        assert token.span.length == 3

    def test_lexer_is_iterable(self):
        """Iterating a lexer yields the same tokens as tokenize()."""
        source = "d20 + 2"
        assert list(Lexer(source)) == Lexer(source).tokenize()


class TestLexerNumbers:
    """Natural, decimal and roll literals."""

    def test_natural(self):
        assert kinds("42") == [nat(42)]

    def test_decimal(self):
        assert kinds("2.5") == [(TokenType.DECIMAL, 2.5)]

    def test_decimal_leading_dot(self):
        """A literal may start with the decimal point."""
        assert kinds(".5") == [(TokenType.DECIMAL, 0.5)]

    def test_roll(self):
        assert kinds("8d8") == [roll(8, 8)]

    def test_roll_implied_quantity(self):
        """dM means one die."""
        assert kinds("d20") == [roll(1, 20)]
        assert kinds("1d4") == [roll(1, 4)]

    def test_two_rolls(self):
        assert kinds("d20 d20") == [roll(1, 20), roll(1, 20)]

    def test_decimal_roll_is_error(self):
        """A literal mixing '.' and 'd' is rejected."""
        with pytest.raises(LexerError) as exc:
            tokenise("1.5d6")
        assert exc.value.code == "E004"
        assert "1.5d6" in exc.value.message

    def test_roll_with_decimal_faces_is_error(self):
        with pytest.raises(LexerError):
            tokenise("2d6.5")

    def test_roll_without_faces_is_error(self):
        with pytest.raises(LexerError):
            tokenise("4d")

    def test_lone_dot_is_error(self):
        with pytest.raises(LexerError):
            tokenise(". 5")

    def test_second_decimal_point_is_error(self):
        with pytest.raises(LexerError):
            tokenise("1.2.3")

    def test_largest_natural(self):
        assert kinds("18446744073709551615") == [nat(2 ** 64 - 1)]

    def test_leading_zeros_do_not_count(self):
        assert kinds("0" * 5000 + "7") == [nat(7)]

    def test_natural_too_large(self):
        with pytest.raises(LexerError) as exc:
            tokenise("18446744073709551616")
        assert exc.value.code == "E004"
        assert "18446744073709551615" in str(exc.value)

    def test_huge_natural_is_error(self):
        """Digit strings past int()'s own limit still get a diagnostic."""
        with pytest.raises(LexerError) as exc:
            tokenise("1" + "0" * 5000 + " + 1")
        assert exc.value.code == "E004"

    def test_roll_quantity_too_large(self):
        with pytest.raises(LexerError) as exc:
            tokenise("99999999999999999999d6")
        assert exc.value.code == "E004"

    def test_roll_faces_too_large(self):
        with pytest.raises(LexerError) as exc:
            tokenise("2d99999999999999999999")
        assert exc.value.code == "E004"

    def test_infinite_decimal_is_error(self):
        with pytest.raises(LexerError) as exc:
            tokenise("1" + "0" * 400 + ".5")
        assert exc.value.code == "E004"


class TestLexerOperators:
    """Operator literals and roll suffixes."""

    def test_arithmetic(self):
        assert kinds("+ - * / ^") == [
            op(Operator.ADD), op(Operator.SUB), op(Operator.MUL),
            op(Operator.DIV), op(Operator.EXP),
        ]

    def test_longest_match_first(self):
        """Two-character operators win over their prefixes."""
        assert kinds(">= <= == > < =") == [
            op(Operator.GREATER_EQUAL), op(Operator.LESS_EQUAL), op(Operator.EQUAL),
            op(Operator.GREATER_THAN), op(Operator.LESS_THAN), op(Operator.ASSIGN),
        ]

    def test_logic_and_discard(self):
        assert kinds("! & | ;") == [
            op(Operator.NOT), op(Operator.AND), op(Operator.OR), op(Operator.DISCARD),
        ]

    def test_suffixes_after_rolls(self):
        assert kinds("d4a d8d k 8d8s") == [
            roll(1, 4), op(Operator.ADV),
            roll(1, 8), op(Operator.DISADV),
            ident("k"),
            roll(8, 8), op(Operator.SORT),
        ]

    def test_suffix_versus_identifier(self):
        """Suffix letters followed by identifier characters stay identifiers."""
        assert kinds("d20d dword d aword a d20a") == [
            roll(1, 20), op(Operator.DISADV),
            ident("dword"),
            ident("d"),
            ident("aword"),
            ident("a"),
            roll(1, 20), op(Operator.ADV),
        ]

    def test_whitespace_breaks_suffix_position(self):
        assert kinds("d20 a") == [roll(1, 20), ident("a")]

    def test_keep(self):
        assert kinds("4d6k3") == [roll(4, 6), op(Operator.KEEP), nat(3)]

    def test_suffix_chain_after_keep(self):
        """The count of a keep is still in suffix position."""
        assert kinds("10d8k8s") == [
            roll(10, 8), op(Operator.KEEP), nat(8), op(Operator.SORT),
        ]

    def test_natural_is_not_suffix_position(self):
        """Only rolls (and keep counts) take suffixes."""
        assert kinds("3 s") == [nat(3), ident("s")]
        assert kinds("3s") == [nat(3), ident("s")]

    def test_d_digit_after_roll_is_new_roll(self):
        assert kinds("d2d6") == [roll(1, 2), roll(1, 6)]

    def test_mixed_expression(self):
        assert kinds("(d4 * 3) + (8d8k5)") == [
            (TokenType.PAREN_OPEN, "("), roll(1, 4), op(Operator.MUL), nat(3),
            (TokenType.PAREN_CLOSE, ")"), op(Operator.ADD),
            (TokenType.PAREN_OPEN, "("), roll(8, 8), op(Operator.KEEP), nat(5),
            (TokenType.PAREN_CLOSE, ")"),
        ]

    def test_call_tokens(self):
        assert kinds("function(arg1, 3 + 2)") == [
            ident("function"), (TokenType.PAREN_OPEN, "("), ident("arg1"),
            (TokenType.COMMA, ","), nat(3), op(Operator.ADD), nat(2),
            (TokenType.PAREN_CLOSE, ")"),
        ]

    def test_unknown_character(self):
        """An unrecognised character is an error pointing at it."""
        with pytest.raises(LexerError) as exc:
            tokenise("1 + $")
        assert exc.value.code == "E001"
        assert exc.value.diagnostic.span.start.column == 5


class TestLexerStrings:
    """String literals and escapes."""

    def test_simple_string(self):
        assert kinds('"hello"') == [(TokenType.STRING, "hello")]

    def test_escapes(self):
        tokens = tokenise(r'"a\"b\\c\nd\te"')
        assert tokens[0].value == 'a"b\\c\nd\te'

    def test_invalid_escape(self):
        with pytest.raises(LexerError) as exc:
            tokenise(r'"\q"')
        assert exc.value.code == "E003"

    def test_unterminated_string(self):
        with pytest.raises(LexerError) as exc:
            tokenise('"abc')
        assert "unterminated string" in exc.value.message

    def test_newline_in_string(self):
        """A raw newline ends the line before the string is closed."""
        with pytest.raises(LexerError) as exc:
            tokenise('"abc\ndef"')
        assert "unterminated string" in exc.value.message

    def test_error_shows_source_line(self):
        """Diagnostics quote the offending line with a caret."""
        with pytest.raises(LexerError) as exc:
            tokenise('x = "oops')
        text = str(exc.value)
        assert 'x = "oops' in text
        assert "^" in text
