# main.py
"""
Arithmetic expression calculator built as a three-stage pipeline.

Implementation Approach:
1. Lexer turns the raw string into NUMBER / OP tokens (integers and + - * / ( ) only)
2. Parser reorders the tokens into postfix order with the shunting-yard algorithm
3. Evaluator runs the postfix tokens through a stack machine
4. evaluate() composes the three stages and is the only surface the front ends use
5. Keypad, REPL and the command line are thin front ends that catch CalculatorError

Every stage is a pure function of its input. Nothing is shared between calls.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from fractions import Fraction
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

logger = logging.getLogger(__name__)

Number = Union[int, Fraction]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Union[int, str] = logging.WARNING) -> None:
    """Configure root logging the same way for every entry point."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


# --------------------------
# Exceptions
# --------------------------

class CalculatorError(Exception):
    """Base class for calculator errors."""
    kind = "CalculatorError"


class LexerError(CalculatorError):
    """Raised for errors during tokenization."""
    kind = "LexerError"


class InvalidCharacterError(LexerError):
    """Raised when the input holds a character the lexer does not recognise."""
    kind = "InvalidCharacter"

    def __init__(self, char: str, pos: int):
        super().__init__(f"Invalid character {char!r} at pos {pos}")
        self.char = char
        self.pos = pos


class ParseError(CalculatorError):
    """Raised for errors while converting infix tokens to postfix."""
    kind = "ParseError"


class MismatchedParenthesesError(ParseError):
    """Raised when brackets do not balance or nest correctly."""
    kind = "MismatchedParentheses"


class EvalError(CalculatorError):
    """Raised for errors during evaluation of a postfix sequence."""
    kind = "EvalError"


class BadExpressionError(EvalError):
    """Raised when an operator lacks operands or the result is not a single value."""
    kind = "BadExpression"


class DivisionByZeroError(EvalError):
    """Raised when the right operand of a division is zero."""
    kind = "DivisionByZero"


# --------------------------
# Tokenizer / Lexer
# --------------------------

class TokenType:
    """Enumeration of token types."""
    NUMBER = 'NUMBER'
    OP = 'OP'


@dataclass(frozen=True)
class Token:
    """A number or a single operator/parenthesis symbol."""
    type: str
    value: Any

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r})"


DIGITS = '0123456789'
OPERATORS = '+-*/'
SYMBOLS = OPERATORS + '()'
LPAREN = '('
RPAREN = ')'


@contextmanager
def _unlimited_int_digits():
    """Lift the interpreter's int/str conversion digit limit (Python 3.11+) for a block."""
    if not hasattr(sys, "set_int_max_str_digits"):
        yield
        return
    limit = sys.get_int_max_str_digits()
    sys.set_int_max_str_digits(0)
    try:
        yield
    finally:
        sys.set_int_max_str_digits(limit)


def _parse_int(digits: str) -> int:
    try:
        return int(digits)
    except ValueError:
        # Only the digit limit can fail here; the lexer hands over ASCII digits.
        with _unlimited_int_digits():
            return int(digits)


def _int_str(n: int) -> str:
    try:
        return str(n)
    except ValueError:
        with _unlimited_int_digits():
            return str(n)


class Lexer:
    """Tokenizer for calculator expressions.

    Produces NUMBER tokens for maximal runs of ASCII digits and OP tokens for
    each of + - * / ( ). Whitespace is skipped; anything else is an error.
    """
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.len = len(text)

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < self.len else ''

    def _advance(self, n: int = 1) -> None:
        self.pos += n

    def _read_number(self) -> Token:
        start = self.pos
        while self._peek() and self._peek() in DIGITS:
            self._advance()
        return Token(TokenType.NUMBER, _parse_int(self.text[start:self.pos]))

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            ch = self._peek()
            if ch == '':
                break
            if ch.isspace():
                self._advance()
            elif ch in DIGITS:
                tokens.append(self._read_number())
            elif ch in SYMBOLS:
                tokens.append(Token(TokenType.OP, ch))
                self._advance()
            else:
                raise InvalidCharacterError(ch, self.pos)
        return tokens


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into tokens. Raises InvalidCharacterError on unknown input."""
    return Lexer(text).tokenize()


# --------------------------
# Parser (shunting-yard to postfix)
# --------------------------

# Higher number = higher precedence. All operators are left-associative.
PRECEDENCE: Mapping[str, int] = MappingProxyType({
    '+': 1,
    '-': 1,
    '*': 2,
    '/': 2,
})


def _is_operator(token: Token) -> bool:
    return token.type == TokenType.OP and token.value in PRECEDENCE


def to_postfix(tokens: Sequence[Token]) -> List[Token]:
    """Reorder infix tokens into postfix order.

    Equal precedence pops the stacked operator first, which makes chains such
    as ``8-3-1`` group to the left. Parentheses never reach the output.

    Raises:
        MismatchedParenthesesError: a ``)`` without an open ``(`` or an
            unclosed ``(`` left at the end of input.
    """
    output: List[Token] = []
    stack: List[Token] = []
    for tok in tokens:
        if tok.type == TokenType.NUMBER:
            output.append(tok)
        elif _is_operator(tok):
            while (
                stack
                and _is_operator(stack[-1])
                and PRECEDENCE[tok.value] <= PRECEDENCE[stack[-1].value]
            ):
                output.append(stack.pop())
            stack.append(tok)
        elif tok.value == LPAREN:
            stack.append(tok)
        elif tok.value == RPAREN:
            while stack and stack[-1].value != LPAREN:
                output.append(stack.pop())
            if not stack:
                raise MismatchedParenthesesError("Mismatched parentheses: unexpected ')'")
            stack.pop()
        else:
            raise ParseError(f"Unexpected token {tok!r}")
    while stack:
        tok = stack.pop()
        if tok.value in (LPAREN, RPAREN):
            raise MismatchedParenthesesError("Mismatched parentheses: unclosed '('")
        output.append(tok)
    return output


# --------------------------
# Evaluator (postfix stack machine)
# --------------------------

def _apply(op: str, a: Number, b: Number) -> Number:
    if op == '+':
        return a + b
    if op == '-':
        return a - b
    if op == '*':
        return a * b
    if op == '/':
        if b == 0:
            raise DivisionByZeroError("Division by zero")
        return Fraction(a) / b
    raise EvalError(f"Unknown operator: {op}")


def eval_postfix(tokens: Sequence[Token]) -> Number:
    """Evaluate a postfix token sequence and return its single value.

    Integer operands stay integers under + - *; ``/`` is exact rational
    division and never truncates (``7/2`` gives ``Fraction(7, 2)``, equal to 3.5).
    """
    stack: List[Number] = []
    for tok in tokens:
        if tok.type == TokenType.NUMBER:
            stack.append(tok.value)
            continue
        if len(stack) < 2:
            raise BadExpressionError(f"Missing operand for '{tok.value}'")
        b = stack.pop()
        a = stack.pop()
        stack.append(_apply(tok.value, a, b))
    if len(stack) != 1:
        raise BadExpressionError(f"Bad expression: {len(stack)} values left after evaluation")
    return stack[0]


def _postfix_str(tokens: Sequence[Token]) -> str:
    return ' '.join(
        _int_str(t.value) if t.type == TokenType.NUMBER else t.value
        for t in tokens
    )


def evaluate(expression: str) -> Number:
    """Evaluate an arithmetic expression string.

    Runs lexer, parser and evaluator in order and lets the first
    CalculatorError raised by any stage propagate unchanged.
    """
    debug = logger.isEnabledFor(logging.DEBUG)
    tokens = tokenize(expression)
    postfix = to_postfix(tokens)
    if debug:
        logger.debug("Tokenized %d tokens, postfix form: %s", len(tokens), _postfix_str(postfix))
    result = eval_postfix(postfix)
    if debug:
        logger.debug("Result of %r: %s", expression, format_result(result))
    return result


def format_result(value: Union[Number, float]) -> str:
    """Render a result the way a display shows it.

    Whole values print without a fractional part (``4``, not ``4.0`` or
    ``Fraction(4, 1)``). Other fractions print as their decimal approximation
    (``3.5``); when that is out of float range, or rounds to zero, the exact
    ``numerator/denominator`` form is shown instead.
    """
    if isinstance(value, Fraction):
        if value.denominator == 1:
            return _int_str(value.numerator)
        try:
            approx = float(value)
        except OverflowError:
            approx = 0.0
        if approx == 0.0:
            return f"{_int_str(value.numerator)}/{_int_str(value.denominator)}"
        return str(approx)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, int):
        return _int_str(value)
    return str(value)


# --------------------------
# Keypad
# --------------------------

KEYS: Tuple[str, ...] = (
    "7", "8", "9", "+",
    "4", "5", "6", "-",
    "1", "2", "3", "*",
    "C", "0", "=", "/",
)

ERROR_LABEL = "Error"


class Keypad:
    """Assembles an expression from key presses and holds the last result."""

    def __init__(self):
        self.expression = ""
        self.result = ""

    def press(self, key: str) -> str:
        if key == "C":
            self.expression = ""
            self.result = ""
        elif key == "=":
            try:
                self.result = format_result(evaluate(self.expression))
            except CalculatorError as e:
                logger.info("Keypad evaluation of %r failed: %s", self.expression, e)
                self.result = ERROR_LABEL
        elif key == ".":
            # No decimal literals; the key is accepted and dropped.
            pass
        else:
            self.expression += key
        return self.result

    def type_text(self, text: str) -> None:
        """Replace the expression with free-typed text."""
        self.expression = text


# --------------------------
# Settings
# --------------------------

DEFAULT_HISTORY_FILE = "~/.rpn_calc_history"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Settings:
    history_file: str
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from RPN_CALC_* environment variables."""
        return cls(
            history_file=os.path.expanduser(
                os.getenv("RPN_CALC_HISTORY_FILE", DEFAULT_HISTORY_FILE)
            ),
            log_level=os.getenv("RPN_CALC_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


# --------------------------
# REPL
# --------------------------

HELP_TEXT = """
Calculator Help
---------------
Enter an expression made of non-negative integers, + - * / and parentheses.
Multiplication and division bind tighter than addition and subtraction;
operators of equal precedence group left to right.

Examples:
  > 2 + 3 * 4
  14
  > (2 + 3) * 4
  20
  > 7 / 2
  3.5
  > 5 / 0
  Error: Division by zero

Commands:
  help        show this help
  exit, quit  leave the calculator (Ctrl-D works too)
"""


class REPL:
    """Read-Eval-Print Loop for the calculator."""
    PROMPT = '> '

    def __init__(self, history_file: Optional[str] = None, session: Any = None):
        self.history_file = history_file or Settings.from_env().history_file
        if session is None:
            session = PromptSession(history=FileHistory(self.history_file))
        self.session = session

    def evaluate_line(self, line: str) -> Tuple[bool, str]:
        """Evaluate a single expression line. Returns (ok, output)."""
        try:
            return True, format_result(evaluate(line))
        except CalculatorError as e:
            logger.info("Evaluation of %r failed (%s): %s", line, e.kind, e)
            return False, f"Error: {e}"

    def run(self) -> None:
        print("Welcome to the calculator! Type 'help' for instructions, or 'exit' to quit.")
        while True:
            try:
                line = self.session.prompt(self.PROMPT)
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print("Goodbye!")
                break

            line = line.strip()
            if not line:
                continue
            if line.lower() in ('exit', 'quit'):
                print("Goodbye!")
                break
            if line.lower() == 'help':
                print(HELP_TEXT.strip())
                continue

            _, out = self.evaluate_line(line)
            print(out)


# --------------------------
# Entry point
# --------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpn-calc",
        description="Evaluate integer arithmetic expressions with + - * / and parentheses.",
    )
    parser.add_argument(
        "expression",
        nargs="?",
        help="Expression to evaluate once. Starts the interactive prompt when omitted.",
    )
    parser.add_argument(
        "--history-file",
        type=str,
        help="Path of the prompt history file (default: $RPN_CALC_HISTORY_FILE or ~/.rpn_calc_history).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: $RPN_CALC_LOG_LEVEL or WARNING).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.history_file:
        settings.history_file = os.path.expanduser(args.history_file)
    if args.log_level:
        settings.log_level = args.log_level.upper()
    configure_logging(settings.log_level)

    if args.expression is not None:
        try:
            print(format_result(evaluate(args.expression)))
        except CalculatorError as e:
            logger.info("Evaluation failed (%s): %s", e.kind, e)
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    REPL(history_file=settings.history_file).run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
