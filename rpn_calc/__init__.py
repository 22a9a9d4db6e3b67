"""Integer arithmetic calculator: lexer, shunting-yard parser and postfix evaluator."""

from .main import (
    BadExpressionError,
    CalculatorError,
    DivisionByZeroError,
    EvalError,
    InvalidCharacterError,
    Keypad,
    LexerError,
    MismatchedParenthesesError,
    ParseError,
    Token,
    TokenType,
    eval_postfix,
    evaluate,
    format_result,
    to_postfix,
    tokenize,
)

__version__ = "0.1.0"
