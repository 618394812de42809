"""Arithmetic parsers: conventional infix notation and expressions in words."""

import ast
import logging
import math
import operator
import re
from typing import Callable, Dict, List, Tuple, Union

from smart_launcher.core.numbers import format_number, words_to_number
from smart_launcher.models.schemas import ExecutableCommand

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 256
MAX_EXPONENT = 1000
MAX_FACTORIAL = 170

PARSE_ERRORS = (ValueError, ArithmeticError, SyntaxError, TypeError, RecursionError)

BINARY_OPERATORS: Dict[type, Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

UNARY_OPERATORS: Dict[type, Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

CONSTANTS = {"pi": math.pi, "e": math.e}

FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "sqrt": math.sqrt,
    "log": math.log10,
    "ln": math.log,
    "abs": abs,
}


def _power(base: float, exponent: float) -> float:
    if abs(exponent) > MAX_EXPONENT:
        raise ValueError("Exponent too large")
    return math.pow(base, exponent)


def _evaluate(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant):
        if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return node.value
        raise ValueError(f"Unsupported literal: {node.value!r}")
    if isinstance(node, ast.BinOp):
        left, right = _evaluate(node.left), _evaluate(node.right)
        if isinstance(node.op, ast.Pow):
            return _power(left, right)
        if type(node.op) in BINARY_OPERATORS:
            return BINARY_OPERATORS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in UNARY_OPERATORS:
        return UNARY_OPERATORS[type(node.op)](_evaluate(node.operand))
    if isinstance(node, ast.Name) and node.id in CONSTANTS:
        return CONSTANTS[node.id]
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in FUNCTIONS
        and len(node.args) == 1
        and not node.keywords
    ):
        return FUNCTIONS[node.func.id](_evaluate(node.args[0]))
    raise ValueError(f"Unsupported expression: {ast.dump(node)}")


def _has_operation(node: ast.AST) -> bool:
    """A lone (signed) literal or constant is not an expression."""
    return any(isinstance(child, (ast.BinOp, ast.Call)) for child in ast.walk(node))


def _normalize_symbols(query: str) -> str:
    expression = query.strip().lower().rstrip("=").strip()
    expression = (
        expression.replace("×", "*")
        .replace("÷", "/")
        .replace("−", "-")
        .replace("^", "**")
        .replace(",", "")
    )
    return re.sub(r"(?<=[\d)])\s*x\s*(?=[\d(])", "*", expression)


def parse_math_expression(query: str) -> List[ExecutableCommand]:
    """Evaluate conventional infix arithmetic such as "1 + 1" or "2^10 / 4"."""
    expression = _normalize_symbols(query)
    if not expression or len(expression) > MAX_EXPRESSION_LENGTH:
        return []

    try:
        tree = ast.parse(expression, mode="eval")
        if not _has_operation(tree):
            return []
        result = float(_evaluate(tree))
    except PARSE_ERRORS as e:
        logger.debug(f"Not a symbolic expression {query!r}: {e}")
        return []

    if not math.isfinite(result):
        return []
    return [ExecutableCommand.formula_result(format_number(result))]


# Worded arithmetic

Token = Tuple[str, Union[str, float]]

PREFIX_PATTERN = re.compile(r"^(?:what\s+is|what's|whats|calculate|compute)\s+")

# Longer phrases first so "square root of" wins over "square root"
WORD_OPERATORS = [
    (r"raised to the power of", "POW"),
    (r"to the power of", "POW"),
    (r"square root of", "SQRT"),
    (r"square root", "SQRT"),
    (r"sqrt of", "SQRT"),
    (r"sqrt", "SQRT"),
    (r"cube root of", "CBRT"),
    (r"logarithm of", "LOG"),
    (r"log of", "LOG"),
    (r"log", "LOG"),
    (r"percent of", "PCT"),
    (r"multiplied by", "MUL"),
    (r"multiply by", "MUL"),
    (r"times", "MUL"),
    (r"x", "MUL"),
    (r"divided by", "DIV"),
    (r"divide by", "DIV"),
    (r"over", "DIV"),
    (r"plus", "ADD"),
    (r"add", "ADD"),
    (r"minus", "SUB"),
    (r"subtracted by", "SUB"),
    (r"subtract", "SUB"),
    (r"less", "SUB"),
    (r"squared", "SQUARED"),
    (r"cubed", "CUBED"),
    (r"factorial", "FACT"),
]

CHAIN_OPERATORS = {
    "ADD": operator.add,
    "SUB": operator.sub,
    "MUL": operator.mul,
    "DIV": operator.truediv,
}


def _factorial(value: float) -> float:
    if value < 0 or value != int(value) or value > MAX_FACTORIAL:
        raise ValueError(f"Factorial undefined for {value}")
    return float(math.factorial(int(value)))


def _cube_root(value: float) -> float:
    return math.copysign(abs(value) ** (1 / 3), value)


PREFIX_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "SQRT": math.sqrt,
    "CBRT": _cube_root,
    "LOG": math.log10,
}

POSTFIX_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "SQUARED": lambda value: value**2,
    "CUBED": lambda value: value**3,
    "FACT": _factorial,
}


def _tokenize_words(query: str) -> List[Token]:
    text = query.strip().lower().rstrip("?=").strip()
    text = PREFIX_PATTERN.sub("", text)
    text = text.replace("%", " percent ").replace(",", "")
    text = re.sub(r"(?<=[a-z])-(?=[a-z])", " ", text)
    for phrase, name in WORD_OPERATORS:
        pattern = phrase.replace(" ", r"\s+")
        text = re.sub(rf"\b{pattern}\b", f" {name} ", text)

    tokens: List[Token] = []
    phrase: List[str] = []
    for word in text.split():
        if word.isupper():
            if phrase:
                tokens.append(("num", words_to_number(" ".join(phrase))))
                phrase = []
            tokens.append(("op", word))
        else:
            phrase.append(word)
    if phrase:
        tokens.append(("num", words_to_number(" ".join(phrase))))
    return tokens


class _WordExpression:
    """Left-to-right evaluator where functions bind tighter than chained ops."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0

    def _peek(self) -> Token:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return ("end", "")

    def _next(self) -> Token:
        token = self._peek()
        self.position += 1
        return token

    def evaluate(self) -> float:
        result = self._operand()
        while self._peek()[0] == "op" and self._peek()[1] in CHAIN_OPERATORS:
            name = self._next()[1]
            result = CHAIN_OPERATORS[name](result, self._operand())
        if self._peek()[0] != "end":
            raise ValueError(f"Unexpected token: {self._peek()}")
        return result

    def _operand(self) -> float:
        value = self._unary()
        while self._peek() in (("op", "POW"), ("op", "PCT")):
            name = self._next()[1]
            right = self._unary()
            value = _power(value, right) if name == "POW" else value / 100 * right
        return value

    def _unary(self) -> float:
        kind, name = self._peek()
        if kind == "op" and name in PREFIX_FUNCTIONS:
            self._next()
            return PREFIX_FUNCTIONS[name](self._unary())
        if kind == "op" and name == "SUB":
            self._next()
            return -self._unary()

        kind, value = self._next()
        if kind != "num":
            raise ValueError(f"Expected a number, got {value!r}")
        while self._peek()[0] == "op" and self._peek()[1] in POSTFIX_FUNCTIONS:
            value = POSTFIX_FUNCTIONS[self._next()[1]](value)
        return value


def parse_text_math_expression(query: str) -> List[ExecutableCommand]:
    """Evaluate arithmetic written in words, e.g. "square root of sixteen"."""
    if len(query) > MAX_EXPRESSION_LENGTH:
        return []

    try:
        tokens = _tokenize_words(query)
        if not any(kind == "op" for kind, _ in tokens):
            return []
        result = _WordExpression(tokens).evaluate()
    except PARSE_ERRORS as e:
        logger.debug(f"Not a worded expression {query!r}: {e}")
        return []

    if not math.isfinite(result):
        return []
    return [ExecutableCommand.formula_result(format_number(result))]
