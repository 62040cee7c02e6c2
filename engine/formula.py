# engine/formula.py
"""
Restricted formula language used by question templates.

Formulas are parsed by a small recursive-descent parser into SymPy
expressions; only the operators + - * / ^ (or **), parentheses, the
functions in `_FUNCTIONS` and the constant PI exist. Identifiers are
resolved against the caller's context while parsing, so nothing is ever
handed to Python's eval.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Set, Tuple

import sympy
from sympy import nan, oo, zoo


class FormulaError(ValueError):
    """Raised for malformed formulas, unknown identifiers or non-real results."""


# --- Guards -----------------------------------------------------------------------
LEN_LIMIT = 500
_MAX_DEPTH = 50
_MAX_EXPONENT_ABS = 2000
_MAX_INT_DIGITS = 200
_LOG10_2 = math.log10(2)

_TOO_COMPLEX_MSG = "Expression is too complex."
_NON_FINITE_MSG = "Expression is not finite (e.g., division by zero)."
_NOT_REAL_MSG = "Expression does not evaluate to a real number."
_EMPTY_MSG = "Expression is empty."

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z_0-9]*)"
    r"|(?P<op>\*\*|[-+*/^(),])"
    r")"
)


def _rad(x):
    return x * sympy.pi / 180


def _deg(x):
    return x * 180 / sympy.pi


# name -> (arity, builder)
_FUNCTIONS: Dict[str, Tuple[int, Callable[..., Any]]] = {
    "sin": (1, sympy.sin),
    "cos": (1, sympy.cos),
    "tan": (1, sympy.tan),
    "asin": (1, sympy.asin),
    "acos": (1, sympy.acos),
    "atan": (1, sympy.atan),
    "atan2": (2, sympy.atan2),
    "sqrt": (1, sympy.sqrt),
    "abs": (1, sympy.Abs),
    "pow": (2, sympy.Pow),
    "rad": (1, _rad),
    "deg": (1, _deg),
}

_CONSTANTS: Dict[str, Any] = {"PI": sympy.pi}


class FormulaResult(NamedTuple):
    name: Optional[str]
    value: float


# --- Tokenizer ----------------------------------------------------------------------


def _tokenize(expr: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    pos = 0
    end = len(expr.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(expr, pos)
        if m is None or m.end() == pos:
            bad = expr[pos:].lstrip()[:1]
            raise FormulaError(f"Unexpected character {bad!r} in expression.")
        kind = m.lastgroup
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


# --- Parser -------------------------------------------------------------------------


def _to_sym_number(value: Any):
    if isinstance(value, bool):
        raise FormulaError("Boolean values cannot be used in formulas.")
    if isinstance(value, int):
        return sympy.Integer(value)
    return sympy.Float(float(value))


class _Parser:
    """
    expr   := term (('+' | '-') term)*
    term   := unary (('*' | '/') unary)*
    unary  := ('+' | '-') unary | power
    power  := atom (('^' | '**') unary)?
    atom   := NUMBER | NAME | NAME '(' args ')' | '(' expr ')'
    """

    def __init__(self, tokens: List[Tuple[str, str]], context: Mapping[str, Any]):
        self.tokens = tokens
        self.pos = 0
        self.context = context
        self.depth = 0

    def parse(self):
        if not self.tokens:
            raise FormulaError(_EMPTY_MSG)
        node = self._expr()
        if self.pos != len(self.tokens):
            raise FormulaError(f"Unexpected token {self.tokens[self.pos][1]!r}.")
        return node

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos][1]
        return None

    def _take(self) -> Tuple[str, str]:
        if self.pos >= len(self.tokens):
            raise FormulaError("Unexpected end of expression.")
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def _expect(self, value: str) -> None:
        kind, text = self._take()
        if text != value:
            raise FormulaError(f"Expected {value!r} but found {text!r}.")

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > _MAX_DEPTH:
            raise FormulaError(_TOO_COMPLEX_MSG)

    def _expr(self):
        node = self._term()
        while self._peek() in ("+", "-"):
            _, op = self._take()
            rhs = self._term()
            node = _check_size(node + rhs if op == "+" else node - rhs)
        return node

    def _term(self):
        node = self._unary()
        while self._peek() in ("*", "/"):
            _, op = self._take()
            rhs = self._unary()
            node = _check_size(node * rhs if op == "*" else node / rhs)
        return node

    def _unary(self):
        if self._peek() in ("+", "-"):
            _, op = self._take()
            self._enter()
            operand = self._unary()
            self.depth -= 1
            return -operand if op == "-" else operand
        return self._power()

    def _power(self):
        base = self._atom()
        if self._peek() in ("^", "**"):
            self._take()
            self._enter()
            exponent = self._unary()
            self.depth -= 1
            _check_power(base, exponent)
            return _check_size(sympy.Pow(base, exponent))
        return base

    def _atom(self):
        kind, text = self._take()
        if kind == "num":
            if any(c in text for c in ".eE"):
                return sympy.Float(text)
            return sympy.Integer(text)
        if kind == "name":
            if self._peek() == "(" and text in _FUNCTIONS:
                return self._call(text)
            if text in self.context:
                return _to_sym_number(self.context[text])
            if text in _CONSTANTS:
                return _CONSTANTS[text]
            raise FormulaError(f"Unknown identifier {text!r}.")
        if text == "(":
            self._enter()
            node = self._expr()
            self._expect(")")
            self.depth -= 1
            return node
        raise FormulaError(f"Unexpected token {text!r}.")

    def _call(self, name: str):
        arity, builder = _FUNCTIONS[name]
        self._expect("(")
        self._enter()
        args = [self._expr()]
        while self._peek() == ",":
            self._take()
            args.append(self._expr())
        self._expect(")")
        self.depth -= 1
        if len(args) != arity:
            raise FormulaError(f"{name}() takes {arity} argument(s), got {len(args)}.")
        if name == "pow":
            _check_power(args[0], args[1])
        elif name == "sqrt":
            _check_power(args[0], sympy.Rational(1, 2))
        return _check_size(builder(*args))


def _digits(n: int) -> float:
    return abs(n).bit_length() * _LOG10_2


def _check_size(node):
    # exact integers and rationals stay below _MAX_INT_DIGITS digits
    if getattr(node, "is_Rational", False):
        if max(_digits(node.p), _digits(node.q)) > _MAX_INT_DIGITS:
            raise FormulaError(_TOO_COMPLEX_MSG)
    return node


def _check_power(base, exponent) -> None:
    """Reject base**exponent before SymPy computes it when the result would be huge."""
    if not (getattr(base, "is_number", False) and getattr(exponent, "is_number", False)):
        return
    exp_abs = float(sympy.Abs(exponent).evalf())
    if not math.isfinite(exp_abs) or exp_abs > _MAX_EXPONENT_ABS:
        raise FormulaError(_TOO_COMPLEX_MSG)
    magnitude = sympy.Abs(base).evalf()
    if magnitude == 0:
        return
    digits = exp_abs * abs(float(sympy.log(magnitude, 10).evalf()))
    if not math.isfinite(digits) or digits > _MAX_INT_DIGITS:
        raise FormulaError(_TOO_COMPLEX_MSG)


def _assert_finite_sym(val: Any) -> None:
    if getattr(val, "is_finite", None) is False:
        raise FormulaError(_NON_FINITE_MSG)
    if val in (oo, -oo, zoo, nan) or val.has(zoo, oo, -oo, nan):
        raise FormulaError(_NON_FINITE_MSG)


def _to_float(sym: Any) -> float:
    _assert_finite_sym(sym)
    val = sym.evalf()
    _assert_finite_sym(val)
    if val.is_real is not True:
        raise FormulaError(_NOT_REAL_MSG)
    try:
        f = float(val)
    except (TypeError, ValueError) as e:
        raise FormulaError(_NOT_REAL_MSG) from e
    if not math.isfinite(f):
        raise FormulaError(_NON_FINITE_MSG)
    return f


# --- Public API ---------------------------------------------------------------------


def evaluate(expression: str, context: Optional[Mapping[str, Any]] = None) -> float:
    """
    Evaluate `expression` with the numeric values in `context`.

    Raises FormulaError for anything outside the formula language, for
    identifiers missing from `context` and for non-finite or complex results.
    """
    if not isinstance(expression, str):
        raise FormulaError("Expression must be a string.")
    if len(expression) > LEN_LIMIT:
        raise FormulaError(_TOO_COMPLEX_MSG)
    parser = _Parser(_tokenize(expression), context or {})
    return _to_float(parser.parse())


def referenced_names(expression: str) -> Set[str]:
    """Identifiers used as variables in `expression` (functions and PI excluded)."""
    tokens = _tokenize(expression)
    names: Set[str] = set()
    for i, (kind, text) in enumerate(tokens):
        if kind != "name" or text in _CONSTANTS:
            continue
        is_call = i + 1 < len(tokens) and tokens[i + 1][1] == "(" and text in _FUNCTIONS
        if not is_call:
            names.add(text)
    return names


def topological_order(formulas: Mapping[str, str]) -> List[str]:
    """
    Order the keys of `formulas` so each one comes after every other key its
    expression refers to. Declaration order is kept among independent keys.
    """
    deps = {key: referenced_names(expr) & set(formulas) - {key} for key, expr in formulas.items()}
    ordered: List[str] = []
    done: Set[str] = set()
    visiting: List[str] = []

    def visit(key: str) -> None:
        if key in done:
            return
        if key in visiting:
            cycle = visiting[visiting.index(key) :] + [key]
            raise FormulaError(f"Circular reference between formulas: {' -> '.join(cycle)}.")
        visiting.append(key)
        for other in formulas:
            if other in deps[key]:
                visit(other)
        visiting.pop()
        done.add(key)
        ordered.append(key)

    for key in formulas:
        visit(key)
    return ordered


def evaluate_formula(formula: str, context: Optional[Mapping[str, Any]] = None) -> List[FormulaResult]:
    """
    Evaluate an answer formula.

    `formula` is either a plain expression, a JSON array of independent
    expressions, or a JSON object of named expressions that may refer to each
    other. Results come back in declaration order; named results carry their
    key, the others carry None.
    """
    context = dict(context or {})
    text = formula.strip() if isinstance(formula, str) else ""
    if not text:
        raise FormulaError(_EMPTY_MSG)

    if text[0] not in "[{":
        return [FormulaResult(None, evaluate(text, context))]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise FormulaError(f"Invalid JSON formula: {e.msg}.") from e

    if isinstance(data, list):
        if not all(isinstance(expr, str) for expr in data):
            raise FormulaError("Formula arrays may only contain expressions.")
        return [FormulaResult(None, evaluate(expr, context)) for expr in data]

    if isinstance(data, dict):
        if not all(isinstance(expr, str) for expr in data.values()):
            raise FormulaError("Named formulas must map names to expressions.")
        results: Dict[str, float] = {}
        for key in topological_order(data):
            results[key] = evaluate(data[key], {**context, **results})
        return [FormulaResult(key, results[key]) for key in data]

    raise FormulaError("Formula must be an expression, a JSON array or a JSON object.")
