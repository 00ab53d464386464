"""
Condition expressions for dialogue scripts.

Grammar (lowest to highest precedence):

    or         := and (('||' | 'or') and)*
    and        := not (('&&' | 'and') not)*
    not        := ('!' | 'not') not | comparison
    comparison := sum (('==' | '!=' | '>' | '<' | '>=' | '<=') sum)?
    sum        := product (('+' | '-') product)*
    product    := unary (('*' | '/') unary)*
    unary      := '-' unary | atom
    atom       := NUMBER | STRING | 'true' | 'false' | $VAR | NAME '(' ')' | '(' or ')'

Variables that were never set evaluate to MISSING. Predicates are
zero-argument host callables looked up by name at evaluation time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional

from storyvm.core.errors import EvaluationError, ExpressionSyntaxError, UnknownPredicate
from storyvm.core.variables import MISSING, VariableStore, is_scalar

logger = logging.getLogger(__name__)

Predicate = Callable[[], Any]

TOKEN_PATTERN = re.compile(r"""
    \s*(?:
        (?P<number>\d+(?:\.\d+)?)
      | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<var>\$[A-Za-z_][A-Za-z0-9_]*)
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
      | (?P<op>==|!=|>=|<=|&&|\|\||[<>!+\-*/()])
    )
""", re.VERBOSE)

KEYWORD_OPS = {"and": "&&", "or": "||", "not": "!"}
COMPARISONS = ("==", "!=", ">", "<", ">=", "<=")


# --- AST ---

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Call:
    name: str


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Expression:
    """A compiled expression."""
    source: str
    root: Any

    @property
    def predicates(self) -> set[str]:
        """Names of predicates this expression calls."""
        found: set[str] = set()
        stack = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, Call):
                found.add(node.name)
            elif isinstance(node, Unary):
                stack.append(node.operand)
            elif isinstance(node, Binary):
                stack.extend((node.left, node.right))
        return found


# --- Parsing ---

def _tokenize(source: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(source.rstrip())
    while pos < end:
        match = TOKEN_PATTERN.match(source, pos)
        if not match or match.end() == pos:
            raise ExpressionSyntaxError(source, f"unexpected character at {pos}")
        kind = match.lastgroup
        text = match.group(kind)
        if kind == "name" and text in KEYWORD_OPS:
            kind, text = "op", KEYWORD_OPS[text]
        tokens.append((kind, text))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, source: str):
        self.source = source
        self.tokens = _tokenize(source)
        self.pos = 0

    def parse(self) -> Any:
        if not self.tokens:
            raise ExpressionSyntaxError(self.source, "empty expression")
        node = self._or()
        if self.pos != len(self.tokens):
            raise ExpressionSyntaxError(self.source, f"unexpected '{self.tokens[self.pos][1]}'")
        return node

    def _peek(self) -> Optional[tuple[str, str]]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _accept(self, *ops: str) -> Optional[str]:
        token = self._peek()
        if token and token[0] == "op" and token[1] in ops:
            self.pos += 1
            return token[1]
        return None

    def _expect(self, op: str) -> None:
        if not self._accept(op):
            raise ExpressionSyntaxError(self.source, f"expected '{op}'")

    def _or(self) -> Any:
        node = self._and()
        while self._accept("||"):
            node = Binary("||", node, self._and())
        return node

    def _and(self) -> Any:
        node = self._not()
        while self._accept("&&"):
            node = Binary("&&", node, self._not())
        return node

    def _not(self) -> Any:
        if self._accept("!"):
            return Unary("!", self._not())
        return self._comparison()

    def _comparison(self) -> Any:
        node = self._sum()
        op = self._accept(*COMPARISONS)
        if op:
            node = Binary(op, node, self._sum())
        return node

    def _sum(self) -> Any:
        node = self._product()
        while True:
            op = self._accept("+", "-")
            if not op:
                return node
            node = Binary(op, node, self._product())

    def _product(self) -> Any:
        node = self._unary()
        while True:
            op = self._accept("*", "/")
            if not op:
                return node
            node = Binary(op, node, self._unary())

    def _unary(self) -> Any:
        if self._accept("-"):
            return Unary("-", self._unary())
        return self._atom()

    def _atom(self) -> Any:
        token = self._peek()
        if token is None:
            raise ExpressionSyntaxError(self.source, "unexpected end of expression")
        kind, text = token
        self.pos += 1

        if kind == "number":
            return Literal(float(text) if "." in text else int(text))
        if kind == "string":
            return Literal(re.sub(r"\\(.)", r"\1", text[1:-1]))
        if kind == "var":
            return Variable(text)
        if kind == "name":
            if text == "true":
                return Literal(True)
            if text == "false":
                return Literal(False)
            self._expect("(")
            self._expect(")")
            return Call(text)
        if text == "(":
            node = self._or()
            self._expect(")")
            return node
        raise ExpressionSyntaxError(self.source, f"unexpected '{text}'")


@lru_cache(maxsize=512)
def compile_expression(source: str) -> Expression:
    """Parse an expression once; results are cached by source text."""
    return Expression(source, _Parser(source).parse())


# --- Evaluation ---

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equal(left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING:
        return left is right or left is False or right is False
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


class Evaluator:
    """
    Evaluates expressions against a variable store and host predicates.

    evaluate() raises EvaluationError; check() applies the fail-closed
    policy used by conditionals and returns False instead.
    """

    def __init__(
        self,
        store: VariableStore,
        predicates: Optional[Mapping[str, Predicate]] = None,
    ):
        self.store = store
        self.predicates: dict[str, Predicate] = dict(predicates or {})

    def register_predicate(self, name: str, func: Predicate) -> None:
        self.predicates[name] = func

    def evaluate(self, expression: str | Expression) -> Any:
        """Evaluate an expression and return its value."""
        if isinstance(expression, str):
            expression = compile_expression(expression)
        return self._eval(expression.root, expression.source)

    def check(self, expression: str | Expression) -> bool:
        """Evaluate as a condition. Any evaluation error counts as false."""
        try:
            return bool(self.evaluate(expression))
        except EvaluationError as e:
            logger.warning(f"Condition treated as false: {e}")
            return False

    def _eval(self, node: Any, source: str) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Variable):
            return self.store.lookup(node.name)

        if isinstance(node, Call):
            func = self.predicates.get(node.name)
            if func is None:
                raise UnknownPredicate(source, node.name)
            try:
                result = func()
            except Exception as e:
                raise EvaluationError(source, f"predicate '{node.name}' failed: {e}") from e
            if not is_scalar(result):
                raise EvaluationError(source, f"predicate '{node.name}' returned {type(result).__name__}")
            return result

        if isinstance(node, Unary):
            value = self._eval(node.operand, source)
            if node.op == "!":
                return not value
            if not _is_number(value):
                raise EvaluationError(source, f"cannot negate {value!r}")
            return -value

        if node.op == "&&":
            return bool(self._eval(node.left, source)) and bool(self._eval(node.right, source))
        if node.op == "||":
            return bool(self._eval(node.left, source)) or bool(self._eval(node.right, source))

        left = self._eval(node.left, source)
        right = self._eval(node.right, source)

        if node.op == "==":
            return _equal(left, right)
        if node.op == "!=":
            return not _equal(left, right)
        if node.op in ("<", ">", "<=", ">="):
            return self._compare(node.op, left, right, source)
        return self._arithmetic(node.op, left, right, source)

    def _compare(self, op: str, left: Any, right: Any, source: str) -> bool:
        comparable = (
            (_is_number(left) and _is_number(right))
            or (isinstance(left, str) and isinstance(right, str))
        )
        if not comparable:
            raise EvaluationError(source, f"cannot compare {left!r} {op} {right!r}")
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        return left >= right

    def _arithmetic(self, op: str, left: Any, right: Any, source: str) -> Any:
        if op == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right
        if not (_is_number(left) and _is_number(right)):
            raise EvaluationError(source, f"cannot apply {op} to {left!r} and {right!r}")
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if right == 0:
            raise EvaluationError(source, "division by zero")
        return left / right


def evaluate(
    expression: str,
    store: VariableStore,
    predicates: Optional[Mapping[str, Predicate]] = None,
) -> Any:
    """Evaluate an expression once without keeping an Evaluator around."""
    return Evaluator(store, predicates).evaluate(expression)
