"""Lexing and shunting-yard conversion of infix expressions in one variable, x."""
import math
import re
from typing import Callable, Literal, NamedTuple, Optional

import numpy as np


class ExpressionError(ValueError):
    "Base class for every fault the expression pipeline reports."


class LexError(ExpressionError):
    def __init__(self, remainder, position):
        super().__init__(f"unrecognized input at position {position}: {remainder!r}")
        self.remainder = remainder
        self.position = position


class ExpressionSyntaxError(ExpressionError):
    pass


class EvalError(ExpressionError):
    def __init__(self, symbol, reason):
        super().__init__(f"{symbol}: {reason}" if symbol else reason)
        self.symbol = symbol
        self.reason = reason


def canonicalize_num(num):
    return repr(
        integer if math.isfinite(num) and (integer := int(num)) == num else num
    )


def _apply(symbol, fun, arity, stack):
    if len(stack) < arity:
        raise EvalError(symbol, f"needs {arity} operand(s), found {len(stack)}")
    stack[-arity:] = [fun(*stack[-arity:])]


class Num(NamedTuple):
    value: float

    def __str__(self):
        return canonicalize_num(self.value)


class Var(NamedTuple):
    name: str = "x"

    def __str__(self):
        return self.name


class Paren(NamedTuple):
    symbol: Literal["(", ")"]

    def __str__(self):
        return self.symbol


LPAREN = Paren("(")
RPAREN = Paren(")")


class Op(NamedTuple):
    op: str
    prec: int
    assoc: Literal["l", "r", "u"]  # left-associative, right-associative, unary
    fun: Callable

    def __repr__(self):
        return f"op({self.op!r:})"

    def __str__(self):
        return "neg" if self.op == "~" else self.op

    def left_first(self, other):
        return self.prec > other.prec or self.prec == other.prec and other.assoc == "l"

    def arity(self):
        return 1 if self.assoc == "u" else 2

    def apply(self, stack):
        _apply(str(self), self.fun, self.arity(), stack)


class Func(NamedTuple):
    name: str
    fun: Callable
    invalid: Optional[Callable] = None  # predicate flagging out-of-domain arguments
    reason: str = ""

    def __repr__(self):
        return f"func({self.name!r})"

    def __str__(self):
        return self.name

    def apply(self, stack):
        if stack and self.invalid is not None and np.any(self.invalid(stack[-1])):
            raise EvalError(self.name, self.reason)
        _apply(self.name, self.fun, 1, stack)


# One precedence rank per line, starting at 2. `~` is unary minus; the lexer
# only ever produces `-` and `to_postfix` decides which of the two it is.
OP_GROUPS = """
add+l subtract-l
multiply*l divide/l
negative~u power^r
""".strip()
OPS = {
    o: Op(o, prec, assoc, getattr(np, fun))
    for prec, op_groups in enumerate(OP_GROUPS.split("\n"), start=2)
    for [(fun, o, assoc)] in map(
        re.compile(r"^(\w+)(\W+)(\w+)$").findall, op_groups.split()
    )
}

FUNCS = {
    "sqrt": Func("sqrt", np.sqrt, lambda v: np.less(v, 0), "negative argument"),
    "sin": Func("sin", np.sin),
    "cos": Func("cos", np.cos),
    "tan": Func("tan", np.tan),
    "log": Func("log", np.log, lambda v: np.less_equal(v, 0), "non-positive argument"),
}

TOKEN_RE = re.compile(
    r"""\s*(?:
      (?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?(?![.\d]))
    | (?P<var>x)
    | (?P<paren>[()])
    | (?P<op>[-+*/^])
    | (?P<fun>(?i:%s))
    )"""
    % "|".join(sorted(FUNCS, key=len, reverse=True)),
    re.VERBOSE,
)


def lex(s):
    """Yield the tokens of `s`, raising `LexError` at the first unknown run.

    >>> [str(t) for t in lex("2e-1*SIN(x)-1")]
    ['0.2', '*', 'sin', '(', 'x', ')', '-', '1']
    """
    pos, end = 0, len(s.rstrip())
    while pos < end:
        if not (m := TOKEN_RE.match(s, pos)):
            start = len(s) - len(s[pos:].lstrip())
            raise LexError(s[start:], start)
        kind, text = m.lastgroup, m.group(m.lastgroup)
        if kind == "num":
            yield Num(float(text))
        elif kind == "var":
            yield Var(text)
        elif kind == "paren":
            yield LPAREN if text == "(" else RPAREN
        elif kind == "op":
            yield OPS[text]
        else:
            yield FUNCS[text.lower()]
        pos = m.end()


def tokenize(expression):
    return list(lex(expression))


def validate_parentheses(expression):
    """Check that every `(` is closed, and never closed before it is opened.

    Works on a raw string as well as on a token sequence.

    >>> validate_parentheses("(x+1)"), validate_parentheses("(x+1))")
    (True, False)
    """
    depth = 0
    for c in expression:
        c = getattr(c, "symbol", c)
        if c == "(":
            depth += 1
        elif c == ")":
            if not depth:
                return False
            depth -= 1
    return depth == 0


def to_postfix(tokens):
    """Reorder infix `tokens` into reverse Polish order (shunting-yard).

    >>> format_postfix(to_postfix(tokenize("2^3^2")))
    '2 3 2 ^ ^'
    >>> format_postfix(to_postfix(tokenize("-sqrt(x)*4")))
    'x sqrt neg 4 *'
    """
    output = []
    ops = []
    last_was_op = True
    for tok in tokens:
        if isinstance(tok, (Num, Var)):
            output.append(tok)
            last_was_op = False
        elif isinstance(tok, Func):
            ops.append(tok)
            last_was_op = True
        elif isinstance(tok, Op):
            if last_was_op:
                # Prefix position: nothing to its left can be flushed.
                if tok.op != "-":
                    raise ExpressionSyntaxError(
                        f"operator {tok.op!r} is missing its left operand"
                    )
                tok = OPS["~"]
            else:
                while ops and isinstance(ops[-1], Op) and ops[-1].left_first(tok):
                    output.append(ops.pop())
            ops.append(tok)
            last_was_op = True
        elif tok == LPAREN:
            ops.append(tok)
            last_was_op = True
        elif tok == RPAREN:
            while ops and ops[-1] != LPAREN:
                output.append(ops.pop())
            if not ops:
                raise ExpressionSyntaxError("')' without a matching '('")
            ops.pop()
            if ops and isinstance(ops[-1], Func):
                output.append(ops.pop())
            last_was_op = False
        else:
            raise ExpressionSyntaxError(f"unexpected token {tok!r}")
    while ops:
        if isinstance(top := ops.pop(), Paren):
            raise ExpressionSyntaxError("'(' without a matching ')'")
        output.append(top)
    return output


def format_postfix(postfix):
    return " ".join(map(str, postfix))
