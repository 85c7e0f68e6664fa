"""Evaluate postfix expressions in x and integrate them with the composite
midpoint rule, refined by Richardson extrapolation.
"""
import logging
from typing import NamedTuple

import numpy as np

from infix import (
    EvalError,
    ExpressionSyntaxError,
    Func,
    Num,
    Op,
    Var,
    format_postfix,
    to_postfix,
    tokenize,
    validate_parentheses,
)

logger = logging.getLogger(__name__)

MIDPOINT_CHUNK = 1 << 16


def evaluate(postfix, x):
    """Run the stack machine over `postfix` with the variable bound to `x`.

    `x` may also be a numpy array, in which case all values are computed at
    once. Division by zero and invalid powers give inf/nan, as in numpy;
    only sqrt and log check their domain.

    >>> evaluate(to_postfix(tokenize("2*x+3")), 4)
    11.0
    >>> evaluate(to_postfix(tokenize("x/0")), -1.0)
    -inf
    >>> evaluate(to_postfix(tokenize("log(x)")), 0.0)
    Traceback (most recent call last):
      ...
    infix.EvalError: log: non-positive argument
    """
    stack = []
    with np.errstate(all="ignore"):
        for tok in postfix:
            if isinstance(tok, Num):
                stack.append(tok.value)
            elif isinstance(tok, Var):
                stack.append(x)
            elif isinstance(tok, (Op, Func)):
                tok.apply(stack)
            else:
                raise EvalError(str(tok), "unexpected token in postfix sequence")
    if len(stack) != 1:
        raise EvalError(None, f"expected one value on the stack, found {len(stack)}")
    (ans,) = stack
    return float(ans) if np.ndim(ans) == 0 else ans


def evaluator(postfix, name="f"):
    """Return a function (named `name`) of x that evaluates `postfix`.

    >>> f = evaluator(to_postfix(tokenize("sqrt(x)")))
    >>> f(4.0), f(np.array([1.0, 9.0])).tolist()
    (2.0, [1.0, 3.0])
    """

    def f(x):
        return evaluate(postfix, x)

    f.__name__ = name
    return f


def integrate_midpoint(f, a, b, n, vectorized=False):
    """Composite midpoint rule for f over [a, b] with n equal subintervals.

    With `vectorized`, f is called with arrays of up to MIDPOINT_CHUNK
    midpoints at a time.

    >>> integrate_midpoint(lambda x: 2 * x, 0.0, 1.0, 4)
    1.0
    """
    if n <= 0:
        raise ValueError(f"number of subintervals must be positive, got {n}")
    h = (b - a) / n
    if vectorized:
        total = 0.0
        for start in range(0, n, MIDPOINT_CHUNK):
            k = np.arange(start, min(start + MIDPOINT_CHUNK, n))
            midpoints = a + (k + 0.5) * h
            total += np.sum(np.broadcast_to(f(midpoints), midpoints.shape))
        return float(total * h)
    return float(sum(f(a + (k + 0.5) * h) for k in range(n)) * h)


class Richardson(NamedTuple):
    refined: float
    error: float


def richardson_refine(i_n, i_2n):
    """Combine midpoint results for n and 2n subintervals.

    The midpoint rule's leading error is O(h^2), so halving h quarters it:
    refined = (4*I_2n - I_n)/3, error estimate = |I_2n - I_n|/3.

    >>> richardson_refine(0.25, 0.25)
    Richardson(refined=0.25, error=0.0)
    """
    # Same value as (4*i_2n - i_n)/3, but exact when i_n == i_2n.
    delta = i_2n - i_n
    return Richardson(i_2n + delta / 3.0, abs(delta) / 3.0)


def analyze_error(numeric, exact):
    """Absolute and relative error of `numeric` against a known `exact` value.

    >>> analyze_error(0.75, 1.0)
    (0.25, 0.25)
    """
    abs_error = abs(numeric - exact)
    with np.errstate(all="ignore"):
        rel_error = float(np.divide(abs_error, abs(exact)))
    return abs_error, rel_error


class Integral(NamedTuple):
    expression: str
    a: float
    b: float
    n: int
    i_n: float
    i_2n: float
    refined: float
    error: float


def integrate_expression(expression, a, b, n, vectorized=True):
    """Integrate the expression `expression` in x over [a, b].

    Runs the midpoint rule with n and 2n subintervals and refines the pair.

    >>> abs(integrate_expression("x^2", 0, 1, 10).refined - 1 / 3) < 1e-12
    True
    """
    if n <= 0:
        raise ValueError(f"number of subintervals must be positive, got {n}")
    if not validate_parentheses(expression):
        raise ExpressionSyntaxError(f"unbalanced parentheses in {expression!r}")
    postfix = to_postfix(tokenize(expression))
    logger.debug("f(x) = %s -> %s", expression, format_postfix(postfix))
    f = evaluator(postfix)
    i_n = integrate_midpoint(f, a, b, n, vectorized)
    i_2n = integrate_midpoint(f, a, b, 2 * n, vectorized)
    refined, error = richardson_refine(i_n, i_2n)
    logger.debug(
        "I_%d = %r, I_%d = %r, refined = %r, error = %r",
        n, i_n, 2 * n, i_2n, refined, error,
    )
    return Integral(expression, a, b, n, i_n, i_2n, refined, error)
