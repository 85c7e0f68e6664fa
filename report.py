"""Command line front end: integrate an expression and write a Markdown report."""
import argparse
import logging
import os
import sys
from datetime import datetime

from infix import ExpressionError
from rectquad import analyze_error, integrate_expression

DEBUG = bool(os.getenv("DEBUG", False))
DEFAULT_N = os.getenv("RECTQUAD_N", "100")  # parsed by positive_int
DEFAULT_REPORT = os.getenv("RECTQUAD_REPORT") or None

logger = logging.getLogger(__name__)


def save_results(path, integral, exact=None):
    lines = [
        "# Composite midpoint rule with Richardson extrapolation",
        "",
        f"**Expression:** `{integral.expression}`",
        f"**Interval:** [{integral.a}, {integral.b}]",
        f"**Subintervals (n):** {integral.n}",
        "",
        f"- `I_{integral.n} = {integral.i_n!r}`",
        f"- `I_{2 * integral.n} = {integral.i_2n!r}`",
        "",
        "## Refined result",
        f"`I_R = {integral.refined!r}`",
        "",
        f"## Estimated error (Richardson) = `{integral.error!r}`",
    ]
    if exact is not None:
        abs_error, rel_error = analyze_error(integral.refined, exact)
        lines += [
            "",
            f"## Exact value = `{exact!r}`",
            f"- absolute error: `{abs_error!r}`",
            f"- relative error: `{rel_error!r}`",
        ]
    lines += ["", "---", f"Generated: {datetime.now():%Y-%m-%d %H:%M:%S}", ""]
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
    logger.info("Results written to %s", path)


def positive_int(s):
    if (n := int(s)) <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {n}")
    return n


def build_parser():
    parser = argparse.ArgumentParser(
        prog="rectquad",
        description="Integrate f(x) over [a, b] with the composite midpoint rule.",
        epilog="Supported: + - * / ^, unary -, sqrt sin cos tan log, the variable x.",
    )
    parser.add_argument("expression", help="f(x), e.g. 'sin(x)^2+1'")
    parser.add_argument("a", type=float, help="lower bound")
    parser.add_argument("b", type=float, help="upper bound")
    parser.add_argument("-n", "--subintervals", type=positive_int, default=DEFAULT_N)
    parser.add_argument("--exact", type=float, help="known value of the integral")
    parser.add_argument("-o", "--output", default=DEFAULT_REPORT, help="Markdown report path")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    expression = "".join(args.expression.split())
    try:
        integral = integrate_expression(expression, args.a, args.b, args.subintervals)
    except ExpressionError as e:
        logger.error("Cannot integrate %r: %s", expression, e)
        return 1

    n = integral.n
    print(f"f(x) = {expression} on [{integral.a}, {integral.b}]")
    print(f"I_{n} = {integral.i_n!r}")
    print(f"I_{2 * n} = {integral.i_2n!r}")
    print(f"Richardson: I_R = {integral.refined!r}, error ~ {integral.error!r}")
    if args.exact is not None:
        abs_error, rel_error = analyze_error(integral.refined, args.exact)
        print(f"Exact: {args.exact!r}, abs error = {abs_error!r}, rel error = {rel_error!r}")
    if args.output:
        save_results(args.output, integral, args.exact)
    return 0


if __name__ == "__main__":
    sys.exit(main())
