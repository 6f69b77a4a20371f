# A walk through the expression tree operations, on a parsed expression and
# on a generated geometric mean. Set DEBUG to see the parser's log.
import logging
import os

from expression import (
    Number,
    collect_variables,
    evaluate,
    geometric_mean,
    reciprocal,
    render_postfix,
)
from parser import parse


DEBUG = bool(os.getenv("DEBUG", False))


def main():
    if DEBUG:
        logging.basicConfig(level=logging.DEBUG)

    bindings = {"x": 10.0, "y": 27.0}
    expr = parse("4*x + y/9 + 12")

    print("render:          ", expr)
    print("postfix:         ", render_postfix(expr))
    print("evaluate:        ", evaluate(expr, bindings))
    print("reciprocal:      ", reciprocal(expr))
    print("reciprocal(num): ", reciprocal(Number(7)))
    print("reciprocal(div): ", reciprocal(parse("x / 10")))
    print("variables:       ", sorted(collect_variables(expr)))

    mean = geometric_mean([4, 9, 3, 7, 6])
    print("geometric mean:  ", mean)
    print("which evaluates to", evaluate(mean, bindings))


if __name__ == "__main__":
    main()
