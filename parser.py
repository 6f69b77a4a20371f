"""A quick shunting-yard parser for arithmetic expressions.

It does very little error checking: input is assumed to be well formed, and
anything else fails with a `ParseError` rather than a precise diagnosis.
"""
import logging
import re

from expression import OPS, Number, ParseError, Variable

logger = logging.getLogger(__name__)

eof = {"eof"}

token_rex = re.compile(
    r"""\s*(?:
        (?P<num>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)
      | (?P<name>[^\W\d_][^\W_]*)
      | (?P<op>[()^+\-*/])
      | (?P<bad>\S)
    )""",
    re.VERBOSE,
)


def lex(s):
    """Yield the tokens of `s`: numbers as floats, then names and operators as strings.

    >>> list(lex("4*x + y1/.5e1"))
    [4.0, '*', 'x', '+', 'y1', '/', 5.0, {'eof'}]
    """
    pos, end = 0, len(s.rstrip())
    while pos < end:
        m = token_rex.match(s, pos)
        if m["bad"]:
            raise ParseError(f"Unexpected character {m['bad']!r} at position {m.start('bad')}", s)
        pos = m.end()
        yield float(m["num"]) if m["num"] else m["name"] or m["op"]
    yield eof


def parse(s):
    """Parse the infix expression `s` into an expression tree.

    Precedence is `^` over `* /` over `+ -`, and every operator associates
    to the left, `^` included:

    >>> str(parse("4*x + y/9 + 12"))
    '(((4 * x) + (y / 9)) + 12)'
    >>> str(parse("2^3^2"))
    '((2 ^ 3) ^ 2)'
    """
    operators = []
    operands = []

    def reduce_top():
        if (o := operators.pop()) == "(":
            raise ParseError(f"Unbalanced '(' in {s!r}", s)
        o.apply(operands)

    flat = lex(s)
    try:
        while (tok := next(flat)) is not eof:
            if isinstance(tok, float):
                operands.append(Number(tok))
            elif tok == "(":
                operators.append(tok)
            elif tok == ")":
                while operators[-1] != "(":
                    reduce_top()
                operators.pop()
            elif o := OPS.get(tok):
                while operators and operators[-1] != "(" and operators[-1].left_first(o):
                    reduce_top()
                operators.append(o)
            else:
                operands.append(Variable(tok))
        while operators:
            reduce_top()
        (ans,) = operands
    except (IndexError, ValueError) as e:
        raise ParseError(f"Malformed expression {s!r}", s) from e
    logger.debug("parsed %r as %s", s, ans)
    return ans
