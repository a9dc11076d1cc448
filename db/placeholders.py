"""
db/placeholders.py
------------------
Translates `?` and `:name` placeholders into the pyformat style
(`%s`, `%(name)s`) that PyMySQL binds against.

The statement is tokenized with sqlparse, so quoted literals,
identifiers and comments are copied through untouched, apart from
`%` which is doubled everywhere so the driver's formatting step
leaves it alone.
"""

from typing import Iterator

import sqlparse
from sqlparse import tokens as T
from sqlparse.exceptions import SQLParseError


class PlaceholderError(ValueError):
    """Raised when placeholders cannot be bound against the given parameters."""


def _tokens(sql: str) -> Iterator[tuple]:
    """
    Yield ``(ttype, value)`` for every token in `sql`.

    MySQL only treats `--` as a comment when whitespace follows it;
    anything else after the dashes is tokenized again as SQL.
    """
    for statement in sqlparse.parse(sql):
        for token in statement.flatten():
            value = token.value
            if (
                token.ttype in T.Comment.Single
                and value.startswith("--")
                and len(value) > 2
                and not value[2].isspace()
            ):
                yield T.Operator, "--"
                yield from _tokens(value[2:])
            else:
                yield token.ttype, value


def _named(value: str) -> bool:
    return len(value) > 1 and value[0] == ":" and not value[1].isdigit()


def to_pyformat(sql: str, named: bool) -> str:
    """
    Rewrite `sql` for binding with a sequence (`named=False`) or mapping (`named=True`).

    Args:
        sql: Statement text using `?` or `:name` placeholders.
        named: Whether the parameters are a mapping.

    Returns:
        The statement with pyformat placeholders and every `%` doubled.

    Raises:
        PlaceholderError: If named and positional placeholders are mixed,
            if the placeholder style does not match the parameter type,
            or if the statement cannot be tokenized.
    """
    out: list[str] = []
    positional = 0
    names = 0

    try:
        tokens = list(_tokens(sql))
    except SQLParseError as e:
        raise PlaceholderError(str(e)) from e

    for ttype, value in tokens:
        if ttype == T.Name.Placeholder and value == "?":
            positional += 1
            out.append("%s")
        elif ttype == T.Name.Placeholder and _named(value):
            names += 1
            out.append(f"%({value[1:]})s")
        else:
            out.append(value.replace("%", "%%"))

    if positional and names:
        raise PlaceholderError("Invalid parameter number: mixed named and positional parameters")
    if names and not named:
        raise PlaceholderError("Named placeholders require a mapping of parameters")
    if positional and named:
        raise PlaceholderError("Positional placeholders require a sequence of parameters")

    return "".join(out)
