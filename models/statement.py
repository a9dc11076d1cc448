"""
models/statement.py
-------------------
The statement request: SQL text paired with its bind parameters.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

Parameters = Union[tuple, dict]


def _bare(key: Any) -> Any:
    """Drop one leading `:` from a named-parameter key."""
    if isinstance(key, str) and key.startswith(":"):
        return key[1:]
    return key


@dataclass(frozen=True)
class StatementRequest:
    """
    An immutable (SQL text, bind parameters) pair.

    Attributes:
        sql: The statement text, using `?` or `:name` placeholders.
        parameters: A tuple for positional binding or a dict for named binding.
    """
    sql: str
    parameters: Parameters = ()

    @classmethod
    def of(cls, sql: str, parameters: Any = None) -> "StatementRequest":
        """
        Build a request from caller input.

        Mappings become dicts keyed without a leading colon, so both
        ``{"name": v}`` and ``{":name": v}`` bind `:name`. Any other
        iterable becomes a tuple and None becomes an empty tuple.
        Count and types are not checked.
        """
        if parameters is None:
            return cls(sql, ())
        if isinstance(parameters, Mapping):
            return cls(sql, {_bare(key): value for key, value in parameters.items()})
        return cls(sql, tuple(parameters))

    def is_named(self) -> bool:
        """Returns True if parameters bind by name."""
        return isinstance(self.parameters, dict)

    def __str__(self) -> str:
        return self.sql if len(self.sql) <= 80 else self.sql[:77] + "..."
