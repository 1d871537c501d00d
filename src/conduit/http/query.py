"""Decoded query-string parameters.

A read-only ``Mapping[str, str | list[str]]``: a name that appears once
maps to its decoded value, a repeated name maps to the list of values in
the order they appeared (``?tag=a&tag=b`` gives ``["a", "b"]``).
Blank values are kept (``?flag=`` gives ``""``).
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str | list[str]]):
    """Read-only view of a request's query parameters.

    ``params[name]`` has the shape described above; ``get_first()`` and
    ``get_list()`` always return one shape regardless of repetition.
    """

    __slots__ = ("_query_string", "_values")

    def __init__(self, query_string: str | bytes = "") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        self._query_string = query_string
        self._values: dict[str, list[str]] = parse_qs(query_string, keep_blank_values=True)

    def __getitem__(self, name: str) -> str | list[str]:
        values = self._values[name]
        return values[0] if len(values) == 1 else list(values)

    def __iter__(self) -> Iterator[str]:
        yield from self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"QueryParams({self._query_string!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, QueryParams):
            return self._values == other._values
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other.items())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @property
    def raw(self) -> str:
        """The undecoded query string."""
        return self._query_string

    def get_first(self, name: str, default: str | None = None) -> str | None:
        values = self._values.get(name)
        return values[0] if values else default

    def get_list(self, name: str) -> list[str]:
        """Every value given for *name*; empty when absent."""
        return list(self._values.get(name, ()))
