"""Request headers as an immutable, case-insensitive mapping.

Built once from the ASGI scope's raw ``(name, value)`` byte pairs.
Names are folded to lowercase; repeated headers keep every value in
arrival order.
"""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Case-insensitive view of the request headers.

    Indexing returns the first value sent for a name; ``get_list()``
    returns all of them (``Cookie``, ``X-Forwarded-For``, ...).
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        self._raw = tuple(raw)
        self._index: dict[str, list[str]] = {}
        for name, value in self._raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append(value.decode("latin-1"))

    def __getitem__(self, key: str) -> str:
        values = self._index.get(key.lower())
        if not values:
            raise KeyError(key)
        return values[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({self._raw!r})"

    def get_list(self, key: str) -> list[str]:
        """Every value sent for *key*, in order. Empty if absent."""
        return list(self._index.get(key.lower(), ()))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The byte pairs exactly as the server delivered them."""
        return self._raw
