"""Storage capability shared by the dedup engine and the enrichment pipeline."""

from typing import Optional, Protocol, Tuple


class StringCache(Protocol):
    """Minimal string key/value store.

    Consumers depend on this contract only, so an in-memory ``SizedCache``
    can stand in for a ``PersistentCache`` in tests.
    """

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        ...

    def set(self, key: str, value: str) -> None:
        ...
