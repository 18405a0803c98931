from __future__ import annotations

from typing import Any, Callable


class TableCache:
    """Memoizes parsed tables for one content bundle.

    Owned by whoever builds the loader; call ``invalidate`` when the bundle is reloaded.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        if key not in self._entries:
            self._entries[key] = loader()
        return self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
            return
        self._entries.pop(key, None)
