from __future__ import annotations

from pathlib import Path


class SnapshotStore:
    """In-memory map of file path to the last observed full text.

    Entries are never evicted or persisted; a new process starts empty.
    """

    def __init__(self) -> None:
        self._content: dict[str, str] = {}

    @staticmethod
    def _key(path: str | Path) -> str:
        return str(Path(path))

    def get(self, path: str | Path) -> str | None:
        return self._content.get(self._key(path))

    def set(self, path: str | Path, text: str) -> None:
        self._content[self._key(path)] = text

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self._key(path) in self._content

    def __len__(self) -> int:
        return len(self._content)
