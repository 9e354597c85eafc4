# local_storage.py
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Union

import settings

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class LocalStorage:
    """
    Durable string key/value store on the local disk.

    Same surface as a browser's localStorage: one file per key under `root`,
    values are opaque strings (callers store JSON). Writes replace the file
    atomically so a crash never leaves a half-written value behind.
    """

    def __init__(self, root: Union[str, Path, None] = None):
        self.root = Path(root or settings.LOCAL_STORAGE_DIR)

    def _path(self, key: str) -> Path:
        if not key:
            raise ValueError("storage key must be non-empty")
        return self.root / f"{_SAFE_KEY.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        self.root.mkdir(parents=True, exist_ok=True)

        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json") if not p.name.startswith(".tmp-"))
