"""On-disk cache of resolved airports.

One JSON file per airport under the cache directory:

    ~/.local/.airportmap/
    ├── kjfk.json      # {"data": {...record...}, "timestamp": 1700000000.0}
    └── egll.json

The store only keeps timestamps; expiry is decided by the resolver.
"""

import json
import sys
import time
from pathlib import Path
from typing import Any, Callable, Dict, NamedTuple, Optional, Union

from .models import AirportRecord

DEFAULT_CACHE_DIR = Path.home() / '.local' / '.airportmap'


class CacheEntry(NamedTuple):
    """A stored record payload and its write time (epoch seconds)."""

    data: Dict[str, Any]
    timestamp: float


class AirportCache:
    """Key → record store keyed by airport code, case-insensitive."""

    def __init__(self, cache_dir: Union[str, Path, None] = None,
                 clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else DEFAULT_CACHE_DIR
        self.clock = clock

    def _path(self, code: str) -> Path:
        return self.cache_dir / f"{code.lower()}.json"

    def get(self, code: str) -> Optional[CacheEntry]:
        """Return the stored entry for ``code`` or None.

        Unreadable files count as absent.
        """
        path = self._path(code)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
            return CacheEntry(data=raw['data'], timestamp=float(raw['timestamp']))
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"Warning: Ignoring unreadable cache file {path}: {e}", file=sys.stderr)
            return None

    def set(self, code: str, record: AirportRecord) -> None:
        """Store ``record`` stamped with the current time.

        The entry is written to a temporary file and moved into place, so a
        reader never sees a half-written file. A failed write only warns;
        the record is still usable.
        """
        entry = {'data': record.to_dict(), 'timestamp': self.clock()}
        path = self._path(code)
        temp_path = path.with_suffix('.tmp')
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(entry, f, indent=2, ensure_ascii=False)
            temp_path.replace(path)
        except OSError as e:
            print(f"Warning: Could not write to cache: {e}", file=sys.stderr)

    def remove(self, code: str) -> bool:
        """Delete the entry for ``code``; returns whether a file was removed."""
        path = self._path(code)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            print(f"Warning: Could not remove cache file {path}: {e}", file=sys.stderr)
            return False
        return True

    def clear(self) -> int:
        """Delete every cached airport and return how many were removed.

        Files that cannot be deleted are reported and left in place.
        """
        removed = 0
        if not self.cache_dir.is_dir():
            return removed
        for path in self.cache_dir.glob('*.json'):
            try:
                path.unlink()
            except OSError as e:
                print(f"Warning: Could not remove cache file {path}: {e}", file=sys.stderr)
                continue
            removed += 1
        return removed

    def size(self) -> int:
        if not self.cache_dir.is_dir():
            return 0
        return sum(1 for _ in self.cache_dir.glob('*.json'))
