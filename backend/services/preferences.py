"""Device-local preference persistence for the reading session."""
import json
import logging
import os
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Persistence keys
CURRENT_PAGE_KEY = "currentPage"
BOOKMARKS_KEY = "bookmarks"
DARK_MODE_KEY = "darkMode"
BIONIC_MODE_KEY = "bionicMode"


class PreferenceStore:
    """Key/value port. Values are JSON-serialisable; ``load`` returns None when absent."""

    def load(self, key: str) -> Any:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError


class InMemoryPreferenceStore(PreferenceStore):
    """Preference store backed by a dict. Values round-trip through JSON like the file store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {
            key: json.dumps(value) for key, value in (initial or {}).items()
        }

    def load(self, key: str) -> Any:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


class JsonFilePreferenceStore(PreferenceStore):
    """
    Preference store persisted as a single JSON object on disk.

    Every ``save`` rewrites the whole file, so each key is a full overwrite
    with no merge semantics. The file is replaced atomically.
    """

    def __init__(self, path: str):
        self.path = path
        self._data = self._read()
        logger.info(f"JsonFilePreferenceStore using {self.path}")

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring preferences file {self.path}: not a JSON object")
            return {}
        return data

    def load(self, key: str) -> Any:
        return self._data.get(key)

    def save(self, key: str, value: Any) -> None:
        self._data[key] = value
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            # The in-memory value stays current; the next successful save persists it
            logger.error(f"Failed to persist preference {key} to {self.path}: {e}", exc_info=True)


class SessionPreferences:
    """
    Reading position, bookmarks and display toggles for one reader.

    Values are read once from the store at construction and written back on
    every change. Range checks against the document are the navigator's job;
    this class only guarantees the persisted types.
    """

    def __init__(self, store: PreferenceStore):
        self.store = store
        self.current_page: Optional[int] = self._load_int(CURRENT_PAGE_KEY)
        self.bookmarks: List[int] = self._load_bookmarks()
        self.dark_mode: bool = self._load_bool(DARK_MODE_KEY, default=False)
        self.bionic_mode: bool = self._load_bool(BIONIC_MODE_KEY, default=True)

    def _load_int(self, key: str) -> Optional[int]:
        value = self.store.load(key)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            logger.warning(f"Ignoring persisted {key}={value!r}: expected an integer")
            return None
        return value

    def _load_bool(self, key: str, default: bool) -> bool:
        value = self.store.load(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            logger.warning(f"Ignoring persisted {key}={value!r}: expected a boolean")
            return default
        return value

    def _load_bookmarks(self) -> List[int]:
        value = self.store.load(BOOKMARKS_KEY)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"Ignoring persisted bookmarks={value!r}: expected a list")
            return []
        return sorted({n for n in value if isinstance(n, int) and not isinstance(n, bool)})

    def set_current_page(self, page: int) -> None:
        self.current_page = page
        self.store.save(CURRENT_PAGE_KEY, page)

    def set_bookmarks(self, bookmarks: List[int]) -> None:
        self.bookmarks = sorted(bookmarks)
        self.store.save(BOOKMARKS_KEY, self.bookmarks)

    def toggle_dark_mode(self) -> bool:
        self.dark_mode = not self.dark_mode
        self.store.save(DARK_MODE_KEY, self.dark_mode)
        return self.dark_mode

    def toggle_bionic_mode(self) -> bool:
        self.bionic_mode = not self.bionic_mode
        self.store.save(BIONIC_MODE_KEY, self.bionic_mode)
        return self.bionic_mode
