"""JSON document storage for run state under a data directory."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Set

logger = logging.getLogger(__name__)


class StateSaveError(Exception):
    """Raised when a state document cannot be written."""


class JsonStore:
    """
    Loads and saves whole JSON documents relative to a base directory.

    Saves go through a temporary file and an atomic rename, so a crash
    never leaves a half-written document behind.
    """

    EVENTS_FILE = 'events.json'
    INDEX_FILE = 'event_index.json'
    SENT_FILE = 'sent_keys.json'
    STATS_FILE = 'daily_tax_stats.json'
    STATS_SENT_FILE = 'stats_sent_days.json'
    DAILY_FINANCES_DIR = 'daily_finances'

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)

    def path(self, name: str) -> Path:
        return self.base_dir / name

    def load(self, name: str, default: Any = None) -> Any:
        """
        Load a document, falling back to ``default`` when it is missing
        or unreadable.
        """
        if default is None:
            default = []
        path = self.path(name)
        if not path.exists():
            return default

        try:
            with path.open('r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {path}, starting from default: {e}")
            return default

    def save(self, name: str, data: Any) -> None:
        """Write a document atomically; failures raise StateSaveError."""
        path = self.path(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(path.parent), prefix=path.name, suffix='.tmp'
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save {path}: {e}")
            raise StateSaveError(f"Failed to save {path}: {e}") from e

    def save_once(self, name: str, data: Any) -> bool:
        """Write a document only if it does not exist yet."""
        if self.path(name).exists():
            return False
        self.save(name, data)
        return True

    def load_set(self, name: str) -> Set[str]:
        data = self.load(name, [])
        if isinstance(data, list):
            return set(data)
        if isinstance(data, dict):
            return set(data.keys())
        return set()

    def save_set(self, name: str, values: Iterable[str]) -> None:
        self.save(name, sorted(values))
