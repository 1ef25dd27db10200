import json
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urlsplit

from notesearch.core.config import settings
from notesearch.core.logging_config import setup_logging

logger = setup_logging()


def normalize_target(value: str | None) -> str:
    """Trim whitespace and trailing slashes. Returns "" for blank input."""
    if not value:
        return ""
    return value.strip().rstrip("/")


def is_local_target(url: str) -> bool:
    """True when *url* points at this machine (non-local targets deserve a warning)."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return False
    return hostname in {"127.0.0.1", "localhost", "::1"}


class TargetStore(ABC):
    """Read/write access to the one persisted backend address."""

    @abstractmethod
    def read(self) -> str | None:
        """Return the stored value, or None when nothing is stored.

        Raises:
            Any storage error; BaseTargetResolver absorbs it.
        """

    @abstractmethod
    def write(self, value: str) -> None:
        pass


class MemoryTargetStore(TargetStore):
    def __init__(self, value: str | None = None):
        self.value = value

    def read(self) -> str | None:
        return self.value

    def write(self, value: str) -> None:
        self.value = value


class FileTargetStore(TargetStore):
    """Keeps the value in a small JSON file under a fixed key."""

    def __init__(self, path: str | Path | None = None, key: str | None = None):
        self.path = Path(path or settings.target_store_path)
        self.key = key or settings.target_storage_key

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        data = json.loads(self.path.read_text(encoding="utf-8"))
        value = data.get(self.key) if isinstance(data, dict) else None
        return value if isinstance(value, str) else None

    def write(self, value: str) -> None:
        data = {}
        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    data = loaded
            except ValueError:
                logger.warning(f"Overwriting unreadable target store {self.path}")
        data[self.key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


class BaseTargetResolver:
    """Decides which backend a call reaches.

    An explicit override wins, then the stored value, then the fixed
    default. Storage failures never escape: a failed read counts as
    "nothing stored" and a failed write is dropped.
    """

    def __init__(self, store: TargetStore | None = None, default: str | None = None):
        self.target_store = store if store is not None else MemoryTargetStore()
        self.default = normalize_target(default or settings.default_target_url)

    def stored(self) -> str | None:
        try:
            value = self.target_store.read()
        except Exception as e:
            logger.warning("Target store read failed", error=str(e), error_type=type(e).__name__)
            return None
        return normalize_target(value) or None

    def resolve(self, override: str | None = None) -> str:
        explicit = normalize_target(override)
        if explicit:
            return explicit
        return self.stored() or self.default

    def store(self, value: str | None) -> None:
        """Persist *value* for later calls. Blank input is ignored."""
        value = (value or "").strip()
        if not value:
            return
        try:
            self.target_store.write(value)
        except Exception as e:
            logger.warning("Target store write failed", error=str(e), error_type=type(e).__name__)
