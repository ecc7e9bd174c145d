import hashlib
import json
import time
from pathlib import Path
from typing import Optional

from utils.logger import logger


class MessageCache:
    """
    Stores generated commit messages on disk, one JSON file per prompt.

    Identical prompts sent to the same model produce the same entry, so
    re-running over an unchanged diff does not call the backend again.
    """

    def __init__(self, directory: str, ttl_sec: int):
        self.directory = Path(directory).expanduser()
        self.ttl_sec = ttl_sec
        self.enabled = ttl_sec > 0
        if self.enabled:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Message cache disabled, cannot create {self.directory}: {e}")
                self.enabled = False

    def _entry_path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def lookup(self, key: str) -> Optional[str]:
        """Returns the stored message for the key, or None when absent or expired."""
        if not self.enabled:
            return None
        entry = self._entry_path(key)
        if not entry.is_file():
            return None

        try:
            data = json.loads(entry.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache entry {entry.name}: {e}")
            return None

        if time.time() - data.get("created", 0) > self.ttl_sec:
            logger.debug(f"Cache entry {entry.name} expired")
            entry.unlink(missing_ok=True)
            return None
        return data.get("message")

    def store(self, key: str, message: str) -> None:
        if not self.enabled:
            return
        entry = self._entry_path(key)
        try:
            entry.write_text(json.dumps({"created": time.time(), "message": message}), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write cache entry {entry.name}: {e}")
