"""Dotenv-backed configuration store with explicit get/set/persist."""

import shutil
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import dotenv_values, set_key, unset_key

from .exceptions import ConfigurationError
from .logging_config import get_logger

logger = get_logger("config")

# The API server skips rate limiting only when this is exactly "true"
# and NODE_ENV is "development".
RATE_LIMIT_KEY = "DISABLE_RATE_LIMIT"
RATE_LIMIT_BYPASS_ENV = "development"

# Keys shown by the rate-limit status report, with the text used when unset
RATE_LIMIT_STATUS_DEFAULTS = {
    "NODE_ENV": "not set",
    RATE_LIMIT_KEY: "not set",
    "RATE_LIMIT_MAX_REQUESTS": "500 (default)",
    "AUTH_RATE_LIMIT_MAX_REQUESTS": "50 (default)",
}


def rate_limit_disabled(value: Optional[str]) -> bool:
    return (value or "").strip() == "true"


class ConfigStore:
    """
    Key/value configuration held in a dotenv file.

    Reads come from an in-memory copy loaded at construction. When ``path``
    does not exist yet, the store starts from ``example_path``. Changes stay
    in memory until ``persist`` writes them back.
    """

    def __init__(
        self,
        path: Union[str, Path],
        example_path: Optional[Union[str, Path]] = None,
    ):
        self.path = Path(path)
        self.example_path = Path(example_path) if example_path else None
        self._values: Dict[str, str] = {}
        self._changed: Dict[str, Optional[str]] = {}
        self.reload()

    def _source(self) -> Optional[Path]:
        if self.path.exists():
            return self.path
        if self.example_path and self.example_path.exists():
            return self.example_path
        return None

    def reload(self) -> None:
        """Discard unsaved changes and re-read the file."""
        source = self._source()
        self._values = {}
        if source is not None:
            self._values = {
                key: value for key, value in dotenv_values(source).items() if value is not None
            }
            logger.debug(f"Loaded {len(self._values)} settings from {source}")
        self._changed = {}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def set(self, key: str, value: object) -> None:
        if not key or "=" in key or any(ch.isspace() for ch in key):
            raise ConfigurationError(f"Invalid configuration key: {key!r}")
        text = str(value).lower() if isinstance(value, bool) else str(value)
        self._values[key] = text
        self._changed[key] = text

    def unset(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            self._changed[key] = None

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    @property
    def dirty(self) -> bool:
        return bool(self._changed)

    def persist(self) -> None:
        """Write pending changes to ``path``, seeding it from the example file."""
        if not self._changed:
            return

        try:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                if self.example_path and self.example_path.exists():
                    shutil.copyfile(self.example_path, self.path)
                else:
                    self.path.touch()

            for key, value in self._changed.items():
                if value is None:
                    unset_key(self.path, key, quote_mode="never")
                else:
                    set_key(self.path, key, value, quote_mode="never")
        except OSError as e:
            raise ConfigurationError(f"Could not write configuration to {self.path}: {e}") from e

        logger.info(f"Saved {len(self._changed)} setting(s) to {self.path}")
        self._changed = {}

    # Rate limiting toggle used during development and load testing

    def rate_limit_enabled(self) -> bool:
        return not rate_limit_disabled(self.get(RATE_LIMIT_KEY))

    def rate_limit_bypass_active(self) -> bool:
        """True when the server will actually skip rate limiting."""
        return (
            not self.rate_limit_enabled()
            and self.get("NODE_ENV", "").strip() == RATE_LIMIT_BYPASS_ENV
        )

    def set_rate_limit(self, enabled: bool) -> None:
        self.set(RATE_LIMIT_KEY, "false" if enabled else "true")
        self.persist()

    def rate_limit_status(self) -> Dict[str, str]:
        return {
            key: self.get(key) or fallback
            for key, fallback in RATE_LIMIT_STATUS_DEFAULTS.items()
        }
