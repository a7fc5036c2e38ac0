"""Configuration handling for pyghsync.

Values are resolved from environment variables first, then from a ``.env``
file in the working directory, then from ``~/.config/pyghsync/config``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_SUMMARY_MODEL = "gemini-1.5-flash"
DEFAULT_INTERVAL = 10.0
DEFAULT_TIMEOUT = 30.0


class Config:
    """Configuration manager backed by env vars and a key=value file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/pyghsync
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "pyghsync"
        self.config_dir = config_dir
        self.config_file = config_dir / "config"
        load_dotenv()
        self._file_values = self._load_file()

    def _load_file(self) -> dict[str, str]:
        """Read the config file into a dictionary."""
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values

        try:
            for line in self.config_file.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                values[key.strip()] = value.strip()
        except OSError as e:
            logger.warning(f"Failed to read config file {self.config_file}: {e}")
        return values

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._file_values.get(key, default)

    def _get_float(self, key: str, default: float) -> float:
        raw = self._get(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {key}: {raw!r}")
            return default

    @property
    def token(self) -> Optional[str]:
        """GitHub personal access token."""
        return self._get("GITHUB_TOKEN")

    @property
    def username(self) -> Optional[str]:
        """GitHub account owning the mirrored repositories."""
        return self._get("GITHUB_USERNAME")

    @property
    def google_api_key(self) -> Optional[str]:
        """API key for the summarization model."""
        return self._get("GOOGLE_API_KEY")

    @property
    def api_url(self) -> str:
        return self._get("GHSYNC_API_URL") or DEFAULT_API_URL

    @property
    def branch(self) -> str:
        return self._get("GHSYNC_BRANCH") or DEFAULT_BRANCH

    @property
    def summary_model(self) -> str:
        return self._get("GHSYNC_SUMMARY_MODEL") or DEFAULT_SUMMARY_MODEL

    @property
    def interval(self) -> float:
        """Seconds between sync cycles."""
        return self._get_float("GHSYNC_INTERVAL", DEFAULT_INTERVAL)

    @property
    def timeout(self) -> float:
        """Timeout in seconds applied to every network call."""
        return self._get_float("GHSYNC_TIMEOUT", DEFAULT_TIMEOUT)

    def is_configured(self) -> bool:
        """Check whether credentials for the remote are available."""
        return bool(self.token and self.username)

    def get_config_path(self) -> Path:
        return self.config_file

    def save_credentials(self, token: str, username: str) -> None:
        """Persist credentials to the config file.

        Args:
            token: GitHub personal access token
            username: GitHub username
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._file_values["GITHUB_TOKEN"] = token
        self._file_values["GITHUB_USERNAME"] = username
        lines = [f"{key}={value}" for key, value in sorted(self._file_values.items())]
        self.config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        # Token file should only be readable by the owner
        self.config_file.chmod(0o600)
        logger.debug(f"Saved credentials to {self.config_file}")


config = Config()
