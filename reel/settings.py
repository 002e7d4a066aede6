"""Settings persistence and API key resolution."""
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from dotenv import load_dotenv

log = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"
DEFAULT_KEY_ENV = "REEL_TMDB_API_KEY"


class SettingsError(Exception):
    """Raised when settings can't be written."""
    pass


# ---------------------------------------------------------------------------
# Platform-appropriate settings directory
# ---------------------------------------------------------------------------

def settings_dir() -> Path:
    """Return the platform settings directory (not created)."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "Reel"


def settings_path() -> Path:
    return settings_dir() / SETTINGS_FILENAME


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------

@dataclass
class AppSettings:
    """Values remembered between sessions."""
    tmdb_api_key: str | None = None
    last_input_directory: str | None = None
    last_output_directory: str | None = None
    selected_pattern: str | None = None

    @classmethod
    def load(cls, path: Path | None = None) -> "AppSettings":
        """Load settings; defaults when the file is missing or unreadable."""
        path = path or settings_path()
        if not path.exists():
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", path, e)
            return cls()
        if not isinstance(data, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, path: Path | None = None) -> None:
        """
        Write settings as JSON, creating the directory if needed.

        Raises:
            SettingsError: If the directory or file can't be written.
        """
        path = path or settings_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SettingsError(f"Failed to create config directory: {e}") from e
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(asdict(self), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise SettingsError(f"Failed to write settings: {e}") from e


# ---------------------------------------------------------------------------
# API key
# ---------------------------------------------------------------------------

def get_default_api_key() -> str:
    """Built-in fallback key, injected through the environment at build time."""
    return os.environ.get(DEFAULT_KEY_ENV, "")


def has_default_api_key() -> bool:
    return bool(get_default_api_key())


def load_api_key(settings: AppSettings | None = None) -> str:
    """
    Resolve the TMDB API key to use.

    Priority:
    1. TMDB_API_KEY environment variable
    2. .env file in current directory
    3. .env file in user home directory
    4. Key saved in settings
    5. Built-in default key

    Returns:
        API key string, empty if none is available
    """
    api_key = os.environ.get("TMDB_API_KEY")
    if api_key:
        return api_key

    for env_path in (Path.cwd() / ".env", Path.home() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            api_key = os.environ.get("TMDB_API_KEY")
            if api_key:
                return api_key

    if settings is not None and settings.tmdb_api_key:
        return settings.tmdb_api_key

    return get_default_api_key()
