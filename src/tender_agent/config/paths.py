"""XDG base-directory paths for Tender.

Follows the XDG Base Directory Specification: each kind of file lives under
its ``$XDG_*_HOME`` directory (or the documented fallback) in a ``tender``
subdirectory.
"""

import os
from dataclasses import dataclass
from pathlib import Path

APP_NAME = "tender"
CONFIG_FILE_NAME = "config.toml"
CONFIG_FILE_ENV_VAR = "TENDER_CONFIG_FILE"


@dataclass(frozen=True)
class TenderPaths:
    """Resolved per-user directories.

    Attributes:
        config: User configuration ($XDG_CONFIG_HOME/tender)
        data: User data such as the database ($XDG_DATA_HOME/tender)
        state: Logs and history ($XDG_STATE_HOME/tender)
        cache: Non-essential cached data ($XDG_CACHE_HOME/tender)
    """

    config: Path
    data: Path
    state: Path
    cache: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "config": str(self.config),
            "data": str(self.data),
            "state": str(self.state),
            "cache": str(self.cache),
        }


def _home() -> Path:
    # $HOME first so tests can redirect it
    home = os.environ.get("HOME")
    return Path(home) if home else Path.home()


def _xdg_dir(env_var: str, *fallback: str) -> Path:
    value = os.environ.get(env_var)
    if value:
        return Path(value)
    return _home().joinpath(*fallback)


def get_tender_paths() -> TenderPaths:
    """Return all Tender directories for the current environment."""
    return TenderPaths(
        config=_xdg_dir("XDG_CONFIG_HOME", ".config") / APP_NAME,
        data=_xdg_dir("XDG_DATA_HOME", ".local", "share") / APP_NAME,
        state=_xdg_dir("XDG_STATE_HOME", ".local", "state") / APP_NAME,
        cache=_xdg_dir("XDG_CACHE_HOME", ".cache") / APP_NAME,
    )


def get_config_file_path() -> Path:
    """Config file location: ``$TENDER_CONFIG_FILE`` or the XDG default."""
    override = os.environ.get(CONFIG_FILE_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return get_tender_paths().config / CONFIG_FILE_NAME


def get_database_path() -> Path:
    return get_tender_paths().data / "tender.db"


def get_debug_log_path() -> Path:
    return get_tender_paths().state / "debug.log"
