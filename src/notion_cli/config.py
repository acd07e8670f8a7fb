"""Credential file and setting resolution."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import os
from pathlib import Path

from .errors import LocalIOError

APP_DIR = "notion-cli"
CONFIG_FILE = "config.json"


@dataclass
class Credentials:
    token: str = ""
    workspace_name: str = ""
    workspace_id: str = ""
    bot_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Credentials:
        return cls(**{key: str(data.get(key) or "") for key in ("token", "workspace_name", "workspace_id", "bot_id")})


def config_path() -> Path:
    override = os.environ.get("NOTION_CONFIG")
    if override:
        return Path(override).expanduser()

    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_home:
        return Path(xdg_home).expanduser() / APP_DIR / CONFIG_FILE
    return Path.home() / ".config" / APP_DIR / CONFIG_FILE


def load_credentials(path: Path | None = None) -> Credentials:
    """Read the credential file; a missing file yields empty credentials."""
    path = path or config_path()
    if not path.exists():
        return Credentials()
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise LocalIOError(f"Unable to read config file: {path}") from exc
    except json.JSONDecodeError as exc:
        raise LocalIOError(f"Invalid JSON in config file: {path}") from exc

    if not isinstance(parsed, dict):
        raise LocalIOError(f"Config file must contain a JSON object: {path}")
    return Credentials.from_dict(parsed)


def save_credentials(creds: Credentials, path: Path | None = None) -> Path:
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if os.name != "nt":
            path.parent.chmod(0o700)
        path.write_text(json.dumps(asdict(creds), indent=2) + "\n", encoding="utf-8")
        if os.name != "nt":
            path.chmod(0o600)
    except OSError as exc:
        raise LocalIOError(f"Unable to write config file: {path}") from exc
    return path


def clear_credentials(path: Path | None = None) -> Path:
    return save_credentials(Credentials(), path)


def resolve_setting(flag_value, env_name: str, config_value, default_value):
    """First set value wins: flag, environment, config file, default."""
    if flag_value is not None:
        return flag_value
    env_value = os.environ.get(env_name)
    if env_value not in (None, ""):
        return env_value
    if config_value not in (None, ""):
        return config_value
    return default_value
