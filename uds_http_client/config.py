import json
import os
from pathlib import Path
from typing import Any

from uds_http_client.constants import SOCKET_PATH_ENV

_CONFIG_ENV_KEYS = ("UDS_HTTP_CONFIG_PATH", "UDS_HTTP_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"
_CLIENT_SECTION = "client"


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd())


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        data = json.loads(cfg_path.read_text())
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def write_config_json(path: str | Path | None, config: dict[str, Any]) -> Path:
    cfg_path = resolve_config_path(path)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(json.dumps(config, indent=2) + "\n")
    return cfg_path


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    Code that imported CONFIG at module import time sees the update.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def get_socket_path() -> str | None:
    section = CONFIG.get(_CLIENT_SECTION, {})
    socket_path = section.get("socket_path") if isinstance(section, dict) else None
    if socket_path:
        return str(socket_path).strip()
    env_value = os.environ.get(SOCKET_PATH_ENV, "").strip()
    return env_value or None


def set_socket_path(socket_path: str) -> None:
    if not isinstance(CONFIG.get(_CLIENT_SECTION), dict):
        CONFIG[_CLIENT_SECTION] = {}
    CONFIG[_CLIENT_SECTION]["socket_path"] = socket_path
