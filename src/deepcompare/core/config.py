"""TOML config loader: defaults + per-user merge."""

import copy
import os
import tomllib
from pathlib import Path

import tomli_w

DEFAULTS_PATH = Path(__file__).parent.parent.parent.parent / "config" / "defaults.toml"
USER_CONFIG_PATH = Path("~/.deepcompare/config.toml")

ENV_CONFIG = "DEEPCOMPARE_CONFIG"
ENV_BACKEND_URL = "DEEPCOMPARE_BACKEND_URL"


def load_defaults() -> dict:
    """Load the packaged defaults.toml."""
    with open(DEFAULTS_PATH, "rb") as f:
        return tomllib.load(f)


def user_config_path() -> Path:
    """Location of the user config file (DEEPCOMPARE_CONFIG wins)."""
    override = os.environ.get(ENV_CONFIG)
    if override:
        return Path(override).expanduser()
    return USER_CONFIG_PATH.expanduser()


def load_user_config() -> dict:
    """Load the user's config.toml, or an empty dict if there is none."""
    path = user_config_path()
    if not path.exists():
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def save_user_config(config: dict) -> None:
    """Write the user's config.toml."""
    path = user_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(config, f)


def load_config() -> dict:
    """Load defaults, merge the user config over them, then apply env overrides."""
    config = load_defaults()
    _deep_merge(config, load_user_config())

    backend_url = os.environ.get(ENV_BACKEND_URL)
    if backend_url:
        config.setdefault("backend", {})["url"] = backend_url
    return config


def set_config_value(dotted_key: str, raw_value: str) -> dict:
    """Set ``section.key`` in the user config, coercing to the default's type.

    Returns the updated user config. Raises KeyError for keys that have no
    default.
    """
    section, _, key = dotted_key.partition(".")
    defaults = load_defaults()
    if not key or key not in defaults.get(section, {}):
        raise KeyError(f"Unknown config key: {dotted_key!r}")

    value = _coerce(raw_value, defaults[section][key])
    user = load_user_config()
    user.setdefault(section, {})[key] = value
    save_user_config(user)
    return user


def resolve_path(config: dict, name: str) -> Path:
    """Get a ``[paths]`` entry as an expanded Path."""
    path_str = config.get("paths", {}).get(name)
    if not path_str:
        raise ValueError(f"Path not configured: paths.{name}")
    return Path(path_str).expanduser()


def _coerce(raw: str, default):
    """Coerce a CLI string to the type of an existing default value."""
    if isinstance(default, bool):
        return raw.lower() in ("true", "1", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place, recursing into dicts."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
