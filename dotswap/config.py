import json
import os
from pathlib import Path

DOTSWAPRC = ".dotswaprc"

DEFAULT_CONFIG = {
    "state_file": "",  # empty means <home>/state.json
    "variant_backend": "local",
    "variant_dir": "",  # empty means <home>/variants
}


def dotswap_home():
    """Root of dotswap's own files. $DOTSWAP_HOME wins over ~/.dotswap."""
    env = os.environ.get("DOTSWAP_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".dotswap"


def global_config_file():
    return dotswap_home() / "config.json"


def load_global_config():
    """Load <home>/config.json, the global defaults set by dotswap config."""
    config_file = global_config_file()
    if config_file.exists():
        try:
            return json.loads(config_file.read_text())
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def save_global_config(updates):
    """Merge updates into <home>/config.json."""
    unknown = set(updates) - set(DEFAULT_CONFIG)
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}. Known: {sorted(DEFAULT_CONFIG)}")
    existing = load_global_config()
    existing.update(updates)
    config_file = global_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(existing, indent=2) + "\n")
    return config_file


def find_config():
    """Walk up from cwd to find .dotswaprc, like git finds .git."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        config_path = parent / DOTSWAPRC
        if config_path.is_file():
            return config_path
    return None


def load_config():
    # Merge order: defaults → global config → project .dotswaprc
    config = {**DEFAULT_CONFIG, **load_global_config()}

    config_path = find_config()
    if config_path:
        try:
            raw = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {config_path}: {e}")
        if not isinstance(raw, dict):
            raise ValueError(f"{config_path} must contain a JSON object")
        config.update(raw)

    return config


def state_file(config):
    if config.get("state_file"):
        return Path(config["state_file"]).expanduser()
    return dotswap_home() / "state.json"


def variant_dir(config):
    if config.get("variant_dir"):
        return Path(config["variant_dir"]).expanduser()
    return dotswap_home() / "variants"
