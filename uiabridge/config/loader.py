"""Configuration loading utilities."""

import json
from pathlib import Path
from typing import Any

from uiabridge.config.schema import Config

# Legacy "UIAutomation" options sections -> defaults sections (camelCase)
_LEGACY_SECTIONS: dict[str, str] = {
    "ElementSearch": "elementSearch",
    "WindowOperation": "windowOperation",
    "TextOperation": "textOperation",
    "Transform": "transform",
    "RangeValue": "rangeValue",
    "Layout": "layout",
}

_LEGACY_RENAMES: dict[str, str] = {
    "RotationDegrees": "degrees",
    "Scope": "defaultScope",
    "Action": "defaultAction",
    "Direction": "scrollDirection",
    "Amount": "scrollAmount",
    "X": "x",
    "Y": "y",
}


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".uiabridge" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            data = _migrate_config(data)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to regenerate defaults."
            ) from e

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    from uiabridge.config.access import clear_config_cache

    clear_config_cache(config_path=path)


def _migrate_config(data: dict) -> dict:
    """Migrate old config formats to current."""
    # UIAutomation.{ElementSearch,...}.DefaultX -> defaults.{elementSearch,...}.x
    legacy = data.pop("UIAutomation", None)
    if isinstance(legacy, dict):
        defaults = data.setdefault("defaults", {})
        for section, target in _LEGACY_SECTIONS.items():
            src = legacy.get(section)
            if not isinstance(src, dict):
                continue
            dst = defaults.setdefault(target, {})
            for key, value in src.items():
                name = key[len("Default"):] if key.startswith("Default") and len(key) > len("Default") else key
                name = _LEGACY_RENAMES.get(name, name[:1].lower() + name[1:])
                dst.setdefault(name, value)
    # Flat timeoutSeconds -> supervisor.defaultTimeoutSeconds
    if "timeoutSeconds" in data:
        timeout = data.pop("timeoutSeconds")
        supervisor = data.setdefault("supervisor", {})
        if isinstance(timeout, (int, float)) and "defaultTimeoutSeconds" not in supervisor:
            supervisor["defaultTimeoutSeconds"] = float(timeout)
    # worker.pythonPath was renamed to worker.pythonExecutable
    worker = data.get("worker")
    if isinstance(worker, dict) and "pythonPath" in worker:
        worker.setdefault("pythonExecutable", worker.pop("pythonPath"))
    return data


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic.
    Keys under config.env.vars are preserved (they are env var names, e.g. API_KEY)."""
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            new_k = camel_to_snake(k)
            if new_k == "env" and isinstance(v, dict):
                env_converted: dict[str, Any] = {}
                for ek, ev in v.items():
                    snake_ek = camel_to_snake(ek)
                    if snake_ek == "vars" and isinstance(ev, dict):
                        env_converted["vars"] = dict(ev)
                    else:
                        env_converted[snake_ek] = convert_keys(ev)
                result["env"] = env_converted
            else:
                result[new_k] = convert_keys(v)
        return result
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase.
    Keys under config.env.vars are preserved (env var names, e.g. API_KEY)."""
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            new_k = snake_to_camel(k)
            if new_k == "env" and isinstance(v, dict):
                env_converted: dict[str, Any] = {}
                for ek, ev in v.items():
                    camel_ek = snake_to_camel(ek)
                    if camel_ek == "vars" and isinstance(ev, dict):
                        env_converted["vars"] = dict(ev)
                    else:
                        env_converted[camel_ek] = convert_to_camel(ev)
                result["env"] = env_converted
            else:
                result[new_k] = convert_to_camel(v)
        return result
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
