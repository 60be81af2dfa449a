import contextlib
import json
import os
from pathlib import Path
from typing import Any


class Config:
    """Configuration Manager for ykdash."""

    # Device selection
    yubikey_serial_number = None
    ykdash_ykman_path = "ykman"
    ykdash_command_timeout = "10"

    # Timing
    ykdash_default_period = "30"
    ykdash_copy_message_seconds = "3"
    ykdash_touch_message_seconds = "30"

    # Config file override (set via --config CLI arg)
    _config_file_override: Path | None = None
    _ENV_SECTION_KEY = "env"

    @classmethod
    def _tracked_names(cls) -> list[str]:
        return [
            k
            for k, v in vars(cls).items()
            if not k.startswith("_") and k[0].islower() and (v is None or isinstance(v, str))
        ]

    @classmethod
    def tracked_vars(cls) -> list[str]:
        return [name.upper() for name in cls._tracked_names()]

    @classmethod
    def get(cls, name: str) -> str | None:
        env_name = name.upper()
        default = getattr(cls, name, None)
        return os.getenv(env_name, default)

    @classmethod
    def get_int(cls, name: str, default: int, *, minimum: int | None = None) -> int:
        value = cls.get(name)
        try:
            parsed = int(value) if value is not None else default
        except (TypeError, ValueError):
            parsed = default
        if minimum is not None:
            parsed = max(minimum, parsed)
        return parsed

    @classmethod
    def get_float(cls, name: str, default: float, *, minimum: float | None = None) -> float:
        value = cls.get(name)
        try:
            parsed = float(value) if value is not None else default
        except (TypeError, ValueError):
            parsed = default
        if minimum is not None:
            parsed = max(minimum, parsed)
        return parsed

    @classmethod
    def device_serial(cls) -> str | None:
        serial = (cls.get("yubikey_serial_number") or "").strip()
        return serial or None

    @classmethod
    def default_period(cls) -> int:
        return cls.get_int("ykdash_default_period", 30, minimum=1)

    @classmethod
    def copy_message_seconds(cls) -> float:
        return cls.get_float("ykdash_copy_message_seconds", 3.0, minimum=0.1)

    @classmethod
    def touch_message_seconds(cls) -> float:
        return cls.get_float("ykdash_touch_message_seconds", 30.0, minimum=0.1)

    @classmethod
    def command_timeout(cls) -> float:
        return cls.get_float("ykdash_command_timeout", 10.0, minimum=1.0)

    @classmethod
    def config_dir(cls) -> Path:
        return Path.home() / ".ykdash"

    @classmethod
    def config_file(cls) -> Path:
        if cls._config_file_override is not None:
            return cls._config_file_override
        return cls.config_dir() / "cli-config.json"

    @classmethod
    def log_file(cls) -> Path:
        return cls.config_dir() / "ykdash.log"

    @classmethod
    def load(cls) -> dict[str, Any]:
        path = cls.config_file()
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)
                return data
        except (json.JSONDecodeError, OSError):
            return {}

    @classmethod
    def save(cls, config: dict[str, Any]) -> bool:
        try:
            cls.config_dir().mkdir(parents=True, exist_ok=True)
            config_path = cls.config_dir() / "cli-config.json"
            with config_path.open("w", encoding="utf-8") as f:
                json.dump(config, f, indent=2)
        except OSError:
            return False
        with contextlib.suppress(OSError):
            config_path.chmod(0o600)  # may fail on Windows
        return True

    @classmethod
    def apply_saved(cls, force: bool = False) -> dict[str, str]:
        saved = cls.load()
        if not isinstance(saved, dict):
            saved = {}
        env_vars = saved.get(cls._ENV_SECTION_KEY, {})
        if not isinstance(env_vars, dict):
            env_vars = {}
        cleared_vars = {
            var_name
            for var_name in cls.tracked_vars()
            if var_name in os.environ and os.environ.get(var_name) == ""
        }
        if cleared_vars:
            for var_name in cleared_vars:
                env_vars.pop(var_name, None)
            if cls._config_file_override is None:
                saved[cls._ENV_SECTION_KEY] = env_vars
                cls.save(saved)
        applied = {}

        for var_name, var_value in env_vars.items():
            if var_name in cls.tracked_vars() and (force or var_name not in os.environ):
                os.environ[var_name] = str(var_value)
                applied[var_name] = str(var_value)

        return applied

    @classmethod
    def save_current(cls) -> bool:
        saved = cls.load()
        if not isinstance(saved, dict):
            saved = {}
        existing = saved.get(cls._ENV_SECTION_KEY, {})
        if not isinstance(existing, dict):
            existing = {}
        merged = dict(existing)

        for var_name in cls.tracked_vars():
            value = os.getenv(var_name)
            if value is None:
                pass
            elif value == "":
                merged.pop(var_name, None)
            else:
                merged[var_name] = value

        saved[cls._ENV_SECTION_KEY] = merged
        return cls.save(saved)


def apply_saved_config(force: bool = False) -> dict[str, str]:
    return Config.apply_saved(force=force)


def save_current_config() -> bool:
    return Config.save_current()
