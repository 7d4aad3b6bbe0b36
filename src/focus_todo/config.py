"""Configuration management for focus-todo.

Settings come from a YAML file (``FOCUS_TODO_CONFIG`` or
``~/.focus_todo/config.yaml``) and can be overridden per key with
``FOCUS_TODO_*`` environment variables.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "~/.focus_todo"
ENV_PREFIX = "FOCUS_TODO_"


@dataclass
class AuthSettings:
    """JWT validation settings shared by the resource server and the BFF."""
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    audience: Optional[str] = None
    issuer: Optional[str] = None
    access_token_minutes: int = 60


@dataclass
class RecurrenceSettings:
    """Bounds applied to recurrence expansion."""
    horizon_years: int = 1  # unbounded rules stop here
    max_occurrences: int = 1000


@dataclass
class LLMSettings:
    """OpenAI-compatible chat completion endpoint."""
    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: float = 60.0
    temperature: float = 0.2


@dataclass
class BffSettings:
    """Backend-for-frontend proxy settings."""
    resource_server_url: str = "http://127.0.0.1:8080"
    timeout: float = 30.0


@dataclass
class ConfigModel:
    """Global configuration model for focus-todo."""

    data_dir: str = DEFAULT_CONFIG_DIR
    database_path: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ])

    # Pomodoro defaults used when a user has no stored settings
    default_focus_duration: int = 25
    default_daily_goal: int = 360

    auth: AuthSettings = field(default_factory=AuthSettings)
    recurrence: RecurrenceSettings = field(default_factory=RecurrenceSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)
    bff: BffSettings = field(default_factory=BffSettings)

    def __post_init__(self):
        self.data_dir = os.path.expanduser(self.data_dir)
        if self.database_path is None:
            self.database_path = str(Path(self.data_dir) / "focus_todo.db")
        else:
            self.database_path = os.path.expanduser(self.database_path)

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        return yaml.safe_dump(asdict(self), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigModel":
        """Build a config from a plain mapping, ignoring unknown keys."""
        data = dict(data or {})
        sections = {
            "auth": AuthSettings,
            "recurrence": RecurrenceSettings,
            "llm": LLMSettings,
            "bff": BffSettings,
        }
        for name, section_cls in sections.items():
            raw = data.get(name) or {}
            known = {k: v for k, v in raw.items() if k in section_cls.__dataclass_fields__}
            data[name] = section_cls(**known)

        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML."""
        return cls.from_dict(yaml.safe_load(yaml_str) or {})


def _coerce(raw: str, current: Any) -> Any:
    """Convert an environment string to the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def apply_env_overrides(config: ConfigModel, environ: Optional[Dict[str, str]] = None) -> ConfigModel:
    """Apply ``FOCUS_TODO_<KEY>`` and ``FOCUS_TODO_<SECTION>__<KEY>`` overrides."""
    environ = os.environ if environ is None else environ

    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX) or name == f"{ENV_PREFIX}CONFIG":
            continue
        path = name[len(ENV_PREFIX):].lower().split("__")
        target: Any = config
        for part in path[:-1]:
            target = getattr(target, part, None)
            if target is None:
                break
        key = path[-1]
        if target is None or not hasattr(target, key):
            logger.warning(f"Ignoring unknown configuration override {name}")
            continue
        setattr(target, key, _coerce(raw, getattr(target, key)))

    return config


class Config:
    """Configuration manager for focus-todo."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if explicit:
            return Path(explicit).expanduser()
        return Path(DEFAULT_CONFIG_DIR).expanduser() / "config.yaml"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file, falling back to defaults."""
        config_path = config_path or cls.default_path()

        if config_path.exists():
            try:
                config = ConfigModel.from_yaml(config_path.read_text())
                logger.info(f"Loaded configuration from {config_path}")
            except (OSError, yaml.YAMLError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
                config = ConfigModel()
        else:
            config = ConfigModel()

        return apply_env_overrides(config)

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> Path:
        """Save configuration to file."""
        config_path = config_path or cls.default_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.to_yaml())
        logger.info(f"Configuration saved to {config_path}")
        return config_path

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def set_config(config: ConfigModel) -> None:
    """Install a configuration instance (used by tests and the CLI)."""
    Config._instance = config


def reset_config() -> None:
    """Drop the cached configuration so the next access reloads it."""
    Config._instance = None
