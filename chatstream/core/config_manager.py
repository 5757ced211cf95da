import yaml
import os
from dataclasses import dataclass
from typing import Dict, Any, Optional

from .logging import logger
from ..utils.deep_merge import deep_merge


DEFAULT_STREAM_SETTINGS: Dict[str, Any] = {
    "timeout_seconds": 30.0,
    "sentinel_max_length": 10,
    "sanitize_content": False,
    "markers": {
        "content": "data: ",
        "event": "event: crisis",
    },
    "retry": {
        "max_retries": 3,
        "base_delay": 1.0,
        "max_delay": 30.0,
    },
}


@dataclass(frozen=True)
class StreamConfig:
    """
    Settings for one StreamingMessageProcessor.

    Attributes:
        content_marker: Prefix of ordinary payload lines
        event_marker: Prefix of crisis-channel lines
        sentinel_max_length: Numeric payloads shorter than this are session-id sentinels
        timeout_seconds: Budget for the whole read loop
        max_retries: Attempts to re-open a stream after a network failure
        retry_base_delay: First backoff delay, doubled on every attempt
        retry_max_delay: Upper bound for a single backoff delay
        sanitize_content: Run MessageSanitizer over every content payload
    """
    content_marker: str = "data: "
    event_marker: str = "event: crisis"
    sentinel_max_length: int = 10
    timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    sanitize_content: bool = False

    def __post_init__(self):
        if not self.content_marker:
            raise ValueError("content_marker must be a non-empty string")
        if not self.event_marker:
            raise ValueError("event_marker must be a non-empty string")
        if self.content_marker == self.event_marker:
            raise ValueError("content_marker and event_marker must differ")
        if self.sentinel_max_length < 0:
            raise ValueError("sentinel_max_length must be >= 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise ValueError("retry delays must be >= 0")

    @classmethod
    def from_dict(cls, settings: Optional[Dict[str, Any]]) -> "StreamConfig":
        """Строит конфигурацию из словаря в формате секции `stream:` (неизвестные ключи игнорируются)"""
        merged = deep_merge(DEFAULT_STREAM_SETTINGS, settings or {})
        markers = merged.get("markers") or {}
        retry = merged.get("retry") or {}
        try:
            return cls(
                content_marker=str(markers["content"]),
                event_marker=str(markers["event"]),
                sentinel_max_length=int(merged["sentinel_max_length"]),
                timeout_seconds=float(merged["timeout_seconds"]),
                max_retries=int(retry["max_retries"]),
                retry_base_delay=float(retry["base_delay"]),
                retry_max_delay=float(retry["max_delay"]),
                sanitize_content=_to_bool(merged["sanitize_content"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid stream configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeout_seconds": self.timeout_seconds,
            "sentinel_max_length": self.sentinel_max_length,
            "sanitize_content": self.sanitize_content,
            "markers": {
                "content": self.content_marker,
                "event": self.event_marker,
            },
            "retry": {
                "max_retries": self.max_retries,
                "base_delay": self.retry_base_delay,
                "max_delay": self.retry_max_delay,
            },
        }


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class ConfigManager:
    def __init__(self, config_dir: str = "config"):
        self.config_dir = config_dir
        self.stream_config_path = os.path.join(config_dir, "stream.yaml")
        self.config = self._load_config()

        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        logger.info("Configuration manager initialized", config={
            "config_dir": config_dir,
            "log_level": self.log_level,
            "timeout_seconds": self.config.timeout_seconds,
            "sanitize_content": self.config.sanitize_content,
            "stream_config_exists": os.path.exists(self.stream_config_path)
        })

    def _load_config(self) -> StreamConfig:
        settings: Dict[str, Any] = {}
        try:
            with open(self.stream_config_path, 'r') as f:
                settings = (yaml.safe_load(f) or {}).get('stream', {}) or {}
        except FileNotFoundError as e:
            logger.warning(f"Configuration file not found, using defaults: {e}", config={
                "error_type": "file_not_found",
                "file_path": str(e.filename) if hasattr(e, 'filename') else 'unknown'
            })
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file: {e}", config={
                "error_type": "yaml_parse_error",
                "error_message": str(e)
            })

        return StreamConfig.from_dict(deep_merge(settings, self._env_overrides()))

    @staticmethod
    def _env_overrides() -> Dict[str, Any]:
        """Переменные окружения имеют приоритет над YAML"""
        overrides: Dict[str, Any] = {}
        if os.getenv("STREAM_TIMEOUT"):
            overrides["timeout_seconds"] = os.environ["STREAM_TIMEOUT"]
        if os.getenv("STREAM_MAX_RETRIES"):
            overrides["retry"] = {"max_retries": os.environ["STREAM_MAX_RETRIES"]}
        if os.getenv("STREAM_SANITIZE_CONTENT"):
            overrides["sanitize_content"] = os.environ["STREAM_SANITIZE_CONTENT"]
        return overrides

    def get_stream_config(self) -> StreamConfig:
        return self.config

    @property
    def should_sanitize_content(self) -> bool:
        """Возвращает True если нужно санитизировать контент стрима"""
        return self.config.sanitize_content

    def reload_config(self):
        logger.info("Reloading configuration", config={
            "operation": "reload_config",
            "config_dir": self.config_dir
        })
        self.config = self._load_config()
        logger.info("Configuration reloaded", config={
            "operation": "reload_complete",
            **self.config.to_dict()
        })
