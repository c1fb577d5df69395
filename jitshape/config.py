"""
Centralized configuration for jitshape.

Supports loading from YAML files, environment variables, and defaults.
"""

from dataclasses import dataclass, field
from enum import Enum
import logging
import os
from typing import Optional, Dict, Any
import yaml

from .core.exceptions import ConfigurationError
from .core.types import UnknownConstantPolicy

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, 'true' if default else 'false').lower() == 'true'


def _parse_enum(enum_cls, raw: Any, setting: str):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"Invalid value {raw!r} for {setting}; expected one of: {allowed}",
            context={'setting': setting}
        ) from None


def _parse_bool(raw: Any, setting: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.lower() in ('true', 'false'):
        return raw.lower() == 'true'
    raise ConfigurationError(
        f"Invalid value {raw!r} for {setting}; expected true or false",
        context={'setting': setting}
    )


@dataclass
class EngineConfig:
    """Shape inference engine behavior."""
    # Check node order before the pass instead of failing mid-pass
    verify_topological_order: bool = False
    # prim::Constant types without a rule: "error" or "empty"
    unknown_constant_policy: UnknownConstantPolicy = UnknownConstantPolicy.ERROR
    # Log the full value -> shape map after each successful pass
    log_shape_map: bool = False

    def __post_init__(self):
        self.verify_topological_order = _parse_bool(
            self.verify_topological_order, 'verify_topological_order')
        self.log_shape_map = _parse_bool(self.log_shape_map, 'log_shape_map')
        self.unknown_constant_policy = _parse_enum(
            UnknownConstantPolicy, self.unknown_constant_policy, 'unknown_constant_policy')

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Load engine config from environment variables."""
        return cls(
            verify_topological_order=_env_flag('JITSHAPE_VERIFY_ORDER', False),
            unknown_constant_policy=os.getenv('JITSHAPE_UNKNOWN_CONSTANTS', 'error'),
            log_shape_map=_env_flag('JITSHAPE_LOG_SHAPE_MAP', False),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: LogLevel = LogLevel.WARNING
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        self.level = _parse_enum(LogLevel, self.level, 'logging.level')

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Load logging config from environment variables."""
        return cls(
            level=os.getenv('JITSHAPE_LOG_LEVEL', 'warning'),
            format=os.getenv('JITSHAPE_LOG_FORMAT', "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        )


@dataclass
class JitShapeConfig:
    """Main configuration class for jitshape."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'JitShapeConfig':
        """
        Load configuration from YAML file and/or environment variables.

        Environment variables that are set override values from the file.

        Args:
            path: Path to YAML config file (optional)

        Returns:
            JitShapeConfig instance with loaded settings
        """
        config = cls()

        if path:
            if not os.path.exists(path):
                raise ConfigurationError(f"Config file not found: {path}",
                                         context={'path': path})
            with open(path, 'r') as f:
                yaml_data = yaml.safe_load(f)
            if yaml_data:
                if not isinstance(yaml_data, dict):
                    raise ConfigurationError(
                        f"Config file {path} must contain a mapping",
                        context={'path': path}
                    )
                config = cls._from_dict(yaml_data)
            config.config_file = path

        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self) -> None:
        """Override individual settings whose environment variable is set."""
        env_engine = EngineConfig.from_env()
        env_logging = LoggingConfig.from_env()
        if 'JITSHAPE_VERIFY_ORDER' in os.environ:
            self.engine.verify_topological_order = env_engine.verify_topological_order
        if 'JITSHAPE_UNKNOWN_CONSTANTS' in os.environ:
            self.engine.unknown_constant_policy = env_engine.unknown_constant_policy
        if 'JITSHAPE_LOG_SHAPE_MAP' in os.environ:
            self.engine.log_shape_map = env_engine.log_shape_map
        if 'JITSHAPE_LOG_LEVEL' in os.environ:
            self.logging.level = env_logging.level
        if 'JITSHAPE_LOG_FORMAT' in os.environ:
            self.logging.format = env_logging.format

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> 'JitShapeConfig':
        """Create config from dictionary (YAML data)."""
        engine_data = data.get('engine', {}) or {}
        logging_data = data.get('logging', {}) or {}
        try:
            return cls(
                engine=EngineConfig(**engine_data),
                logging=LoggingConfig(**logging_data),
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            'engine': {
                'verify_topological_order': self.engine.verify_topological_order,
                'unknown_constant_policy': self.engine.unknown_constant_policy.value,
                'log_shape_map': self.engine.log_shape_map,
            },
            'logging': {
                'level': self.logging.level.value,
                'format': self.logging.format,
            },
        }

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Apply a LoggingConfig to the ``jitshape`` logger hierarchy."""
    config = config or get_config().logging
    package_logger = logging.getLogger('jitshape')
    package_logger.setLevel(getattr(logging, config.level.name))
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        package_logger.addHandler(handler)
    for handler in package_logger.handlers:
        handler.setFormatter(logging.Formatter(config.format))


# Global configuration instance
_config: Optional[JitShapeConfig] = None


def get_config() -> JitShapeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = JitShapeConfig.load()
    return _config


def set_config(config: Optional[JitShapeConfig]) -> None:
    """Set the global configuration instance (None resets to lazy load)."""
    global _config
    _config = config


def load_config(path: Optional[str] = None) -> JitShapeConfig:
    """Load configuration from file and/or environment."""
    return JitShapeConfig.load(path)
