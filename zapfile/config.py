"""Runtime configuration"""

from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Dict, Any, Optional
import logging

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "ZAP-7X9K-M2P4"
DEFAULT_MEDIA_TYPE = "application/octet-stream"
PROGRESS_MODES = ("random", "chunked")


@dataclass
class ZapConfig:
    """ZapFile configuration"""
    session_id: str = DEFAULT_SESSION_ID
    checksum_algorithm: str = "SHA256"
    strict_checksum: bool = False
    default_media_type: str = DEFAULT_MEDIA_TYPE
    log_capacity: int = 100
    tick_interval: float = 0.3  # seconds
    progress_min: float = 5.0  # percent per tick
    progress_max: float = 20.0
    progress_mode: str = "random"  # random | chunked
    settle_delay: float = 2.0  # seconds before a completed batch is cleared
    link_ttl: float = 1.0  # seconds a download link stays valid
    connect_delay: float = 1.5
    chunk_size: int = 64 * 1024

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Check value ranges"""
        if self.log_capacity < 1:
            raise ConfigError("log_capacity must be at least 1")
        if self.tick_interval <= 0:
            raise ConfigError("tick_interval must be positive")
        if not 0 < self.progress_min <= self.progress_max:
            raise ConfigError("progress range must satisfy 0 < min <= max")
        if self.progress_mode not in PROGRESS_MODES:
            raise ConfigError(f"progress_mode must be one of: {', '.join(PROGRESS_MODES)}")
        for name in ('settle_delay', 'link_ttl', 'connect_delay'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.chunk_size < 1:
            raise ConfigError("chunk_size must be at least 1")
        if not self.session_id.strip():
            raise ConfigError("session_id must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ZapConfig':
        """Build config from a mapping, rejecting unknown keys"""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid config: {e}") from e


def load_config(path: Optional[Path] = None, **overrides) -> ZapConfig:
    """
    Load configuration from a YAML file
    Keyword overrides with a None value are ignored
    """
    data: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        try:
            with open(path, 'r') as f:
                loaded = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        data.update(loaded)
        logger.info(f"Loaded configuration from {path}")

    data.update({k: v for k, v in overrides.items() if v is not None})
    return ZapConfig.from_dict(data)
