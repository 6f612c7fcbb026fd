"""
Configuration Management

Handles loading configuration from environment variables and config files.
The controller launches the adapter with a fixed command line, so most
tuning happens through LFS_ADAPTER_* variables or a JSON file.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

ENV_PREFIX = 'LFS_ADAPTER_'

# Each key is also read from ENV_PREFIX + key.upper()
CONFIG_KEYS = ['temp_dir', 'temp_prefix', 'chunk_size', 'http_timeout',
               'connect_timeout', 'follow_redirects', 'verify_tls',
               'log_level', 'log_file']


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + key)
    if value is None:
        return default
    return value.lower() not in ('0', 'false', 'no')


@dataclass
class AdapterConfig:
    """
    Adapter Configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (LFS_ADAPTER_*)
    2. Config file (JSON)
    3. Default values
    """
    # Downloads
    temp_dir: Optional[Path] = None  # system temp dir
    temp_prefix: str = 'lfscustomdl'

    # Performance
    chunk_size: int = 256 * 1024  # 256KB

    # HTTP (seconds, 0 disables)
    http_timeout: float = 30.0
    connect_timeout: float = 10.0
    follow_redirects: bool = True
    verify_tls: bool = True

    # Logging
    log_level: str = 'INFO'
    log_file: Optional[Path] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ValueError for settings the executors cannot run with."""
        if not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise ValueError(f"chunk_size must be a positive integer, got {self.chunk_size!r}")

    @classmethod
    def from_env(cls) -> 'AdapterConfig':
        """Load configuration from environment variables."""
        # .env next to where the controller launched us (the repository)
        load_dotenv(find_dotenv(usecwd=True))

        config = cls()

        # Downloads
        temp_dir = os.getenv(ENV_PREFIX + 'TEMP_DIR')
        if temp_dir:
            config.temp_dir = Path(temp_dir)
        config.temp_prefix = os.getenv(ENV_PREFIX + 'TEMP_PREFIX', config.temp_prefix)

        # Performance
        config.chunk_size = int(os.getenv(ENV_PREFIX + 'CHUNK_SIZE', config.chunk_size))

        # HTTP
        config.http_timeout = float(os.getenv(ENV_PREFIX + 'HTTP_TIMEOUT', config.http_timeout))
        config.connect_timeout = float(
            os.getenv(ENV_PREFIX + 'CONNECT_TIMEOUT', config.connect_timeout)
        )
        config.follow_redirects = _env_bool('FOLLOW_REDIRECTS', config.follow_redirects)
        config.verify_tls = _env_bool('VERIFY_TLS', config.verify_tls)

        # Logging
        config.log_level = os.getenv(ENV_PREFIX + 'LOG_LEVEL', config.log_level)
        log_file = os.getenv(ENV_PREFIX + 'LOG_FILE')
        if log_file:
            config.log_file = Path(log_file)

        config.validate()
        return config

    @classmethod
    def from_file(cls, path: Path) -> 'AdapterConfig':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        if data.get('temp_dir'):
            config.temp_dir = Path(data['temp_dir'])
        config.temp_prefix = data.get('temp_prefix', config.temp_prefix)
        config.chunk_size = data.get('chunk_size', config.chunk_size)

        config.http_timeout = data.get('http_timeout', config.http_timeout)
        config.connect_timeout = data.get('connect_timeout', config.connect_timeout)
        config.follow_redirects = data.get('follow_redirects', config.follow_redirects)
        config.verify_tls = data.get('verify_tls', config.verify_tls)

        config.log_level = data.get('log_level', config.log_level)
        if data.get('log_file'):
            config.log_file = Path(data['log_file'])

        config.validate()
        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'temp_dir': str(self.temp_dir) if self.temp_dir else None,
            'temp_prefix': self.temp_prefix,
            'chunk_size': self.chunk_size,
            'http_timeout': self.http_timeout,
            'connect_timeout': self.connect_timeout,
            'follow_redirects': self.follow_redirects,
            'verify_tls': self.verify_tls,
            'log_level': self.log_level,
            'log_file': str(self.log_file) if self.log_file else None,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> AdapterConfig:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = AdapterConfig()

    # Load from file if provided
    if config_path and config_path.exists():
        config = AdapterConfig.from_file(config_path)

    # Override with environment variables
    env_config = AdapterConfig.from_env()

    # Merge (env takes precedence wherever the variable is set)
    for key in CONFIG_KEYS:
        if os.getenv(ENV_PREFIX + key.upper()):
            setattr(config, key, getattr(env_config, key))

    config.validate()
    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "temp_dir": "/var/tmp/lfs-adapter",
  "temp_prefix": "lfscustomdl",
  "chunk_size": 262144,
  "http_timeout": 30.0,
  "connect_timeout": 10.0,
  "follow_redirects": true,
  "verify_tls": true,
  "log_level": "INFO",
  "log_file": null
}
"""
