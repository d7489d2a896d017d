"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Optional
import json

from dotenv import load_dotenv

from .discovery.announcer import DEFAULT_ANNOUNCE_INTERVAL
from .discovery.channel import BROADCAST_ADDRESS
from .discovery.listener import DEFAULT_RECEIVE_TIMEOUT
from .discovery.membership import DEFAULT_LIVENESS_THRESHOLD
from .discovery.protocol import DEFAULT_DISCOVERY_PORT
from .discovery.service import DEFAULT_SWEEP_INTERVAL
from .messages.store import MAX_MESSAGES


@dataclass
class Config:
    """
    LAN chat node configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (LANCHAT_*)
    2. Config file (config.json)
    3. Default values
    """
    # HTTP API
    host: str = '0.0.0.0'
    api_port: int = 8080

    # Discovery
    auto_discover: bool = True
    discovery_port: int = DEFAULT_DISCOVERY_PORT
    broadcast_address: str = BROADCAST_ADDRESS
    announce_interval: float = DEFAULT_ANNOUNCE_INTERVAL
    liveness_threshold: float = DEFAULT_LIVENESS_THRESHOLD
    receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL

    # Storage
    data_file: Path = field(default_factory=lambda: Path('./data/messages.json'))
    max_messages: int = MAX_MESSAGES

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # HTTP API
        config.host = os.getenv('LANCHAT_HOST', config.host)
        config.api_port = int(os.getenv('LANCHAT_API_PORT', config.api_port))

        # Discovery
        config.auto_discover = os.getenv('LANCHAT_AUTO_DISCOVER', 'true').lower() == 'true'
        config.discovery_port = int(os.getenv('LANCHAT_DISCOVERY_PORT', config.discovery_port))
        config.broadcast_address = os.getenv('LANCHAT_BROADCAST_ADDRESS', config.broadcast_address)
        config.announce_interval = float(
            os.getenv('LANCHAT_ANNOUNCE_INTERVAL', config.announce_interval)
        )
        config.liveness_threshold = float(
            os.getenv('LANCHAT_LIVENESS_THRESHOLD', config.liveness_threshold)
        )
        config.receive_timeout = float(
            os.getenv('LANCHAT_RECEIVE_TIMEOUT', config.receive_timeout)
        )
        config.sweep_interval = float(
            os.getenv('LANCHAT_SWEEP_INTERVAL', config.sweep_interval)
        )

        # Storage
        data_file = os.getenv('LANCHAT_DATA_FILE')
        if data_file:
            config.data_file = Path(data_file)
        config.max_messages = int(os.getenv('LANCHAT_MAX_MESSAGES', config.max_messages))

        # Logging
        config.log_level = os.getenv('LANCHAT_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        for fld in fields(cls):
            if fld.name not in data:
                continue
            if fld.name == 'data_file':
                config.data_file = Path(data['data_file'])
            else:
                setattr(config, fld.name, data[fld.name])

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'api_port': self.api_port,
            'auto_discover': self.auto_discover,
            'discovery_port': self.discovery_port,
            'broadcast_address': self.broadcast_address,
            'announce_interval': self.announce_interval,
            'liveness_threshold': self.liveness_threshold,
            'receive_timeout': self.receive_timeout,
            'sweep_interval': self.sweep_interval,
            'data_file': str(self.data_file),
            'max_messages': self.max_messages,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()

    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    # Override with environment variables
    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for fld in fields(Config):
        env_val = getattr(env_config, fld.name)
        if env_val != getattr(defaults, fld.name):
            setattr(config, fld.name, env_val)

    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "0.0.0.0",
  "api_port": 8080,
  "auto_discover": true,
  "discovery_port": 45454,
  "broadcast_address": "255.255.255.255",
  "announce_interval": 15.0,
  "liveness_threshold": 90.0,
  "data_file": "./data/messages.json",
  "max_messages": 1000,
  "log_level": "INFO"
}
"""
