"""Configuration management for the CLI"""

import logging
import yaml
from pathlib import Path
from typing import Dict, Optional, Any
from dataclasses import dataclass, field

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.swarmctl' / 'config.yaml'
DEFAULT_TIMEOUT = 30


@dataclass
class ContextConfig:
    """Connection settings for a single Docker Engine endpoint"""
    api_url: str
    token: Optional[str] = None
    verify_ssl: bool = True
    timeout: int = DEFAULT_TIMEOUT


@dataclass
class Config:
    """Main configuration structure"""
    contexts: Dict[str, ContextConfig] = field(default_factory=dict)
    current_context: Optional[str] = None
    # Persisted default templates, used when no --format flag is given
    services_format: Optional[str] = None
    configs_format: Optional[str] = None

    def active_context(self) -> Optional[ContextConfig]:
        """Return the selected context, if it exists"""
        if not self.current_context:
            return None
        return self.contexts.get(self.current_context)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for YAML serialization"""
        data = {
            'contexts': {
                name: {
                    'api_url': ctx.api_url,
                    'token': ctx.token,
                    'verify_ssl': ctx.verify_ssl,
                    'timeout': ctx.timeout
                }
                for name, ctx in self.contexts.items()
            },
            'current_context': self.current_context
        }
        if self.services_format:
            data['services_format'] = self.services_format
        if self.configs_format:
            data['configs_format'] = self.configs_format
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary"""
        contexts = {}
        for name, ctx_data in (data.get('contexts') or {}).items():
            if not isinstance(ctx_data, dict) or not ctx_data.get('api_url'):
                raise ConfigError(f"context '{name}' has no api_url")
            contexts[name] = ContextConfig(
                api_url=ctx_data['api_url'],
                token=ctx_data.get('token'),
                verify_ssl=ctx_data.get('verify_ssl', True),
                timeout=ctx_data.get('timeout', DEFAULT_TIMEOUT)
            )

        return cls(
            contexts=contexts,
            current_context=data.get('current_context'),
            services_format=data.get('services_format'),
            configs_format=data.get('configs_format')
        )


class ConfigManager:
    """Manages configuration file operations"""

    def __init__(self, config_path):
        self.config_path = Path(config_path)
        self.config_dir = self.config_path.parent

    def ensure_config_dir(self):
        """Ensure configuration directory exists"""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> Config:
        """Load configuration from file"""
        if not self.config_path.exists():
            logger.debug("No config file at %s, using defaults", self.config_path)
            return Config()

        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"failed to load config {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"failed to load config {self.config_path}: expected a mapping")
        return Config.from_dict(data)

    def save(self, config: Config):
        """Save configuration to file"""
        self.ensure_config_dir()

        with open(self.config_path, 'w') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)

    def add_context(self, name: str, api_url: str, token: Optional[str] = None,
                    verify_ssl: bool = True, timeout: int = DEFAULT_TIMEOUT):
        """Add or update a context"""
        config = self.load()
        config.contexts[name] = ContextConfig(
            api_url=api_url,
            token=token,
            verify_ssl=verify_ssl,
            timeout=timeout
        )

        # First context becomes current
        if not config.current_context:
            config.current_context = name

        self.save(config)
        return config

    def remove_context(self, name: str) -> bool:
        """Remove a context"""
        config = self.load()
        if name not in config.contexts:
            return False

        del config.contexts[name]
        if config.current_context == name:
            config.current_context = next(iter(config.contexts), None)

        self.save(config)
        return True

    def use_context(self, name: str) -> bool:
        """Switch to a different context"""
        config = self.load()
        if name in config.contexts:
            config.current_context = name
            self.save(config)
            return True
        return False
