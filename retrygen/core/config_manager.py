"""Configuration management"""
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from retrygen.core.exceptions import ConfigurationError
from retrygen.utils.helpers import deep_get
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)


class GeneratorKind(Enum):
    UNIT_TEST = "unit_test"
    RETRY = "retry"


class TargetLanguage(Enum):
    PYTHON = "python"


DEFAULT_CONFIG = {
    'generator': {
        'kind': GeneratorKind.RETRY.value,
        'unit_test_provider': 'unittest',
        'allow_row_tests': True,
        'allow_debug_generated_files': False,
        'default_namespace': 'SpecFlowTests',
        'runtime_namespace': 'specflow',
        'target_language': TargetLanguage.PYTHON.value,
    },
    'output': {
        'directory': 'generated',
    },
}


@dataclass(frozen=True)
class GeneratorConfiguration:
    """Settings that influence the generated test classes"""
    kind: GeneratorKind = GeneratorKind.RETRY
    unit_test_provider: str = 'unittest'
    allow_row_tests: bool = True
    allow_debug_generated_files: bool = False
    default_namespace: str = 'SpecFlowTests'
    runtime_namespace: str = 'specflow'
    target_language: TargetLanguage = TargetLanguage.PYTHON

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'GeneratorConfiguration':
        section = deep_get(config, 'generator', {}) or {}
        defaults = DEFAULT_CONFIG['generator']

        def value(key):
            return section.get(key, defaults[key])

        return cls(
            kind=_to_enum(GeneratorKind, value('kind'), 'generator.kind'),
            unit_test_provider=str(value('unit_test_provider')),
            allow_row_tests=_to_bool(value('allow_row_tests')),
            allow_debug_generated_files=_to_bool(value('allow_debug_generated_files')),
            default_namespace=str(value('default_namespace')),
            runtime_namespace=str(value('runtime_namespace')),
            target_language=_to_enum(TargetLanguage, value('target_language'), 'generator.target_language'),
        )


class ConfigManager:
    """Manages configuration loading and merging"""

    def __init__(self, config_path: Optional[str] = None, environment: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self.environment = environment
        self.config = {}

    def load_config(self) -> Dict[str, Any]:
        """Load the defaults, the config file and the environment file, in that order"""
        self.config = self._merge_configs(DEFAULT_CONFIG, {})

        if self.config_path is None:
            logger.debug("No config file given, using defaults")
            return self.config

        if self.config_path.exists():
            self.config = self._merge_configs(self.config, self._read_yaml(self.config_path))
        else:
            logger.warning(f"Config file not found: {self.config_path}")

        if self.environment:
            env_config_path = self.config_path.parent / 'environments' / f'{self.environment}.yaml'
            if env_config_path.exists():
                env_config = self._read_yaml(env_config_path)

                # Overrides replace whole keys of a section instead of merging them
                if 'overrides' in env_config:
                    overrides = env_config.pop('overrides')
                    self._apply_overrides(self.config, overrides)

                self.config = self._merge_configs(self.config, env_config)
            else:
                logger.warning(f"Environment config not found: {env_config_path}")

        self.config = self._process_env_vars(self.config)

        logger.info(f"Configuration loaded from {self.config_path}"
                    + (f" for environment: {self.environment}" if self.environment else ""))
        return self.config

    def get_generator_configuration(self) -> GeneratorConfiguration:
        """Build the typed generator settings, loading the config on first use"""
        if not self.config:
            self.load_config()
        return GeneratorConfiguration.from_dict(self.config)

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping at the top of {path}")
        return data

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = {k: (self._merge_configs(v, {}) if isinstance(v, dict) else v) for k, v in base.items()}

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_overrides(self, base: Dict, overrides: Dict) -> None:
        """Apply overrides from environment config to base config"""
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(base.get(section), dict):
                base[section].update(values)
            else:
                base[section] = values

    def _process_env_vars(self, config: Any) -> Any:
        """Replace ${VAR} with environment variables"""
        if isinstance(config, dict):
            return {k: self._process_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._process_env_vars(item) for item in config]
        elif isinstance(config, str) and config.startswith('${') and config.endswith('}'):
            var_name = config[2:-1]
            return os.environ.get(var_name, config)
        else:
            return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)"""
        return deep_get(self.config, key, default)


def _to_enum(enum_type, value, key: str):
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).lower())
    except ValueError:
        allowed = ', '.join(member.value for member in enum_type)
        raise ConfigurationError(f"Invalid value '{value}' for {key} (expected one of: {allowed})") from None


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)
