"""
Configuration management for metaPredictor.

This module contains configuration loading and management utilities. A
``Config`` groups the settings of every pipeline stage; its ``*_kwargs``
methods turn them into the keyword arguments of the stage functions.
"""

import copy
import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .logger import get_logger
from ..config.default_config import DEFAULT_CONFIG
from ..config.feature_selection import FeatureSelectionConfig
from ..config.model_configs import models_for_label_type
from ..core.base import AdaptiveFilterConfig, LabelType, ModelConfig, SplitConfig
from ..core.exceptions import ConfigurationError


@dataclass
class FilterConfig:
    """Unsupervised feature filtering settings."""
    method: str = "abundance"
    cutoff: float = 0.001
    min_q: float = 0.5
    max_q: float = 0.95
    r_mid: float = 1.0
    steepness: float = 2.0

    def variance_config(self) -> AdaptiveFilterConfig:
        return AdaptiveFilterConfig(
            min_q=self.min_q, max_q=self.max_q, r_mid=self.r_mid, steepness=self.steepness
        )


@dataclass
class NormalizationConfig:
    """Normalization settings."""
    method: str = "log.std"
    log_n0: float = 1e-6
    sd_min_q: float = 0.1
    n_p: int = 2
    norm_margin: int = 1


@dataclass
class Config:
    """Configuration class for metaPredictor."""

    split: SplitConfig = field(default_factory=SplitConfig)
    filtering: FilterConfig = field(default_factory=FilterConfig)
    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    feature_selection: FeatureSelectionConfig = field(
        default_factory=lambda: FeatureSelectionConfig(enabled=False)
    )

    # Runtime configuration
    output_dir: str = "./results"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def split_kwargs(self) -> Dict[str, Any]:
        return asdict(self.split)

    def filter_kwargs(self) -> Dict[str, Any]:
        return {
            'method': self.filtering.method,
            'cutoff': self.filtering.cutoff,
            'variance_config': self.filtering.variance_config(),
        }

    def normalization_kwargs(self) -> Dict[str, Any]:
        return asdict(self.normalization)

    def train_kwargs(self) -> Dict[str, Any]:
        kwargs = asdict(self.model)
        kwargs['param_set'] = copy.deepcopy(self.model.param_set)
        kwargs['feature_selection'] = self.feature_selection if self.feature_selection.enabled else None
        return kwargs

    def validate(self, label_type: Optional[LabelType] = None) -> None:
        """Check settings that can be checked before any data is touched."""
        # imported here: the model registry imports the core stages
        from ..models import ModelFactory

        family = ModelFactory.resolve(self.model.method)
        if label_type is not None:
            if family not in models_for_label_type(label_type.value):
                raise ConfigurationError(
                    f"Model '{self.model.method}' does not support {label_type.value} labels"
                )
            self.feature_selection.validate(label_type)
        if self.split.num_folds < 2:
            raise ConfigurationError(f"num_folds must be >= 2, got {self.split.num_folds}")
        if self.split.num_resample < 1:
            raise ConfigurationError(f"num_resample must be >= 1, got {self.split.num_resample}")

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict; ranges in `param_set` become lower/upper mappings."""
        data = asdict(self)
        data["model"]["param_set"] = {
            name: {"lower": spec[0], "upper": spec[1]} if isinstance(spec, tuple) else spec
            for name, spec in self.model.param_set.items()
        }
        if isinstance(self.model.measure, tuple):
            data["model"]["measure"] = list(self.model.measure)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Config':
        config = cls()
        _apply(config, data or {}, get_logger("ConfigManager"))
        return config


_SECTION_TYPES = {
    'split': SplitConfig,
    'filtering': FilterConfig,
    'normalization': NormalizationConfig,
    'model': ModelConfig,
    'feature_selection': FeatureSelectionConfig,
}


def _apply(config: Config, data: Dict[str, Any], logger) -> None:
    """Merge a nested mapping into ``config``; unknown keys are logged and skipped."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")
    for key, value in data.items():
        if key in _SECTION_TYPES:
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ConfigurationError(f"Configuration section '{key}' must be a mapping")
            section = getattr(config, key)
            valid = {f.name for f in fields(section)}
            if key == 'feature_selection' and 'enabled' not in value:
                # giving selection settings switches it on
                section.enabled = True
            for name, item in value.items():
                if name in valid:
                    setattr(section, name, item)
                else:
                    logger.warning(f"Unknown configuration key: {key}.{name}")
        elif key in {f.name for f in fields(config)}:
            setattr(config, key, value)
        else:
            logger.warning(f"Unknown configuration key: {key}")


class ConfigManager:
    """Configuration manager for metaPredictor."""

    def __init__(self):
        self.logger = get_logger("ConfigManager")
        self.config = Config.from_dict(copy.deepcopy(DEFAULT_CONFIG))

    def load_from_file(self, config_path: Union[str, Path]) -> 'ConfigManager':
        """
        Load configuration from a file.

        Args:
            config_path: Path to configuration file

        Returns:
            Self for method chaining
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        self.logger.info(f"Loading configuration from {config_path}")

        if config_path.suffix.lower() in ('.yaml', '.yml'):
            self._load_yaml(config_path)
        elif config_path.suffix.lower() == '.json':
            self._load_json(config_path)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {config_path.suffix}")

        return self

    def _load_yaml(self, config_path: Path) -> None:
        """Load configuration from YAML file."""
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)

        self._update_config(config_data or {})

    def _load_json(self, config_path: Path) -> None:
        """Load configuration from JSON file."""
        with open(config_path, 'r') as f:
            config_data = json.load(f)

        self._update_config(config_data)

    def _update_config(self, config_data: Dict[str, Any]) -> None:
        """Update configuration with loaded data."""
        _apply(self.config, config_data, self.logger)
        self.logger.info("Configuration loaded successfully")

    def save_to_file(self, config_path: Union[str, Path]) -> None:
        """
        Save configuration to a file.

        Args:
            config_path: Path to save configuration file
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"Saving configuration to {config_path}")

        config_data = self.config.to_dict()

        if config_path.suffix.lower() in ('.yaml', '.yml'):
            with open(config_path, 'w') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        elif config_path.suffix.lower() == '.json':
            with open(config_path, 'w') as f:
                json.dump(config_data, f, indent=2)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {config_path.suffix}")

        self.logger.info("Configuration saved successfully")

    def get_config(self) -> Config:
        """Get the current configuration."""
        return self.config

    def update_config(self, **kwargs) -> 'ConfigManager':
        """
        Update configuration with new values.

        Nested sections take dicts, e.g. ``update_config(model={'method': 'enet'})``.

        Returns:
            Self for method chaining
        """
        _apply(self.config, kwargs, self.logger)
        return self
