"""
Base types and configuration containers for metaPredictor.

This module defines the enumerations and the configuration dataclasses shared
by the pipeline stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError


class LabelType(Enum):
    """Enumeration of supported label types."""
    BINARY = "binary"
    CONTINUOUS = "continuous"


class FeatureType(Enum):
    """Named variants of a feature matrix."""
    ORIGINAL = "original"
    FILTERED = "filtered"
    NORMALIZED = "normalized"

    @classmethod
    def parse(cls, value: Union[str, 'FeatureType']) -> 'FeatureType':
        """Accept either an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ConfigurationError(
                f"Unknown feature type '{value}', expected one of: {valid}"
            ) from None


class SearchMethod(Enum):
    """Inner hyperparameter search strategies."""
    GRID = "grid"
    RANDOM = "random"
    BAYES = "bayes"


@dataclass
class SplitConfig:
    """Configuration for the fold partitioner."""
    num_folds: int = 5
    num_resample: int = 1
    stratify: bool = True
    inseparable: Optional[str] = None
    random_state: int = 42


@dataclass
class ModelConfig:
    """Configuration for the model trainer."""
    method: str = "lasso"
    measure: Optional[Union[str, List[str]]] = None
    param_set: Dict[str, Any] = field(default_factory=dict)
    grid_size: int = 10
    min_nonzero_coeff: int = 5
    feature_type: str = "normalized"
    search_method: str = "grid"
    inner_folds: int = 5
    n_iter: int = 20
    random_state: int = 42
    n_jobs: int = 1


@dataclass
class AdaptiveFilterConfig:
    """Configuration for adaptive variance filtering."""
    min_q: float = 0.5
    max_q: float = 0.95
    r_mid: float = 1.0
    steepness: float = 2.0
