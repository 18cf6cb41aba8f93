"""
Feature selection configuration for metaPredictor.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..core.base import LabelType
from ..core.exceptions import ConfigurationError

BINARY_METHODS = ('AUC', 'gFC', 'Wilcoxon')
CONTINUOUS_METHODS = ('spearman', 'pearson')
DIRECTIONS = ('absolute', 'positive', 'negative')


@dataclass
class FeatureSelectionConfig:
    """
    Feature selection configuration.

    Attributes:
        enabled: Run feature selection inside every training fold
        method: Association statistic ('AUC', 'gFC', 'Wilcoxon' for binary
            labels; 'spearman', 'pearson' for continuous labels)
        n_features: Keep the top n features
        threshold: Keep features whose statistic passes this cutoff (for
            Wilcoxon, p-values below the cutoff)
        direction: 'absolute', 'positive' (case-enriched / positively
            correlated) or 'negative'
    """
    enabled: bool = True
    method: str = 'AUC'
    n_features: Optional[int] = None
    threshold: Optional[float] = None
    direction: str = 'absolute'

    def validate(self, label_type: LabelType) -> None:
        """Check the configuration against the label type."""
        if not self.enabled:
            return
        valid = BINARY_METHODS if label_type == LabelType.BINARY else CONTINUOUS_METHODS
        if self.method not in valid:
            raise ConfigurationError(
                f"Feature selection method '{self.method}' is not available for "
                f"{label_type.value} labels, expected one of: {', '.join(valid)}"
            )
        if self.direction not in DIRECTIONS:
            raise ConfigurationError(
                f"Unknown feature selection direction '{self.direction}', expected one of: {', '.join(DIRECTIONS)}"
            )
        if self.n_features is None and self.threshold is None:
            raise ConfigurationError("Feature selection needs n_features or threshold")
        if self.n_features is not None and int(self.n_features) < 1:
            raise ConfigurationError(f"n_features must be >= 1, got {self.n_features}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FeatureSelectionConfig':
        if not data:
            return cls(enabled=False)
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown feature selection options: {sorted(unknown)}")
        return cls(**data)
