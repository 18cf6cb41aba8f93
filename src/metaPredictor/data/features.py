"""
Feature matrix container for metaPredictor.

Features are held as features x samples tables (one row per taxon, one
column per sample), in up to three named variants.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from ..core.base import FeatureType
from ..core.exceptions import DataError


def _check_matrix(matrix: pd.DataFrame, name: str) -> None:
    if matrix.empty:
        raise DataError(f"The {name} feature matrix is empty")
    if matrix.index.has_duplicates:
        raise DataError(f"The {name} feature matrix has duplicated feature ids")
    if matrix.columns.has_duplicates:
        raise DataError(f"The {name} feature matrix has duplicated sample ids")
    try:
        values = matrix.to_numpy(dtype=float)
    except (TypeError, ValueError) as e:
        raise DataError(f"The {name} feature matrix is not numeric: {e}") from e
    if not np.isfinite(values).all():
        raise DataError(f"The {name} feature matrix contains missing or infinite values")


@dataclass(frozen=True, eq=False)
class FeatureSet:
    """
    Immutable holder of the original, filtered and normalized feature tables.

    Attributes:
        original: Features x samples table as read from the source
        filtered: Features x samples table after unsupervised filtering
        normalized: Features x samples table after normalization
        filter_params: Parameters used for filtering
        norm_params: Frozen normalization parameters (NormParams)
    """
    original: pd.DataFrame
    filtered: Optional[pd.DataFrame] = None
    normalized: Optional[pd.DataFrame] = None
    filter_params: Dict[str, Any] = field(default_factory=dict)
    norm_params: Optional[Any] = None

    def __post_init__(self):
        for feature_type in FeatureType:
            matrix = getattr(self, feature_type.value)
            if matrix is not None:
                _check_matrix(matrix, feature_type.value)

    def has(self, feature_type: Union[str, FeatureType]) -> bool:
        return getattr(self, FeatureType.parse(feature_type).value) is not None

    def get(self, feature_type: Union[str, FeatureType]) -> pd.DataFrame:
        """Return the requested variant (features x samples)."""
        feature_type = FeatureType.parse(feature_type)
        matrix = getattr(self, feature_type.value)
        if matrix is None:
            raise DataError(f"Features have not been {feature_type.value} yet")
        return matrix

    def samples_view(self, feature_type: Union[str, FeatureType]) -> pd.DataFrame:
        """Return the requested variant as a samples x features table."""
        return self.get(feature_type).T

    def sample_ids(self, feature_type: Union[str, FeatureType] = FeatureType.ORIGINAL) -> List[str]:
        return self.get(feature_type).columns.tolist()

    def feature_ids(self, feature_type: Union[str, FeatureType]) -> List[str]:
        return self.get(feature_type).index.tolist()

    def with_variant(
        self,
        feature_type: Union[str, FeatureType],
        matrix: pd.DataFrame,
        **params
    ) -> 'FeatureSet':
        """Return a copy with one variant replaced."""
        feature_type = FeatureType.parse(feature_type)
        if feature_type == FeatureType.ORIGINAL:
            return replace(self, original=matrix, **params)
        return replace(self, **{feature_type.value: matrix}, **params)

    def select_samples(self, samples: List[str]) -> 'FeatureSet':
        """Return a copy restricted to the given samples in every variant."""
        kwargs = {}
        for feature_type in FeatureType:
            matrix = getattr(self, feature_type.value)
            if matrix is not None:
                missing = [s for s in samples if s not in matrix.columns]
                if missing:
                    raise DataError(
                        f"Samples missing from the {feature_type.value} features: {missing[:10]}"
                    )
                kwargs[feature_type.value] = matrix.loc[:, list(samples)]
        return replace(self, **kwargs)

    @property
    def shape(self):
        return self.original.shape
