"""
Data validation utilities for metaPredictor.

This module checks that features, labels and metadata describe the same samples.
"""

from typing import List, Optional, Union

import pandas as pd

from ..core.base import FeatureType
from ..core.exceptions import DataError
from ..utils.logger import get_logger
from .features import FeatureSet
from .label import Label


class DataValidator:
    """Data validator for microbiome datasets."""

    def __init__(self):
        self.logger = get_logger("DataValidator")

    def validate(
        self,
        features: FeatureSet,
        label: Label,
        feature_type: Union[str, FeatureType] = FeatureType.ORIGINAL,
        metadata: Optional[pd.DataFrame] = None
    ) -> None:
        """
        Validate input data.

        Args:
            features: Feature set
            label: Label object
            feature_type: Variant that the next stage will read
            metadata: Sample x covariate table (optional)

        Raises:
            DataError: If data validation fails
        """
        self.logger.debug("Validating input data...")

        matrix = features.get(feature_type)
        self._validate_samples(matrix.columns.tolist(), label.samples, "features")

        if metadata is not None:
            self._validate_metadata(metadata, label)

        self.logger.debug("Data validation passed")

    def _validate_samples(self, sample_ids: List[str], label_ids: List[str], what: str) -> None:
        """Every sample in the matrix needs exactly one label entry and vice versa."""
        sample_set = set(sample_ids)
        label_set = set(label_ids)
        without_label = [s for s in sample_ids if s not in label_set]
        if without_label:
            raise DataError(
                f"{len(without_label)} samples in the {what} have no label: {without_label[:10]}"
            )
        without_data = [s for s in label_ids if s not in sample_set]
        if without_data:
            raise DataError(
                f"{len(without_data)} labelled samples are missing from the {what}: {without_data[:10]}"
            )

    def _validate_metadata(self, metadata: pd.DataFrame, label: Label) -> None:
        """Validate metadata coverage."""
        if metadata.index.has_duplicates:
            raise DataError("Metadata has duplicated sample ids")
        missing = [s for s in label.samples if s not in metadata.index]
        if missing:
            raise DataError(f"{len(missing)} labelled samples are missing from the metadata: {missing[:10]}")

