"""
Data loading utilities for metaPredictor.

This module reads the tables used by the command line: a features x samples
profile table, a samples x covariates metadata table and the label column.
"""

from pathlib import Path
from typing import Any, Optional, Tuple, Union

import pandas as pd

from .features import FeatureSet
from .label import Label, create_label
from ..core.exceptions import DataError
from ..utils.logger import get_logger


def _separator(path: Path) -> str:
    return ',' if path.suffix.lower() == '.csv' else '\t'


class DataLoader:
    """Data loader for microbiome datasets."""

    def __init__(self):
        self.logger = get_logger("DataLoader")

    def _read_table(self, path: Union[str, Path], what: str) -> pd.DataFrame:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"{what} file not found: {path}")
        table = pd.read_table(path, sep=_separator(path), index_col=0)
        table.index = table.index.astype(str)
        self.logger.info(f"Loaded {what.lower()} table {path.name}: {table.shape}")
        return table

    def load_features(self, path: Union[str, Path], transpose: bool = False) -> FeatureSet:
        """
        Read a feature table.

        Args:
            path: Tab- or comma-separated table (comma for ``.csv``)
            transpose: The file holds samples as rows instead of features
        """
        table = self._read_table(path, "Feature")
        if transpose:
            table = table.T
        table.columns = table.columns.astype(str)
        return FeatureSet(original=table)

    def load_metadata(self, path: Union[str, Path]) -> pd.DataFrame:
        return self._read_table(path, "Metadata")

    def load_label(
        self,
        metadata: pd.DataFrame,
        column: str,
        case: Optional[Any] = None,
        control: Optional[Any] = None,
        continuous: bool = False
    ) -> Label:
        return create_label(metadata, column, case=case, control=control, continuous=continuous)

    def load_data(
        self,
        feature_file: Union[str, Path],
        metadata_file: Union[str, Path],
        label_column: str,
        case: Optional[Any] = None,
        control: Optional[Any] = None,
        continuous: bool = False,
        transpose: bool = False
    ) -> Tuple[FeatureSet, Label, pd.DataFrame]:
        """
        Read features, metadata and label, restricted to their common samples.

        Returns:
            Tuple of (features, label, metadata), all in label sample order
        """
        features = self.load_features(feature_file, transpose=transpose)
        metadata = self.load_metadata(metadata_file)
        label = self.load_label(metadata, label_column, case=case, control=control, continuous=continuous)

        feature_samples = set(features.sample_ids())
        common = [s for s in label.samples if s in feature_samples]
        if not common:
            raise DataError("No common samples found between features and metadata")
        n_dropped = len(label) - len(common)
        if n_dropped:
            self.logger.warning(f"Dropping {n_dropped} labelled samples without features")
        n_unlabelled = len(feature_samples) - len(common)
        if n_unlabelled:
            self.logger.info(f"Ignoring {n_unlabelled} feature samples without label")

        label = label.subset(common)
        return features.select_samples(common), label, metadata.loc[common]
