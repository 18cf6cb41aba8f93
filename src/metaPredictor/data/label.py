"""
Label container for metaPredictor.

Binary labels are stored encoded as 0 (control, the reference class) and
1 (case), so the case class is always the second class in sorted order.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..core.base import LabelType
from ..core.exceptions import ConfigurationError, DataError
from ..utils.logger import get_logger

logger = get_logger(__name__)

MIN_CLASS_SIZE = 2
CONTROL_CODE = 0
CASE_CODE = 1


@dataclass(frozen=True, eq=False)
class Label:
    """
    Per-sample ground truth.

    Attributes:
        values: Series indexed by sample id; 0/1 codes for binary labels,
            floats for continuous labels
        label_type: Binary or continuous
        case: Name of the case group (binary only)
        control: Name of the control group (binary only)
    """
    values: pd.Series
    label_type: LabelType
    case: Optional[str] = None
    control: Optional[str] = None

    def __post_init__(self):
        values = self.values
        if values.empty:
            raise DataError("Label contains no samples")
        if values.isnull().any():
            missing = values.index[values.isnull()].tolist()
            raise DataError(f"Label has missing values for samples: {missing[:10]}")
        if values.index.has_duplicates:
            dups = values.index[values.index.duplicated()].unique().tolist()
            raise DataError(f"Label has duplicated sample ids: {dups[:10]}")

        if self.label_type == LabelType.BINARY:
            observed = set(np.unique(values.to_numpy()))
            if not observed <= {CONTROL_CODE, CASE_CODE}:
                raise DataError(
                    f"Binary label values must be encoded as 0/1, found {sorted(observed)}"
                )
            counts = values.value_counts()
            for code in (CONTROL_CODE, CASE_CODE):
                if counts.get(code, 0) < MIN_CLASS_SIZE:
                    name = self.case if code == CASE_CODE else self.control
                    raise DataError(
                        f"Class '{name}' has {counts.get(code, 0)} samples, "
                        f"at least {MIN_CLASS_SIZE} are required"
                    )
            object.__setattr__(self, 'values', values.astype(int))
        else:
            object.__setattr__(self, 'values', values.astype(float))

    @property
    def is_binary(self) -> bool:
        return self.label_type == LabelType.BINARY

    @property
    def samples(self) -> List[str]:
        return self.values.index.tolist()

    @property
    def n_case(self) -> int:
        if not self.is_binary:
            return 0
        return int((self.values == CASE_CODE).sum())

    @property
    def n_control(self) -> int:
        if not self.is_binary:
            return 0
        return int((self.values == CONTROL_CODE).sum())

    def class_counts(self) -> Dict[Any, int]:
        """Number of samples per class name (binary labels only)."""
        if not self.is_binary:
            raise DataError("class_counts() is only defined for binary labels")
        return {self.control: self.n_control, self.case: self.n_case}

    def subset(self, samples: List[str]) -> 'Label':
        """Return a new label restricted to the given samples."""
        missing = [s for s in samples if s not in self.values.index]
        if missing:
            raise DataError(f"Samples without label: {missing[:10]}")
        return Label(self.values.loc[list(samples)], self.label_type, self.case, self.control)

    def __len__(self) -> int:
        return len(self.values)


def create_label(
    metadata: pd.DataFrame,
    column: str,
    case: Optional[Any] = None,
    control: Optional[Any] = None,
    continuous: bool = False
) -> Label:
    """
    Build a label from one metadata column.

    Args:
        metadata: Sample x covariate table indexed by sample id
        column: Column holding the phenotype
        case: Value of the case group (binary labels)
        control: Value of the control group; None means every other value
        continuous: Build a continuous label instead of a binary one

    Returns:
        Label object
    """
    if column not in metadata.columns:
        raise DataError(f"Column '{column}' not found in metadata")

    raw = metadata[column]
    n_missing = int(raw.isnull().sum())
    if n_missing:
        logger.warning(f"Dropping {n_missing} samples with missing '{column}' values")
        raw = raw.dropna()

    if continuous:
        try:
            values = pd.to_numeric(raw)
        except (TypeError, ValueError) as e:
            raise DataError(f"Column '{column}' is not numeric: {e}") from e
        logger.info(f"Created continuous label from '{column}' with {len(values)} samples")
        return Label(values.astype(float), LabelType.CONTINUOUS)

    if case is None:
        raise ConfigurationError("A case value is required for binary labels")
    if case not in set(raw.unique()):
        raise DataError(f"Case value '{case}' not present in column '{column}'")

    if control is None:
        control_name = "rest"
        kept = raw
    else:
        if control not in set(raw.unique()):
            raise DataError(f"Control value '{control}' not present in column '{column}'")
        control_name = control
        kept = raw[raw.isin([case, control])]
        n_dropped = len(raw) - len(kept)
        if n_dropped:
            logger.info(f"Dropping {n_dropped} samples that are neither '{case}' nor '{control}'")

    values = pd.Series(
        np.where(kept == case, CASE_CODE, CONTROL_CODE),
        index=kept.index,
        name=column
    )
    label = Label(values, LabelType.BINARY, case=str(case), control=str(control_name))
    logger.info(
        f"Created binary label: {label.n_case} '{label.case}' vs {label.n_control} '{label.control}'"
    )
    return label


def label_from_series(
    values: pd.Series,
    case: Optional[Any] = None,
    control: Optional[Any] = None
) -> Label:
    """
    Build a label from a series of raw values.

    A series with exactly two distinct values becomes a binary label (the
    sorted second value is the case unless given); a numeric series with more
    values becomes a continuous label.
    """
    values = values.dropna()
    distinct = sorted(values.unique().tolist(), key=str)
    if len(distinct) == 2 or case is not None:
        if case is None:
            case = distinct[1]
        if control is None:
            others = [v for v in distinct if v != case]
            if len(others) != 1:
                raise DataError(f"Expected exactly two label values, found {distinct}")
            control = others[0]
        frame = values.to_frame('label')
        return create_label(frame, 'label', case=case, control=control)
    if pd.api.types.is_numeric_dtype(values):
        return Label(values.astype(float), LabelType.CONTINUOUS)
    raise DataError(f"Cannot infer label type from values {distinct[:10]}")
