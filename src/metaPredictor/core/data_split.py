"""
Fold partitioner for metaPredictor.

Splits the labelled samples into K folds x R resamples. Ungrouped splits use
scikit-learn's repeated (stratified) K-fold splitters; splits that must keep
inseparable groups together assign whole groups to folds.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import RepeatedKFold, RepeatedStratifiedKFold

from .exceptions import ConfigurationError, DataError, InternalConsistencyError
from ..data.label import Label
from ..utils.logger import get_logger

logger = get_logger(__name__)

Folds = Tuple[Tuple[Tuple[str, ...], ...], ...]


@dataclass(frozen=True, eq=False)
class DataSplit:
    """
    Train/test sample sets for every (fold, resample) pair.

    ``training_folds[r][f]`` and ``test_folds[r][f]`` hold the sample ids of
    fold ``f`` in resample ``r``. Models are addressed by the linear index
    ``fold * num_resample + resample``.
    """
    num_folds: int
    num_resample: int
    training_folds: Folds
    test_folds: Folds
    stratified: bool = True
    inseparable: Optional[str] = None
    random_state: Optional[int] = None

    @property
    def n_models(self) -> int:
        return self.num_folds * self.num_resample

    @property
    def samples(self) -> List[str]:
        """All samples covered by the split, in fold order of the first resample."""
        return [s for fold in self.test_folds[0] for s in fold]

    def model_index(self, fold: int, resample: int) -> int:
        return fold * self.num_resample + resample

    def iter_instances(self) -> Iterator[Tuple[int, int, int]]:
        """Yield ``(index, fold, resample)`` in fold-then-resample order."""
        for fold in range(self.num_folds):
            for resample in range(self.num_resample):
                yield self.model_index(fold, resample), fold, resample

    def train_samples(self, fold: int, resample: int) -> List[str]:
        return list(self.training_folds[resample][fold])

    def test_samples(self, fold: int, resample: int) -> List[str]:
        return list(self.test_folds[resample][fold])

    def fold_of(self, resample: int) -> pd.Series:
        """Fold number of every sample within one resample."""
        assignment = {
            sample: fold
            for fold, members in enumerate(self.test_folds[resample])
            for sample in members
        }
        return pd.Series(assignment, name=f"resample_{resample}")

    def validate(self, label: Optional[Label] = None) -> None:
        """
        Re-check the partition invariants.

        Raises:
            InternalConsistencyError: If a fold overlaps another, misses samples
                or mixes train and test samples
        """
        expected = set(label.samples) if label is not None else set(self.samples)
        for resample in range(self.num_resample):
            seen = set()
            for fold in range(self.num_folds):
                test = set(self.test_folds[resample][fold])
                train = set(self.training_folds[resample][fold])
                if test & seen:
                    raise InternalConsistencyError(
                        f"Test folds overlap in resample {resample} (fold {fold})"
                    )
                seen |= test
                if train & test:
                    raise InternalConsistencyError(
                        f"Train and test sets overlap in fold {fold}, resample {resample}"
                    )
                if train | test != expected:
                    raise InternalConsistencyError(
                        f"Train and test sets of fold {fold}, resample {resample} "
                        f"do not cover all labelled samples"
                    )
            if seen != expected:
                raise InternalConsistencyError(
                    f"Test folds of resample {resample} do not cover all labelled samples"
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'num_folds': self.num_folds,
            'num_resample': self.num_resample,
            'training_folds': [[list(f) for f in r] for r in self.training_folds],
            'test_folds': [[list(f) for f in r] for r in self.test_folds],
            'stratified': self.stratified,
            'inseparable': self.inseparable,
            'random_state': self.random_state,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DataSplit':
        return cls(
            num_folds=int(data['num_folds']),
            num_resample=int(data['num_resample']),
            training_folds=_freeze(data['training_folds']),
            test_folds=_freeze(data['test_folds']),
            stratified=bool(data.get('stratified', True)),
            inseparable=data.get('inseparable'),
            random_state=data.get('random_state'),
        )


def _freeze(folds: Sequence[Sequence[Sequence[str]]]) -> Folds:
    return tuple(tuple(tuple(fold) for fold in resample) for resample in folds)


def create_data_split(
    label: Label,
    num_folds: int = 5,
    num_resample: int = 1,
    stratify: bool = True,
    inseparable: Optional[str] = None,
    metadata: Optional[pd.DataFrame] = None,
    random_state: Optional[int] = 42
) -> DataSplit:
    """
    Partition the labelled samples into cross-validation folds.

    Args:
        label: Label object; every labelled sample is partitioned
        num_folds: Number of folds K (2 <= K <= number of samples)
        num_resample: Number of independent resamplings R
        stratify: Preserve the class proportions in every test fold (binary labels)
        inseparable: Metadata column whose values must not be split across folds
        metadata: Sample x covariate table, required with ``inseparable``
        random_state: Seed for reproducible partitions

    Returns:
        DataSplit object

    Raises:
        ConfigurationError: For invalid fold/resample counts or impossible
            stratification/grouping
        DataError: If grouping information is missing for some samples
    """
    n_samples = len(label)
    if num_folds < 2:
        raise ConfigurationError(f"num_folds must be >= 2, got {num_folds}")
    if num_resample < 1:
        raise ConfigurationError(f"num_resample must be >= 1, got {num_resample}")
    if num_folds > n_samples:
        raise ConfigurationError(
            f"num_folds ({num_folds}) cannot exceed the number of labelled samples ({n_samples})"
        )

    stratify = bool(stratify and label.is_binary)
    if num_folds == n_samples:
        logger.info(f"num_folds equals the number of samples: leave-one-out with {num_resample} resample(s)")

    if inseparable is not None:
        groups = _group_keys(label, inseparable, metadata)
        test_folds = _grouped_folds(label, groups, num_folds, num_resample, stratify, random_state)
    else:
        test_folds = _ungrouped_folds(label, num_folds, num_resample, stratify, random_state)

    samples = label.samples
    training_folds = []
    for resample_folds in test_folds:
        training = []
        for fold in resample_folds:
            held_out = set(fold)
            training.append(tuple(s for s in samples if s not in held_out))
        training_folds.append(tuple(training))

    split = DataSplit(
        num_folds=num_folds,
        num_resample=num_resample,
        training_folds=tuple(training_folds),
        test_folds=test_folds,
        stratified=stratify,
        inseparable=inseparable,
        random_state=random_state,
    )
    split.validate(label)
    if label.is_binary:
        _check_training_classes(split, label)

    logger.info(
        f"Created data split: {num_folds} folds x {num_resample} resample(s), "
        f"stratified={stratify}, inseparable={inseparable}"
    )
    return split


def _ungrouped_folds(
    label: Label,
    num_folds: int,
    num_resample: int,
    stratify: bool,
    random_state: Optional[int]
) -> Folds:
    samples = np.asarray(label.samples, dtype=object)
    y = label.values.to_numpy()
    leave_one_out = num_folds == len(samples)

    if stratify and not leave_one_out:
        smallest = int(np.bincount(y).min())
        if smallest < num_folds:
            raise ConfigurationError(
                f"Stratification impossible: the smallest class has {smallest} samples "
                f"for {num_folds} folds"
            )
        splitter = RepeatedStratifiedKFold(
            n_splits=num_folds, n_repeats=num_resample, random_state=random_state
        )
    else:
        if stratify:
            logger.info("Leave-one-out split: stratification has no effect")
        splitter = RepeatedKFold(
            n_splits=num_folds, n_repeats=num_resample, random_state=random_state
        )

    folds: List[List[Tuple[str, ...]]] = [[] for _ in range(num_resample)]
    for split_idx, (_, test_idx) in enumerate(splitter.split(np.zeros((len(samples), 1)), y)):
        resample = split_idx // num_folds
        folds[resample].append(tuple(samples[np.sort(test_idx)].tolist()))
    return tuple(tuple(r) for r in folds)


def _group_keys(label: Label, inseparable: str, metadata: Optional[pd.DataFrame]) -> pd.Series:
    if metadata is None:
        raise ConfigurationError("Metadata is required to split by an inseparable column")
    if inseparable not in metadata.columns:
        raise ConfigurationError(f"Inseparable column '{inseparable}' not found in metadata")
    missing = [s for s in label.samples if s not in metadata.index]
    if missing:
        raise DataError(f"Samples missing from the metadata: {missing[:10]}")
    groups = metadata.loc[label.samples, inseparable]
    if groups.isnull().any():
        raise DataError(
            f"Samples without a value in inseparable column '{inseparable}': "
            f"{groups.index[groups.isnull()].tolist()[:10]}"
        )
    return groups


def _grouped_folds(
    label: Label,
    groups: pd.Series,
    num_folds: int,
    num_resample: int,
    stratify: bool,
    random_state: Optional[int]
) -> Folds:
    """
    Assign whole groups to folds.

    Groups are visited in a seeded random order, largest first, and each goes
    to the fold holding the fewest samples. When stratifying, the fold with
    the fewest samples of the group's class wins instead; a group's class is
    the label of its first member, which is only an approximation for groups
    mixing both classes.
    """
    members: Dict[Any, List[str]] = {}
    for sample, key in groups.items():
        members.setdefault(key, []).append(sample)
    keys = list(members)
    n_groups = len(keys)
    if n_groups < num_folds:
        raise ConfigurationError(
            f"Only {n_groups} inseparable groups for {num_folds} folds"
        )

    sizes = np.array([len(members[k]) for k in keys])
    classes = np.array([label.values[members[k][0]] for k in keys]) if stratify else np.zeros(n_groups, int)
    n_classes = int(classes.max()) + 1

    seeds = np.random.SeedSequence(random_state).spawn(num_resample)
    folds = []
    for resample in range(num_resample):
        rng = np.random.default_rng(seeds[resample])
        order = rng.permutation(n_groups)
        order = order[np.argsort(-sizes[order], kind='stable')]

        fold_total = np.zeros(num_folds, dtype=int)
        fold_class = np.zeros((n_classes, num_folds), dtype=int)
        assignment: List[List[str]] = [[] for _ in range(num_folds)]
        for g in order:
            c = classes[g]
            # lexsort sorts by the last key first
            target = int(np.lexsort((np.arange(num_folds), fold_total, fold_class[c]))[0])
            assignment[target].extend(members[keys[g]])
            fold_total[target] += sizes[g]
            fold_class[c, target] += sizes[g]

        sample_order = {s: i for i, s in enumerate(label.samples)}
        folds.append(tuple(
            tuple(sorted(fold, key=sample_order.__getitem__)) for fold in assignment
        ))
    return tuple(folds)


def _check_training_classes(split: DataSplit, label: Label) -> None:
    """Every training set must contain both classes."""
    for _, fold, resample in split.iter_instances():
        train = split.train_samples(fold, resample)
        present = set(label.values.loc[train].unique())
        if len(present) < 2:
            raise ConfigurationError(
                f"Training set of fold {fold + 1}, resample {resample + 1} lacks one of the classes"
            )


def reuse_data_split(split: DataSplit, label: Label) -> DataSplit:
    """
    Copy an existing split onto another label over the same samples.

    Used to evaluate competing setups (e.g. with and without feature
    selection) on identical folds.
    """
    split_samples = set(split.samples)
    label_samples = set(label.samples)
    if split_samples != label_samples:
        only_split = sorted(split_samples - label_samples)[:10]
        only_label = sorted(label_samples - split_samples)[:10]
        raise DataError(
            f"Data split is not compatible with the label "
            f"(only in split: {only_split}, only in label: {only_label})"
        )
    copied = replace(split)
    copied.validate(label)
    if label.is_binary:
        _check_training_classes(copied, label)
    return copied
