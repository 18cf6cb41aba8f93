"""
Build pipeline for metaPredictor.

Runs the stages split -> train -> predict -> evaluate on prepared features.
Each stage returns a new artifact that is passed explicitly to the next; an
error escaping a stage is tagged with the stage name and re-raised.
"""

import argparse
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import pandas as pd
import yaml

from metaPredictor.core.base import FeatureType
from metaPredictor.core.data_split import DataSplit, create_data_split
from metaPredictor.core.exceptions import PipelineError
from metaPredictor.core.model_trainer import ModelList, train_model
from metaPredictor.core.predictor import make_predictions
from metaPredictor.data.features import FeatureSet
from metaPredictor.data.label import Label
from metaPredictor.data.loader import DataLoader
from metaPredictor.evaluation.metrics import BinaryEvaluation, RegressionEvaluation, evaluate_predictions
from metaPredictor.preprocessing.feature_filter import filter_features
from metaPredictor.preprocessing.normalizer import normalize_features
from metaPredictor.utils.config import Config, ConfigManager
from metaPredictor.utils.helpers import ensure_directory, format_time, save_json, save_object
from metaPredictor.utils.logger import get_logger, setup_logging

BUNDLE_FILE = "model_bundle.joblib"
BUNDLE_VERSION = 1

logger = get_logger("BuildPipeline")


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """Artifacts of one pipeline run."""
    data_split: DataSplit
    models: ModelList
    predictions: pd.DataFrame
    evaluation: Union[BinaryEvaluation, RegressionEvaluation]
    config: Optional[Config] = None


def _run_stage(name: str, func: Callable, *args, **kwargs) -> Any:
    logger.info(f"Stage '{name}' started")
    start = time.time()
    try:
        result = func(*args, **kwargs)
    except PipelineError as e:
        if e.stage is None:
            e.stage = name
        raise
    logger.info(f"Stage '{name}' finished in {format_time(time.time() - start)}")
    return result


def prepare_features(features: FeatureSet, config: Config) -> FeatureSet:
    """Filter and normalize the original features as far as the model's feature type needs."""
    feature_type = FeatureType.parse(config.model.feature_type)
    if feature_type == FeatureType.ORIGINAL:
        return features
    features = _run_stage("filter", filter_features, features, **config.filter_kwargs())
    if feature_type == FeatureType.FILTERED:
        return features
    return _run_stage("normalize", normalize_features, features, **config.normalization_kwargs())


def run_pipeline(
    features: FeatureSet,
    label: Label,
    config: Optional[Config] = None,
    metadata: Optional[pd.DataFrame] = None,
    data_split: Optional[DataSplit] = None
) -> PipelineResult:
    """
    Cross-validate a model family on prepared features.

    Args:
        features: FeatureSet carrying the variant named by ``config.model.feature_type``
        label: Label over exactly the feature samples
        config: Pipeline configuration (defaults when None)
        metadata: Sample table, needed when the split keeps groups together
        data_split: Existing split to reuse instead of creating one

    Returns:
        PipelineResult
    """
    config = config or Config()
    config.validate(label.label_type)
    start = time.time()

    if data_split is None:
        data_split = _run_stage(
            "split", create_data_split, label, metadata=metadata, **config.split_kwargs()
        )
    models = _run_stage("train", train_model, features, label, data_split, **config.train_kwargs())
    predictions = _run_stage("predict", make_predictions, models, features=features, data_split=data_split)
    evaluation = _run_stage("evaluate", evaluate_predictions, predictions, label)

    logger.info(f"Pipeline finished in {format_time(time.time() - start)}")
    return PipelineResult(
        data_split=data_split,
        models=models,
        predictions=predictions,
        evaluation=evaluation,
        config=config,
    )


def save_results(result: PipelineResult, output_dir: Union[str, Path]) -> Path:
    """
    Write the artifacts of a run.

    Files: ``data_split.json``, ``predictions.tsv``, ``feature_weights.tsv``,
    ``weight_matrix.tsv``, ``evaluation.json``, ROC/PR curves (binary),
    ``config.yaml`` and the joblib model bundle.
    """
    output_dir = ensure_directory(output_dir)

    save_json(result.data_split.to_dict(), output_dir / "data_split.json")
    result.predictions.to_csv(output_dir / "predictions.tsv", sep='\t', index_label='sample')
    result.models.feature_weights().to_csv(output_dir / "feature_weights.tsv", sep='\t', index_label='feature')
    result.models.weight_matrix().to_csv(output_dir / "weight_matrix.tsv", sep='\t', index_label='feature')
    save_json(result.evaluation.summary(), output_dir / "evaluation.json")
    if isinstance(result.evaluation, BinaryEvaluation):
        result.evaluation.roc.to_frame('fpr', 'tpr').to_csv(output_dir / "roc_curve.tsv", sep='\t', index=False)
        result.evaluation.pr.to_frame('recall', 'precision').to_csv(output_dir / "pr_curve.tsv", sep='\t', index=False)

    config_data: Dict[str, Any] = result.config.to_dict() if result.config is not None else {}
    with open(output_dir / "config.yaml", 'w') as f:
        yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)

    save_object(
        {'version': BUNDLE_VERSION, 'models': result.models, 'config': config_data},
        output_dir / BUNDLE_FILE
    )
    logger.info(f"Results written to {output_dir}")
    return output_dir


def _config_overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Command line options given explicitly, as nested config sections."""
    mapping = {
        'num_folds': ('split', 'num_folds'),
        'num_resample': ('split', 'num_resample'),
        'stratify': ('split', 'stratify'),
        'inseparable': ('split', 'inseparable'),
        'filter_method': ('filtering', 'method'),
        'filter_cutoff': ('filtering', 'cutoff'),
        'norm_method': ('normalization', 'method'),
        'method': ('model', 'method'),
        'measure': ('model', 'measure'),
        'min_nonzero_coeff': ('model', 'min_nonzero_coeff'),
        'feature_type': ('model', 'feature_type'),
        'search_method': ('model', 'search_method'),
        'inner_folds': ('model', 'inner_folds'),
        'cpu': ('model', 'n_jobs'),
    }
    overrides: Dict[str, Dict[str, Any]] = {}
    for arg_name, (section, key) in mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            overrides.setdefault(section, {})[key] = value
    seed = getattr(args, 'seed', None)
    if seed is not None:
        overrides.setdefault('split', {})['random_state'] = seed
        overrides.setdefault('model', {})['random_state'] = seed
    return overrides


def handle_build(args: argparse.Namespace) -> None:
    """处理build命令：加载数据，过滤和归一化，运行交叉验证流水线并写出结果。"""
    manager = ConfigManager()
    if getattr(args, 'config', None):
        manager.load_from_file(args.config)
    manager.update_config(**_config_overrides(args))
    if getattr(args, 'output', None):
        manager.update_config(output_dir=args.output)
    config = manager.get_config()

    output_dir = ensure_directory(config.output_dir)
    setup_logging(
        "DEBUG" if getattr(args, 'verbose', False) else config.log_level,
        log_file=config.log_file or output_dir / "run.log"
    )
    logger.info("开始构建流水线...")
    logger.info(f"输出目录: {output_dir}")

    features, label, metadata = DataLoader().load_data(
        feature_file=args.feature_file,
        metadata_file=args.metadata_file,
        label_column=args.label_column,
        case=args.case,
        control=args.control,
        continuous=args.continuous,
        transpose=args.transpose
    )
    logger.info(f"数据加载完成: {len(label)} 样本, {features.shape[0]} 特征")
    if label.is_binary:
        logger.info(f"类别分布: {label.class_counts()}")

    config.validate(label.label_type)
    features = prepare_features(features, config)
    result = run_pipeline(features, label, config, metadata=metadata)
    save_results(result, output_dir)

    for key, value in result.evaluation.summary().items():
        if not isinstance(value, list):
            logger.info(f"{key}: {value:.4f}")
