"""
Holdout prediction pipeline for metaPredictor.

Applies every cross-validation model to an external data set, normalizing it
with the frozen training parameters, and evaluates the predictions when the
holdout label is known.
"""

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from metaPredictor.core.exceptions import ConfigurationError, DataError
from metaPredictor.core.model_trainer import ModelList
from metaPredictor.core.predictor import make_predictions
from metaPredictor.data.features import FeatureSet
from metaPredictor.data.label import Label
from metaPredictor.data.loader import DataLoader
from metaPredictor.evaluation.metrics import BinaryEvaluation, RegressionEvaluation, evaluate_predictions
from metaPredictor.pipelines.build import BUNDLE_VERSION, PipelineResult
from metaPredictor.utils.helpers import ensure_directory, load_object, save_json
from metaPredictor.utils.logger import get_logger, setup_logging

logger = get_logger("PredictPipeline")


@dataclass(frozen=True, eq=False)
class HoldoutResult:
    """Holdout predictions (``Model_1..M`` columns) and their evaluation if labelled."""
    predictions: pd.DataFrame
    evaluation: Optional[Union[BinaryEvaluation, RegressionEvaluation]] = None


def predict_holdout(
    result_or_models: Union[PipelineResult, ModelList],
    holdout: FeatureSet,
    normalize_holdout: bool = True,
    label: Optional[Label] = None
) -> HoldoutResult:
    """
    Predict an external data set with the models of a run.

    Args:
        result_or_models: PipelineResult or its ModelList
        holdout: Holdout FeatureSet (original variant)
        normalize_holdout: Apply the frozen training normalization
        label: Holdout label; enables evaluation of the labelled samples

    Returns:
        HoldoutResult
    """
    models = result_or_models.models if isinstance(result_or_models, PipelineResult) else result_or_models
    predictions = make_predictions(models, holdout=holdout, normalize_holdout=normalize_holdout)

    evaluation = None
    if label is not None:
        if label.label_type != models.label_type:
            raise DataError(
                f"Holdout label is {label.label_type.value} but the models predict "
                f"{models.label_type.value} labels"
            )
        labelled = set(label.samples)
        scored = predictions.loc[[s for s in predictions.index if s in labelled]]
        evaluation = evaluate_predictions(scored, label)
    return HoldoutResult(predictions=predictions, evaluation=evaluation)


def load_bundle(path: Union[str, Path]) -> ModelList:
    """Read the ModelList from a model bundle written by the build command."""
    path = Path(path)
    if path.is_dir():
        path = path / "model_bundle.joblib"
    if not path.exists():
        raise FileNotFoundError(f"Model bundle not found: {path}")
    bundle = load_object(path)
    if not isinstance(bundle, dict) or 'models' not in bundle:
        raise DataError(f"{path} is not a metaPredictor model bundle")
    if bundle.get('version') != BUNDLE_VERSION:
        raise DataError(f"Unsupported model bundle version {bundle.get('version')} in {path}")
    return bundle['models']


def _stored_control(models: ModelList) -> Optional[str]:
    if models.control is None or models.control == "rest":
        return None
    return models.control


def handle_predict(args: argparse.Namespace) -> None:
    """处理predict命令：加载模型包，预测外部数据并可选地评估。"""
    output_dir = ensure_directory(args.output)
    setup_logging("DEBUG" if getattr(args, 'verbose', False) else "INFO", log_file=output_dir / "predict.log")

    models = load_bundle(args.bundle)
    logger.info(f"已加载 {len(models)} 个 '{models.method}' 模型")

    loader = DataLoader()
    label = None
    if args.label_column:
        if not args.metadata_file:
            raise ConfigurationError("--label_column needs --metadata_file")
        holdout, label, _ = loader.load_data(
            feature_file=args.feature_file,
            metadata_file=args.metadata_file,
            label_column=args.label_column,
            case=args.case if args.case is not None else models.case,
            control=args.control if args.control is not None else _stored_control(models),
            continuous=not models.is_binary,
            transpose=args.transpose
        )
    else:
        holdout = loader.load_features(args.feature_file, transpose=args.transpose)

    result = predict_holdout(models, holdout, normalize_holdout=args.normalize_holdout, label=label)
    result.predictions.to_csv(output_dir / "holdout_predictions.tsv", sep='\t', index_label='sample')
    if result.evaluation is not None:
        save_json(result.evaluation.summary(), output_dir / "holdout_evaluation.json")
    logger.info(f"Holdout predictions written to {output_dir}")
