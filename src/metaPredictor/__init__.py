"""
metaPredictor

Cross-validated prediction of binary and continuous phenotypes from
microbiome profiles: fold partitioning, nested model training, prediction
and evaluation.
"""

__version__ = "1.0.0"

# Core
from .core.base import FeatureType, LabelType
from .core.exceptions import (
    ConfigurationError,
    DataError,
    InternalConsistencyError,
    PipelineError,
    TrainingError,
)
from .core.data_split import DataSplit, create_data_split, reuse_data_split
from .core.model_trainer import ModelList, TrainedModel, train_model
from .core.predictor import make_predictions
from .core.feature_selector import score_features, select_features
from .core.hyperparameter_tuner import tune_hyperparameters

# Data handling
from .data.label import Label, create_label, label_from_series
from .data.features import FeatureSet
from .data.loader import DataLoader
from .data.validator import DataValidator

# Models
from .models import MODEL_REGISTRY, ModelFactory, create_model

# Preprocessing
from .preprocessing.feature_filter import filter_features
from .preprocessing.normalizer import NormParams, normalize_features

# Evaluation
from .evaluation.metrics import BinaryEvaluation, RegressionEvaluation, evaluate_predictions

# Configuration and pipelines
from .config import FeatureSelectionConfig
from .utils.config import Config, ConfigManager
from .pipelines.build import PipelineResult, run_pipeline
from .pipelines.predict import HoldoutResult, predict_holdout

__all__ = [
    # Core
    "FeatureType",
    "LabelType",
    "ConfigurationError",
    "DataError",
    "InternalConsistencyError",
    "PipelineError",
    "TrainingError",
    "DataSplit",
    "create_data_split",
    "reuse_data_split",
    "ModelList",
    "TrainedModel",
    "train_model",
    "make_predictions",
    "score_features",
    "select_features",
    "tune_hyperparameters",

    # Data
    "Label",
    "create_label",
    "label_from_series",
    "FeatureSet",
    "DataLoader",
    "DataValidator",

    # Models
    "MODEL_REGISTRY",
    "ModelFactory",
    "create_model",

    # Preprocessing
    "filter_features",
    "NormParams",
    "normalize_features",

    # Evaluation
    "BinaryEvaluation",
    "RegressionEvaluation",
    "evaluate_predictions",

    # Configuration and pipelines
    "FeatureSelectionConfig",
    "Config",
    "ConfigManager",
    "PipelineResult",
    "run_pipeline",
    "HoldoutResult",
    "predict_holdout",
]
