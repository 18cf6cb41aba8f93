"""
Model-specific configurations for metaPredictor.

One entry per model family: the label types it supports, its fixed
hyperparameters and the parameters tuned by the inner search unless a
``param_set`` overrides them.
"""

from typing import Any, Dict, List

MODEL_CONFIGS: Dict[str, Dict[str, Any]] = {
    "lasso": {
        "description": "L1-penalized path model (logistic or Gaussian)",
        "label_types": ["binary", "continuous"],
        "hyperparameters": {
            "n_lambda": 100,
            "standardize": True,
            "max_iter": 5000
        },
        "tuned": []
    },

    "enet": {
        "description": "Elastic-net path model with tuned mixing parameter",
        "label_types": ["binary", "continuous"],
        "hyperparameters": {
            "n_lambda": 10,
            "standardize": True,
            "max_iter": 5000
        },
        "tuned": ["l1_ratio"]
    },

    "ridge": {
        "description": "L2-penalized path model (logistic or Gaussian)",
        "label_types": ["binary", "continuous"],
        "hyperparameters": {
            "n_lambda": 100,
            "standardize": True,
            "max_iter": 5000
        },
        "tuned": []
    },

    "lasso_ll": {
        "description": "L1-penalized logistic regression (liblinear) with tuned cost",
        "label_types": ["binary"],
        "hyperparameters": {
            "class_weights": (5.0, 1.0),
            "tol": 1e-8
        },
        "tuned": ["C"]
    },

    "ridge_ll": {
        "description": "L2-penalized logistic regression (liblinear) with tuned cost",
        "label_types": ["binary"],
        "hyperparameters": {
            "class_weights": (5.0, 1.0),
            "tol": 1e-8
        },
        "tuned": ["C"]
    },

    "randomforest": {
        "description": "Random forest classifier or regressor",
        "label_types": ["binary", "continuous"],
        "hyperparameters": {
            "min_samples_leaf": 1,
            "n_jobs": 1
        },
        "tuned": ["n_estimators", "max_features"]
    }
}


def get_model_config(model_name: str) -> Dict[str, Any]:
    """Return the configuration of a canonical model family name."""
    if model_name not in MODEL_CONFIGS:
        raise KeyError(f"No configuration for model '{model_name}'")
    return MODEL_CONFIGS[model_name]


def models_for_label_type(label_type: str) -> List[str]:
    """Model families able to learn the given label type."""
    return [name for name, cfg in MODEL_CONFIGS.items() if label_type in cfg["label_types"]]
