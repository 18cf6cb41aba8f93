"""
Model families for metaPredictor.

The set of families is closed: ``MODEL_REGISTRY`` maps each family name to
its class and ``ModelFactory`` resolves names and aliases.
"""

from typing import Any, Dict, Optional, Type

from .base_model import BaseModel
from .elastic_net import ElasticNetModel
from .lasso import LassoModel, RidgeModel
from .linear_path import PathLinearModel, select_regularization_index
from .logistic_regression import LassoLLModel, LiblinearLogisticModel, RidgeLLModel
from .random_forest import RandomForestModel
from ..core.exceptions import ConfigurationError

MODEL_REGISTRY: Dict[str, Type[BaseModel]] = {
    'lasso': LassoModel,
    'enet': ElasticNetModel,
    'ridge': RidgeModel,
    'lasso_ll': LassoLLModel,
    'ridge_ll': RidgeLLModel,
    'randomforest': RandomForestModel,
}

MODEL_ALIASES = {
    'elasticnet': 'enet',
    'elastic_net': 'enet',
    'rf': 'randomforest',
    'random_forest': 'randomforest',
}


class ModelFactory:
    """Factory for creating models."""

    @staticmethod
    def resolve(method: str) -> str:
        """Canonical family name for a method name or alias."""
        key = str(method).lower()
        key = MODEL_ALIASES.get(key, key)
        if key not in MODEL_REGISTRY:
            raise ConfigurationError(
                f"Unknown model '{method}', currently supported: {', '.join(MODEL_REGISTRY)}"
            )
        return key

    @staticmethod
    def model_class(method: str) -> Type[BaseModel]:
        return MODEL_REGISTRY[ModelFactory.resolve(method)]

    @staticmethod
    def create_model(method: str, task: str = 'binary', params: Optional[Dict[str, Any]] = None) -> BaseModel:
        """Create an unfitted model of the given family."""
        cls = ModelFactory.model_class(method)
        if task == 'binary' and not cls.supports_binary:
            raise ConfigurationError(f"Model '{method}' does not support binary labels")
        if task == 'continuous' and not cls.supports_continuous:
            raise ConfigurationError(f"Model '{method}' does not support continuous labels")
        model = cls(task=task)
        if params:
            valid = model.get_params(deep=False)
            unknown = [k for k in params if k not in valid]
            if unknown:
                raise ConfigurationError(
                    f"Unknown parameters for model '{method}': {unknown}; valid: {sorted(valid)}"
                )
            model.set_params(**params)
        return model


def create_model(method: str, task: str = 'binary', params: Optional[Dict[str, Any]] = None) -> BaseModel:
    return ModelFactory.create_model(method, task, params)


__all__ = [
    "BaseModel",
    "PathLinearModel",
    "LassoModel",
    "RidgeModel",
    "ElasticNetModel",
    "LiblinearLogisticModel",
    "LassoLLModel",
    "RidgeLLModel",
    "RandomForestModel",
    "MODEL_REGISTRY",
    "ModelFactory",
    "create_model",
    "select_regularization_index",
]
