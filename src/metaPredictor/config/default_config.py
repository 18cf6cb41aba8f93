"""
Default configuration for metaPredictor.

This module contains the default configuration settings.
"""

from typing import Dict, Any

DEFAULT_CONFIG: Dict[str, Any] = {
    # Fold partitioning
    "split": {
        "num_folds": 5,
        "num_resample": 1,
        "stratify": True,
        "inseparable": None,
        "random_state": 42
    },

    # Unsupervised feature filtering
    "filtering": {
        "method": "abundance",
        "cutoff": 0.001,
        "min_q": 0.5,
        "max_q": 0.95,
        "r_mid": 1.0,
        "steepness": 2.0
    },

    # Normalization
    "normalization": {
        "method": "log.std",
        "log_n0": 1e-6,
        "sd_min_q": 0.1,
        "n_p": 2,
        "norm_margin": 1
    },

    # Model training
    "model": {
        "method": "lasso",
        "measure": None,
        "param_set": {},
        "grid_size": 10,
        "min_nonzero_coeff": 5,
        "feature_type": "normalized",
        "search_method": "grid",
        "inner_folds": 5,
        "n_iter": 20,
        "random_state": 42,
        "n_jobs": 1
    },

    # Nested feature selection (disabled unless configured)
    "feature_selection": {
        "enabled": False,
        "method": "AUC",
        "n_features": None,
        "threshold": None,
        "direction": "absolute"
    },

    # Output and logging
    "output_dir": "./results",
    "log_level": "INFO",
    "log_file": None
}
