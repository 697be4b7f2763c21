"""Fixtures shared by the smoke tests."""

import pathlib

import joblib
import numpy as np
import pytest
from sklearn import ensemble, tree

STAGE3_FEATURES = ["sd_vm", "mean_enmo", "step2_estimate"]


@pytest.fixture
def models_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A directory with the four classifiers trained on toy features."""
    directory = tmp_path / "models"
    directory.mkdir()
    rng = np.random.default_rng(0)
    sd_vm = np.concatenate([rng.uniform(0, 0.05, 20), rng.uniform(0.3, 0.7, 20)])
    enmo = np.concatenate([rng.uniform(0, 0.01, 20), rng.uniform(0.1, 0.4, 20)])
    step2_code = np.repeat([1, 2], 20)
    active = np.repeat([False, True], 20)

    stage2 = tree.DecisionTreeClassifier(random_state=0).fit(
        sd_vm.reshape(-1, 1), np.where(active, "Active", "Stationary")
    )
    joblib.dump(
        {"model": stage2, "feature_columns": ["sd_vm"]},
        directory / "stage2_binary.joblib",
    )

    stage3_input = np.column_stack([sd_vm, enmo, step2_code])
    targets = {
        "stage3_intensity": np.where(active, 3, 1),
        "stage3_type": np.where(active, "Walking", "Sitting_Lying"),
        "stage3_locomotion": np.where(active, "Locomotion", "Non-locomotion"),
    }
    for model_id, target in targets.items():
        model = ensemble.RandomForestClassifier(n_estimators=5, random_state=0)
        joblib.dump(
            {
                "model": model.fit(stage3_input, target),
                "feature_columns": STAGE3_FEATURES,
            },
            directory / f"{model_id}.joblib",
        )
    return directory
