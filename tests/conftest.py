"""Test configuration for pytest."""
import os
from pathlib import Path
from typing import Any, Dict

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from tabular_bench.data.task import ClassificationTask


def make_german_credit_frame(n_samples: int = 240, seed: int = 42) -> pd.DataFrame:
    """Synthetic stand-in for the German credit data with a real signal."""
    rng = np.random.default_rng(seed)

    status = rng.choice(["<0", "0<=X<200", ">=200", "no checking"], n_samples, p=[0.3, 0.25, 0.1, 0.35])
    purpose = rng.choice(["new car", "used car", "radio/tv", "education", "business"], n_samples)
    savings = rng.choice(["<100", "100<=X<500", ">=1000", "no known savings"], n_samples)
    duration = rng.integers(4, 72, n_samples)
    credit_amount = rng.integers(250, 15000, n_samples)
    age = rng.integers(19, 75, n_samples)
    installment_rate = rng.uniform(1, 4, n_samples)

    logit = (
        -0.8
        + 1.6 * (status == "no checking")
        - 1.0 * (status == "<0")
        - 0.03 * (duration - 20)
        + 0.02 * (age - 35)
        + 0.5 * (savings == "no known savings")
    )
    good = rng.random(n_samples) < 1 / (1 + np.exp(-logit))

    return pd.DataFrame({
        "status": pd.Categorical(status),
        "duration": duration.astype("int64"),
        "credit_amount": credit_amount.astype("int64"),
        "purpose": pd.Categorical(purpose),
        "savings": pd.Categorical(savings),
        "age": age.astype("int64"),
        "installment_rate": installment_rate,
        "credit_risk": pd.Categorical(np.where(good, "good", "bad"), categories=["good", "bad"]),
    })


def make_titanic_frame(n_samples: int = 240, seed: int = 7) -> pd.DataFrame:
    """Synthetic stand-in for the Titanic passenger data, missing values included."""
    rng = np.random.default_rng(seed)

    pclass = rng.choice(["1", "2", "3"], n_samples, p=[0.25, 0.25, 0.5])
    sex = rng.choice(["female", "male"], n_samples, p=[0.35, 0.65])
    titles = np.where(sex == "female", rng.choice(["Mrs", "Miss", "Mlle"], n_samples),
                      rng.choice(["Mr", "Master", "Dr"], n_samples, p=[0.8, 0.15, 0.05]))
    surnames = rng.choice(["Smith", "Brown", "Kelly", "Andersson", "Sage"], n_samples)
    name = [f"{s}, {t}. John" for s, t in zip(surnames, titles)]
    age = rng.uniform(1, 70, n_samples).round(0)
    age[rng.random(n_samples) < 0.2] = np.nan
    fare = rng.gamma(2.0, 15.0, n_samples)
    fare[rng.random(n_samples) < 0.02] = np.nan
    sibsp = rng.integers(0, 4, n_samples)
    parch = rng.integers(0, 3, n_samples)
    embarked = rng.choice(["S", "C", "Q"], n_samples).astype(object)
    embarked[rng.random(n_samples) < 0.05] = np.nan
    cabin = np.array([f"{d}{rng.integers(1, 120)}" for d in rng.choice(list("ABCDE"), n_samples)], dtype=object)
    cabin[rng.random(n_samples) < 0.7] = np.nan
    ticket = rng.choice(["A/5 21171", "PC 17599", "113803", "STON/O2. 3101282", "349909"], n_samples)

    logit = 1.2 * (sex == "female") - 0.8 * (pclass == "3") + 0.6 * (pclass == "1") - 0.5
    survived = rng.random(n_samples) < 1 / (1 + np.exp(-logit))

    return pd.DataFrame({
        "survived": pd.Categorical(np.where(survived, "yes", "no"), categories=["yes", "no"]),
        "pclass": pd.Categorical(pclass, categories=["1", "2", "3"], ordered=True),
        "name": pd.Series(name, dtype=object),
        "sex": pd.Categorical(sex),
        "age": age,
        "sibsp": sibsp.astype("int64"),
        "parch": parch.astype("int64"),
        "ticket": pd.Series(ticket, dtype=object),
        "fare": fare,
        "cabin": pd.Series(cabin, dtype=object),
        "embarked": pd.Categorical(embarked),
    })


@pytest.fixture(scope="session")
def german_credit_frame() -> pd.DataFrame:
    return make_german_credit_frame()


@pytest.fixture(scope="session")
def titanic_frame() -> pd.DataFrame:
    return make_titanic_frame()


@pytest.fixture
def german_task(german_credit_frame: pd.DataFrame) -> ClassificationTask:
    """German-credit-like task without missing values, positive class ``good``."""
    return ClassificationTask("german_credit", german_credit_frame, target="credit_risk", positive="good")


@pytest.fixture
def titanic_task(titanic_frame: pd.DataFrame) -> ClassificationTask:
    """Titanic-like task with missing values and free-text columns."""
    return ClassificationTask("titanic", titanic_frame, target="survived", positive="yes")


@pytest.fixture
def titanic_model_task(titanic_task: ClassificationTask) -> ClassificationTask:
    """Titanic-like task without the free-text columns, missing values kept."""
    return titanic_task.select(["pclass", "sex", "age", "sibsp", "parch", "fare", "embarked"])


@pytest.fixture
def small_numeric_task() -> ClassificationTask:
    """Tiny fully numeric task for fast checks."""
    rng = np.random.default_rng(0)
    x1 = rng.normal(size=60)
    x2 = rng.normal(size=60)
    y = np.where(x1 + 0.5 * x2 + rng.normal(scale=0.5, size=60) > 0, "pos", "neg")
    df = pd.DataFrame({"x1": x1, "x2": x2, "y": pd.Categorical(y, categories=["pos", "neg"])})
    return ClassificationTask("small", df, target="y", positive="pos")


@pytest.fixture
def sample_config_dict() -> Dict[str, Any]:
    """Experiment configuration as it would appear in YAML."""
    return {
        "experiment_name": "unit_test",
        "tasks": ["german_credit"],
        "learners": [
            {"key": "classif.featureless"},
            {"key": "classif.rpart", "params": {"cp": 0.02}, "predict_type": "prob"},
            {
                "key": "classif.ranger",
                "id": "ranger_imputed",
                "params": {"num_trees": 20, "seed": 1},
                "pipeline": [
                    [{"key": "imputehist"}, {"key": "missind"}],
                    {"key": "featureunion"},
                    {"key": "imputenewlvl"},
                ],
            },
        ],
        "resampling": {"key": "cv", "params": {"folds": 3}},
        "measures": ["classif.ce", "classif.acc"],
        "random_state": 1,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config_dict: Dict[str, Any]) -> Path:
    """Temporary YAML config file."""
    import yaml

    config_file = tmp_path / "experiment.yaml"
    with open(config_file, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_file


@pytest.fixture(autouse=True)
def cleanup_environment():
    """Restore environment variables after each test."""
    original_env = dict(os.environ)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def close_figures():
    """Close matplotlib figures created by a test."""
    yield
    import matplotlib.pyplot as plt
    plt.close("all")


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
