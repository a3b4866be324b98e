"""Unit tests for tasks, dataset loaders and Titanic feature helpers."""
from types import SimpleNamespace
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from tabular_bench.data import (
    ClassificationTask,
    infer_feature_type,
    load_csv,
    load_german_credit,
    load_titanic,
    prepare_german_credit,
    prepare_titanic,
    tsk,
    extract_title,
    extract_deck,
    family_size,
    ticket_prefix,
)
from tabular_bench.learners import lrn
from tabular_bench.utils.exceptions import ConfigurationError, DataLoadingError, DataValidationError


class TestClassificationTask:
    """Test task construction, metadata and mutation."""

    @pytest.mark.unit
    def test_metadata(self, german_task):
        assert german_task.target_name == "credit_risk"
        assert "credit_risk" not in german_task.feature_names
        assert german_task.class_names == ["good", "bad"]
        assert german_task.positive == "good"
        assert german_task.negative == "bad"
        assert german_task.nrow == 240
        assert german_task.ncol == len(german_task.feature_names) + 1
        assert german_task.properties == {"twoclass"}

    @pytest.mark.unit
    def test_positive_class_reorders_levels(self, german_credit_frame):
        task = ClassificationTask("gc", german_credit_frame, target="credit_risk", positive="bad")
        assert task.class_names == ["bad", "good"]
        assert task.positive == "bad"

    @pytest.mark.unit
    def test_feature_types(self, titanic_task):
        types = dict(zip(titanic_task.feature_types["id"], titanic_task.feature_types["type"]))
        assert types["pclass"] == "ordered"
        assert types["sex"] == "factor"
        assert types["age"] == "numeric"
        assert types["sibsp"] == "integer"
        assert types["name"] == "character"

    @pytest.mark.unit
    def test_infer_feature_type_logical(self):
        assert infer_feature_type(pd.Series([True, False])) == "logical"

    @pytest.mark.unit
    def test_boolean_column_with_missing_values_is_logical(self, german_credit_frame):
        """An object column of booleans and NA is typed logical and trainable."""
        assert infer_feature_type(pd.Series([True, np.nan, False], dtype=object)) == "logical"
        assert infer_feature_type(pd.Series([None, None], dtype=object)) == "character"

        df = german_credit_frame.copy()
        flags = (df["age"] > 35).astype(object)
        flags.iloc[::7] = np.nan
        df["older"] = flags
        task = ClassificationTask("gc", df, target="credit_risk", positive="good")
        types = dict(zip(task.feature_types["id"], task.feature_types["type"]))
        assert types["older"] == "logical"
        learner = lrn("classif.rpart").train(task)
        assert len(learner.predict(task)) == task.nrow

    @pytest.mark.unit
    def test_missings_and_properties(self, titanic_task):
        missings = titanic_task.missings()
        assert missings["survived"] == 0
        assert missings["age"] > 0
        assert missings["sex"] == 0
        assert "missings" in titanic_task.properties

    @pytest.mark.unit
    def test_select_is_in_place(self, german_task):
        result = german_task.select(["age", "duration"])
        assert result is german_task
        assert german_task.feature_names == ["duration", "age"]

    @pytest.mark.unit
    def test_select_rejects_target_and_unknown(self, german_task):
        with pytest.raises(DataValidationError) as exc_info:
            german_task.select(["credit_risk"])
        assert exc_info.value.error_code == "TARGET_AS_FEATURE"
        with pytest.raises(DataValidationError):
            german_task.select(["no_such_column"])

    @pytest.mark.unit
    def test_filter_and_data(self, german_task):
        german_task.filter([0, 5, 10])
        assert german_task.row_ids == [0, 5, 10]
        data = german_task.data(cols=["age"])
        assert list(data.columns) == ["age"]
        with pytest.raises(DataValidationError):
            german_task.filter([1000])

    @pytest.mark.unit
    def test_data_returns_copy(self, german_task):
        data = german_task.data()
        data["age"] = -1
        assert (german_task.data(cols=["age"])["age"] >= 0).all()

    @pytest.mark.unit
    def test_cbind_and_rename(self, german_task):
        extra = pd.DataFrame({"age_squared": german_task.data(cols=["age"])["age"] ** 2})
        german_task.cbind(extra)
        assert "age_squared" in german_task.feature_names
        german_task.rename({"age_squared": "age2"})
        assert "age2" in german_task.feature_names
        with pytest.raises(DataValidationError):
            german_task.cbind(pd.DataFrame({"x": [1, 2]}))

    @pytest.mark.unit
    def test_subset_with_repeated_rows(self, german_task):
        subset = german_task.subset([0, 0, 1])
        assert subset.nrow == 3
        assert subset.row_ids == [0, 1, 2]
        assert german_task.nrow == 240

    @pytest.mark.unit
    def test_clone_is_independent(self, german_task):
        clone = german_task.clone()
        clone.select(["age"])
        assert len(german_task.feature_names) > 1

    @pytest.mark.unit
    def test_invalid_construction(self, german_credit_frame):
        with pytest.raises(DataValidationError) as exc_info:
            ClassificationTask("gc", german_credit_frame, target="missing")
        assert exc_info.value.error_code == "TARGET_NOT_FOUND"
        with pytest.raises(DataValidationError) as exc_info:
            ClassificationTask("gc", german_credit_frame, target="credit_risk", positive="maybe")
        assert exc_info.value.error_code == "INVALID_POSITIVE_CLASS"
        with pytest.raises(DataValidationError):
            ClassificationTask("gc", german_credit_frame.assign(credit_risk="good"), target="credit_risk")

    @pytest.mark.unit
    def test_repr(self, german_task):
        text = repr(german_task)
        assert "<ClassificationTask:german_credit>" in text
        assert "positive: good" in text


class TestDatasets:
    """Test dataset loaders without network access."""

    @staticmethod
    def _raw_credit_frame() -> pd.DataFrame:
        return pd.DataFrame({
            "checking_status": ["<0", "no checking", "0<=X<200"],
            "duration": [6.0, 48.0, 12.0],
            "credit_amount": [1169.0, 5951.0, 2096.0],
            "age": [67.0, 22.0, 49.0],
            "class": ["good", "bad", "good"],
        })

    @staticmethod
    def _raw_titanic_frame() -> pd.DataFrame:
        return pd.DataFrame({
            "pclass": [1.0, 3.0, 2.0],
            "survived": ["1", "0", "1"],
            "name": ["Allen, Miss. Elisabeth", "Braund, Mr. Owen", "Hewlett, Mrs. Mary"],
            "sex": ["female", "male", "female"],
            "age": [29.0, np.nan, 55.0],
            "sibsp": [0.0, 1.0, 0.0],
            "parch": [0.0, 0.0, 0.0],
            "ticket": ["24160", "A/5 21171", "248706"],
            "fare": [211.3, 7.25, 16.0],
            "cabin": ["B5", None, None],
            "embarked": ["S", "S", None],
            "boat": ["2", None, None],
            "body": [np.nan, np.nan, np.nan],
            "home.dest": ["St Louis, MO", None, None],
        })

    @pytest.mark.unit
    def test_prepare_german_credit(self):
        df = prepare_german_credit(self._raw_credit_frame())
        assert "credit_risk" in df.columns and "class" not in df.columns
        assert list(df["credit_risk"].cat.categories) == ["good", "bad"]
        assert df["duration"].dtype == np.int64
        assert isinstance(df["checking_status"].dtype, pd.CategoricalDtype)

    @pytest.mark.unit
    def test_prepare_german_credit_string_dtype_columns(self):
        """Columns stored with pandas' string dtype become factors too."""
        raw = self._raw_credit_frame()
        raw["checking_status"] = raw["checking_status"].astype("string")
        raw["class"] = raw["class"].astype("string")
        df = prepare_german_credit(raw)
        assert isinstance(df["checking_status"].dtype, pd.CategoricalDtype)
        task = ClassificationTask("gc", df, target="credit_risk", positive="good")
        types = dict(zip(task.feature_types["id"], task.feature_types["type"]))
        assert types["checking_status"] == "factor"
        assert task.class_names == ["good", "bad"]

    @pytest.mark.unit
    def test_prepare_titanic(self):
        df = prepare_titanic(self._raw_titanic_frame())
        assert not {"boat", "body", "home.dest"} & set(df.columns)
        assert list(df["survived"]) == ["yes", "no", "yes"]
        assert df["pclass"].dtype.ordered
        assert list(df["pclass"].astype(str)) == ["1", "3", "2"]
        assert df["age"].isna().sum() == 1
        assert df["embarked"].isna().sum() == 1
        assert df["name"].dtype == object

    @pytest.mark.unit
    def test_load_german_credit_uses_openml(self):
        bunch = SimpleNamespace(frame=self._raw_credit_frame())
        with patch("tabular_bench.data.datasets.fetch_openml", return_value=bunch) as fetch:
            df = load_german_credit()
        assert fetch.call_args.kwargs["name"] == "credit-g"
        assert len(df) == 3

    @pytest.mark.unit
    def test_tsk_titanic(self):
        bunch = SimpleNamespace(frame=self._raw_titanic_frame())
        with patch("tabular_bench.data.datasets.fetch_openml", return_value=bunch):
            task = tsk("titanic")
        assert task.id == "titanic"
        assert task.positive == "yes"
        assert "missings" in task.properties

    @pytest.mark.unit
    def test_fetch_failure_is_wrapped(self):
        with patch("tabular_bench.data.datasets.fetch_openml", side_effect=OSError("offline")):
            with pytest.raises(DataLoadingError) as exc_info:
                load_titanic()
        assert exc_info.value.error_code == "OPENML_FETCH_FAILED"

    @pytest.mark.unit
    def test_unknown_task_key(self):
        with pytest.raises(ConfigurationError):
            tsk("iris")

    @pytest.mark.unit
    def test_load_csv(self, tmp_path):
        path = tmp_path / "credit.csv"
        pd.DataFrame({
            "grade": ["low", "high", "mid"],
            "amount": [1, 2, 3],
            "risk": ["good", "bad", "good"],
        }).to_csv(path, index=False)

        df = load_csv(path, target="risk", ordered={"grade": ["low", "mid", "high"]})
        assert isinstance(df["risk"].dtype, pd.CategoricalDtype)
        assert df["grade"].dtype.ordered

        with pytest.raises(DataLoadingError):
            load_csv(path, target="nope")
        with pytest.raises(DataLoadingError):
            load_csv(tmp_path / "absent.csv", target="risk")


class TestTitanicFeatures:
    """Test feature-engineering helpers."""

    @pytest.mark.unit
    def test_extract_title(self):
        names = pd.Series(["Braund, Mr. Owen Harris", "Heikkinen, Mlle. Laina", "Rothes, the Countess. of"])
        assert list(extract_title(names).astype(str)) == ["Mr", "Miss", "Rare"]

    @pytest.mark.unit
    def test_extract_deck(self):
        decks = extract_deck(pd.Series(["C85", None, "E46 E48"]))
        assert list(decks.astype(str)) == ["C", "unknown", "E"]

    @pytest.mark.unit
    def test_family_size(self):
        result = family_size(pd.Series([1, 0]), pd.Series([2, 0]))
        assert list(result) == [4, 1]

    @pytest.mark.unit
    def test_ticket_prefix(self):
        prefixes = ticket_prefix(pd.Series(["A/5 21171", "113803", "STON/O2. 3101282"]))
        assert list(prefixes.astype(str)) == ["A5", "none", "STONO2"]
