"""Unit tests for predictions and performance measures."""
import numpy as np
import pandas as pd
import pytest

from tabular_bench.measures import Measure, as_measures, list_measures, msr, msrs
from tabular_bench.prediction import PredictionClassif, combine_predictions
from tabular_bench.utils.exceptions import ConfigurationError, DataValidationError, MeasureError


@pytest.fixture
def binary_prediction():
    """Eight rows, positive class 'good': tp=3, fn=1, fp=1, tn=3."""
    truth = ["good", "good", "good", "good", "bad", "bad", "bad", "bad"]
    response = ["good", "good", "good", "bad", "good", "bad", "bad", "bad"]
    prob_good = [0.9, 0.8, 0.7, 0.4, 0.6, 0.3, 0.2, 0.1]
    prob = pd.DataFrame({"bad": [1 - p for p in prob_good], "good": prob_good})
    return PredictionClassif(
        row_ids=list(range(8)), truth=truth, response=response,
        class_names=["good", "bad"], prob=prob, positive="good"
    )


class TestPredictionClassif:
    """Test prediction containers."""

    @pytest.mark.unit
    def test_prob_columns_follow_class_order(self, binary_prediction):
        assert list(binary_prediction.prob.columns) == ["good", "bad"]
        assert binary_prediction.predict_types == ["response", "prob"]

    @pytest.mark.unit
    def test_confusion(self, binary_prediction):
        confusion = binary_prediction.confusion
        assert confusion.loc["good", "good"] == 3
        assert confusion.loc["good", "bad"] == 1
        assert confusion.loc["bad", "good"] == 1
        assert confusion.loc["bad", "bad"] == 3

    @pytest.mark.unit
    def test_as_data_frame(self, binary_prediction):
        df = binary_prediction.as_data_frame()
        assert list(df.columns) == ["row_ids", "truth", "response", "prob.good", "prob.bad"]

    @pytest.mark.unit
    def test_set_threshold(self, binary_prediction):
        binary_prediction.set_threshold(0.65)
        assert list(binary_prediction.response.astype(str)) == [
            "good", "good", "good", "bad", "bad", "bad", "bad", "bad"
        ]
        with pytest.raises(MeasureError):
            binary_prediction.set_threshold(1.5)

    @pytest.mark.unit
    def test_threshold_needs_probabilities(self):
        prediction = PredictionClassif([0, 1], ["a", "b"], ["a", "a"], ["a", "b"], positive="a")
        with pytest.raises(MeasureError) as exc_info:
            prediction.set_threshold(0.5)
        assert exc_info.value.error_code == "NO_PROBABILITIES"

    @pytest.mark.unit
    def test_filter_and_combine(self, binary_prediction):
        first = binary_prediction.filter([0, 1, 2])
        second = binary_prediction.filter([3, 4, 5, 6, 7])
        combined = combine_predictions([first, second])
        assert combined.row_ids == list(range(8))
        assert combined.score(msr("classif.ce"))["classif.ce"] == pytest.approx(0.25)
        with pytest.raises(DataValidationError):
            combine_predictions([])

    @pytest.mark.unit
    def test_length_mismatch(self):
        with pytest.raises(DataValidationError):
            PredictionClassif([0, 1], ["a", "b"], ["a"], ["a", "b"])


class TestMeasures:
    """Test measure values against hand-computed results."""

    @pytest.mark.unit
    @pytest.mark.parametrize("key,expected", [
        ("classif.ce", 0.25),
        ("classif.acc", 0.75),
        ("classif.bacc", 0.75),
        ("classif.tpr", 0.75),
        ("classif.tnr", 0.75),
        ("classif.fpr", 0.25),
        ("classif.fnr", 0.25),
        ("classif.precision", 0.75),
        ("classif.recall", 0.75),
        ("classif.fbeta", 0.75),
        ("classif.auc", 15 / 16),
    ])
    def test_values(self, binary_prediction, key, expected):
        assert msr(key).score(binary_prediction) == pytest.approx(expected)

    @pytest.mark.unit
    def test_brier_and_logloss(self, binary_prediction):
        prob_good = np.array([0.9, 0.8, 0.7, 0.4, 0.6, 0.3, 0.2, 0.1])
        is_good = np.array([1, 1, 1, 1, 0, 0, 0, 0])
        assert msr("classif.bbrier").score(binary_prediction) == pytest.approx(np.mean((prob_good - is_good) ** 2))
        p_true = np.where(is_good == 1, prob_good, 1 - prob_good)
        assert msr("classif.logloss").score(binary_prediction) == pytest.approx(-np.mean(np.log(p_true)))

    @pytest.mark.unit
    def test_logloss_uses_probability_of_true_class(self):
        """Log loss reads each row's probability for its own label, whatever the class order."""
        truth = ["yes", "no", "no", "yes"]
        prob_yes = [0.8, 0.3, 0.1, 0.6]
        expected = -np.mean(np.log([0.8, 0.7, 0.9, 0.6]))
        for class_names in (["yes", "no"], ["no", "yes"]):
            prob = pd.DataFrame({"yes": prob_yes, "no": [1 - p for p in prob_yes]})
            prediction = PredictionClassif(
                row_ids=list(range(4)), truth=truth, response=truth,
                class_names=class_names, prob=prob, positive="yes"
            )
            assert msr("classif.logloss").score(prediction) == pytest.approx(expected)

    @pytest.mark.unit
    def test_prob_measure_without_probabilities_is_nan(self, binary_prediction):
        binary_prediction.prob = None
        assert np.isnan(msr("classif.auc").score(binary_prediction))

    @pytest.mark.unit
    def test_binary_measure_on_multiclass(self):
        prediction = PredictionClassif([0, 1, 2], ["a", "b", "c"], ["a", "b", "b"], ["a", "b", "c"])
        with pytest.raises(MeasureError) as exc_info:
            msr("classif.tpr").score(prediction)
        assert exc_info.value.error_code == "BINARY_MEASURE_ON_MULTICLASS"
        assert msr("classif.ce").score(prediction) == pytest.approx(1 / 3)

    @pytest.mark.unit
    def test_no_truth(self):
        prediction = PredictionClassif([0, 1], None, ["a", "b"], ["a", "b"], positive="a")
        with pytest.raises(MeasureError):
            msr("classif.ce").score(prediction)

    @pytest.mark.unit
    def test_rows_without_truth_are_ignored(self):
        prediction = PredictionClassif([0, 1, 2], ["a", None, "b"], ["a", "a", "a"], ["a", "b"], positive="a")
        assert msr("classif.acc").score(prediction) == pytest.approx(0.5)

    @pytest.mark.unit
    def test_fbeta_parameter_and_overrides(self, binary_prediction):
        f2 = msr("classif.fbeta", beta=2, id="f2", average="micro")
        assert f2.id == "f2"
        assert f2.average == "micro"
        assert f2.score(binary_prediction) == pytest.approx(0.75)

    @pytest.mark.unit
    def test_unknown_measure_and_params(self):
        with pytest.raises(ConfigurationError) as exc_info:
            msr("classif.kappa")
        assert exc_info.value.error_code == "UNKNOWN_MEASURE"
        with pytest.raises(ConfigurationError):
            msr("classif.ce", beta=2)

    @pytest.mark.unit
    def test_helpers(self):
        assert [m.id for m in msrs(["classif.ce", "classif.auc"])] == ["classif.ce", "classif.auc"]
        assert [m.id for m in as_measures(None)] == ["classif.ce"]
        assert [m.id for m in as_measures("classif.acc")] == ["classif.acc"]
        custom = Measure("custom.zero", lambda *args, **kwargs: 0.0, minimize=True)
        assert as_measures([custom, "classif.ce"])[0] is custom
        table = list_measures()
        assert table.set_index("key").loc["classif.auc", "predict_type"] == "prob"
