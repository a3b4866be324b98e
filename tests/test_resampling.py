"""Unit tests for resampling schemes and resample()."""
import numpy as np
import pandas as pd
import pytest

from tabular_bench.data import ClassificationTask
from tabular_bench.learners import lrn
from tabular_bench.measures import msr
from tabular_bench.resampling import (
    ResamplingCV,
    ResamplingRepeatedCV,
    resample,
    rsmp,
    rsmps,
)
from tabular_bench.utils.exceptions import ConfigurationError, ResamplingError


class TestSchemes:
    """Test train/test split generation."""

    @pytest.mark.unit
    def test_cv_test_sets_partition_rows(self, german_task):
        cv = rsmp("cv", folds=4).instantiate(german_task, seed=1)
        tested = []
        for i in range(cv.iters):
            train, test = set(cv.train_set(i)), set(cv.test_set(i))
            assert not train & test
            assert train | test == set(german_task.row_ids)
            tested.extend(test)
        assert sorted(tested) == sorted(german_task.row_ids)
        assert all(len(cv.test_set(i)) == 60 for i in range(4))

    @pytest.mark.unit
    def test_instantiation_is_reproducible(self, german_task):
        a = rsmp("cv", folds=3).instantiate(german_task, seed=5)
        b = rsmp("cv", folds=3).instantiate(german_task, seed=5)
        assert a.test_set(0) == b.test_set(0)

    @pytest.mark.unit
    def test_holdout_ratio(self, german_task):
        holdout = rsmp("holdout", ratio=0.75).instantiate(german_task, seed=1)
        assert holdout.iters == 1
        assert len(holdout.train_set(0)) == 180
        assert len(holdout.test_set(0)) == 60

    @pytest.mark.unit
    def test_holdout_empty_split(self, small_numeric_task):
        with pytest.raises(ResamplingError) as exc_info:
            rsmp("holdout", ratio=0.999).instantiate(small_numeric_task)
        assert exc_info.value.error_code == "EMPTY_SPLIT"

    @pytest.mark.unit
    def test_bootstrap_tests_out_of_bag(self, german_task):
        boot = rsmp("bootstrap", repeats=3).instantiate(german_task, seed=2)
        for i in range(3):
            train = boot.train_set(i)
            assert len(train) == german_task.nrow
            assert len(set(train)) < len(train)
            assert not set(train) & set(boot.test_set(i))

    @pytest.mark.unit
    def test_repeated_cv(self, german_task):
        rcv = rsmp("repeated_cv", folds=3, repeats=2).instantiate(german_task, seed=3)
        assert isinstance(rcv, ResamplingRepeatedCV)
        assert rcv.iters == 6
        assert rcv.repeats(4) == 1
        assert rcv.folds(4) == 1
        second = [r for i in range(3, 6) for r in rcv.test_set(i)]
        assert sorted(second) == sorted(german_task.row_ids)

    @pytest.mark.unit
    def test_subsampling_and_insample(self, german_task):
        sub = rsmp("subsampling", repeats=4, ratio=0.5).instantiate(german_task, seed=1)
        assert sub.iters == 4
        assert len(sub.test_set(3)) == 120
        ins = rsmp("insample").instantiate(german_task)
        assert ins.train_set(0) == ins.test_set(0) == german_task.row_ids

    @pytest.mark.unit
    def test_stratified_cv_keeps_class_ratio(self, german_task):
        cv = rsmp("cv", folds=4, stratify=True).instantiate(german_task, seed=1)
        truth = german_task.truth()
        overall = (truth == "good").mean()
        for i in range(cv.iters):
            fold = truth.loc[cv.test_set(i)]
            assert (fold == "good").mean() == pytest.approx(overall, abs=0.02)

    @pytest.mark.unit
    def test_custom_sets(self, german_task):
        custom = rsmp("custom").instantiate(german_task, train_sets=[[0, 1, 2]], test_sets=[[3, 4]])
        assert custom.iters == 1
        assert custom.test_set(0) == [3, 4]
        with pytest.raises(ResamplingError):
            rsmp("custom").instantiate(german_task, train_sets=[[0]], test_sets=[[9999]])

    @pytest.mark.unit
    def test_uninstantiated_access(self):
        with pytest.raises(ResamplingError) as exc_info:
            rsmp("cv", folds=3).train_set(0)
        assert exc_info.value.error_code == "NOT_INSTANTIATED"

    @pytest.mark.unit
    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError):
            rsmp("loo")
        with pytest.raises(ConfigurationError):
            rsmp("cv", folds=1)
        with pytest.raises(ConfigurationError) as exc_info:
            rsmp("cv", ratio=0.5)
        assert exc_info.value.error_code == "UNKNOWN_RESAMPLING_PARAMETER"

    @pytest.mark.unit
    def test_as_data_frame(self, small_numeric_task):
        cv = rsmp("cv", folds=2).instantiate(small_numeric_task, seed=1)
        df = cv.as_data_frame()
        assert set(df["set"]) == {"train", "test"}
        assert len(df) == 2 * small_numeric_task.nrow

    @pytest.mark.unit
    def test_rsmps(self):
        schemes = rsmps(["cv", "holdout"])
        assert isinstance(schemes[0], ResamplingCV)
        assert [s.id for s in schemes] == ["cv", "holdout"]


class TestStratification:
    """Test stratified splits on imbalanced classes."""

    @staticmethod
    def _imbalanced_task(n_major: int, n_minor: int) -> ClassificationTask:
        rng = np.random.default_rng(0)
        n = n_major + n_minor
        df = pd.DataFrame({
            "x": rng.normal(size=n),
            "y": pd.Categorical(["major"] * n_major + ["minor"] * n_minor, categories=["major", "minor"]),
        })
        return ClassificationTask("imbalanced", df, target="y", positive="minor")

    @pytest.mark.unit
    def test_cv_with_class_smaller_than_folds(self):
        """Three minority rows over five folds land in three different test sets."""
        task = self._imbalanced_task(27, 3)
        cv = rsmp("cv", folds=5, stratify=True).instantiate(task, seed=1)
        truth = task.truth()
        minority_per_fold = [int((truth.loc[cv.test_set(i)] == "minor").sum()) for i in range(5)]
        assert sorted(minority_per_fold) == [0, 0, 1, 1, 1]
        assert [len(cv.test_set(i)) for i in range(5)] == [6] * 5
        tested = [r for i in range(5) for r in cv.test_set(i)]
        assert sorted(tested) == sorted(task.row_ids)

    @pytest.mark.unit
    def test_stratified_folds_balance_every_class(self, german_task):
        cv = rsmp("cv", folds=7, stratify=True).instantiate(german_task, seed=3)
        truth = german_task.truth()
        for cls in german_task.class_names:
            counts = [int((truth.loc[cv.test_set(i)] == cls).sum()) for i in range(cv.iters)]
            assert max(counts) - min(counts) <= 1

    @pytest.mark.unit
    def test_holdout_single_row_class_goes_to_train(self):
        """A class with one row cannot be split and is kept for training."""
        task = self._imbalanced_task(29, 1)
        holdout = rsmp("holdout", stratify=True).instantiate(task, seed=1)
        truth = task.truth()
        assert (truth.loc[holdout.train_set(0)] == "minor").sum() == 1
        assert (truth.loc[holdout.test_set(0)] == "minor").sum() == 0
        assert len(holdout.train_set(0)) == 20
        assert len(holdout.test_set(0)) == 10

    @pytest.mark.unit
    def test_subsampling_and_bootstrap_keep_small_classes_in_train(self):
        task = self._imbalanced_task(29, 1)
        truth = task.truth()
        sub = rsmp("subsampling", repeats=3, ratio=0.5, stratify=True).instantiate(task, seed=2)
        boot = rsmp("bootstrap", repeats=3, stratify=True).instantiate(task, seed=2)
        for scheme in (sub, boot):
            for i in range(3):
                assert (truth.loc[scheme.train_set(i)] == "minor").sum() >= 1

    @pytest.mark.unit
    def test_stratified_split_still_needs_both_sets(self, small_numeric_task):
        with pytest.raises(ResamplingError) as exc_info:
            rsmp("holdout", ratio=0.999, stratify=True).instantiate(small_numeric_task)
        assert exc_info.value.error_code == "EMPTY_SPLIT"


class TestResample:
    """Test resample() and ResampleResult."""

    @pytest.mark.unit
    def test_resample_scores_every_iteration(self, german_task):
        rr = resample(german_task, lrn("classif.rpart"), rsmp("cv", folds=3), seed=1)
        scores = rr.score([msr("classif.ce"), msr("classif.acc")])
        assert list(scores["iteration"]) == [0, 1, 2]
        assert (scores["classif.ce"] + scores["classif.acc"]).to_numpy() == pytest.approx(np.ones(3))
        assert len(rr.prediction()) == german_task.nrow

    @pytest.mark.unit
    def test_macro_and_micro_aggregation(self, german_task):
        rr = resample(german_task, lrn("classif.log_reg"), rsmp("holdout"), seed=1)
        ce = rr.aggregate(msr("classif.ce"))["classif.ce"]
        assert ce == pytest.approx(rr.score()["classif.ce"].mean())

        rr = resample(german_task, lrn("classif.rpart"), rsmp("bootstrap", repeats=3), seed=1)
        micro = rr.aggregate(msr("classif.ce", average="micro"))["classif.ce"]
        assert micro == pytest.approx(msr("classif.ce").score(rr.prediction()))

    @pytest.mark.unit
    def test_learner_and_resampling_not_modified(self, german_task):
        learner = lrn("classif.rpart")
        cv = rsmp("cv", folds=3)
        rr = resample(german_task, learner, cv, seed=1)
        assert not learner.is_trained
        assert not cv.is_instantiated
        assert rr.resampling.is_instantiated
        assert all(not l.is_trained for l in rr.learners)

    @pytest.mark.unit
    def test_store_models(self, german_task):
        rr = resample(german_task, lrn("classif.rpart"), rsmp("cv", folds=3), store_models=True, seed=1)
        assert all(l.is_trained for l in rr.learners)
        assert rr.learners[0].state.n_train == len(rr.resampling.train_set(0))

    @pytest.mark.unit
    def test_instantiated_resampling_is_reused(self, german_task):
        cv = rsmp("cv", folds=3).instantiate(german_task, seed=9)
        rr = resample(german_task, lrn("classif.featureless"), cv)
        assert rr.predictions()[0].row_ids == cv.test_set(0)

    @pytest.mark.unit
    def test_task_mismatch(self, german_task, small_numeric_task):
        cv = rsmp("cv", folds=3).instantiate(small_numeric_task, seed=1)
        with pytest.raises(ResamplingError) as exc_info:
            resample(german_task, lrn("classif.featureless"), cv)
        assert exc_info.value.error_code == "TASK_MISMATCH"

    @pytest.mark.unit
    def test_parallel_matches_sequential(self, german_task):
        cv = rsmp("cv", folds=3).instantiate(german_task, seed=4)
        learner = lrn("classif.rpart", seed=1)
        sequential = resample(german_task, learner, cv).score()
        parallel = resample(german_task, learner, cv, n_jobs=2).score()
        pd.testing.assert_series_equal(sequential["classif.ce"], parallel["classif.ce"])

    @pytest.mark.unit
    def test_learner_errors_propagate(self, titanic_model_task):
        from tabular_bench.utils.exceptions import LearnerError

        with pytest.raises(LearnerError):
            resample(titanic_model_task, lrn("classif.log_reg"), rsmp("holdout"), seed=1)
