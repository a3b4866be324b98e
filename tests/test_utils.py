"""Unit tests for exceptions, timing and error handling utilities."""
import time

import pytest

from tabular_bench.utils.exceptions import (
    TabularBenchError,
    ConfigurationError,
    LearnerError,
    PipelineError,
    handle_and_reraise,
    validate_parameter,
    create_error_context,
)
from tabular_bench.utils.timer import (
    timer,
    timed_operation,
    get_performance_stats,
    reset_performance_stats,
    performance_summary,
)
from tabular_bench.utils.error_handling import (
    ErrorHandler,
    learner_operation_context,
    pipeline_operation_context,
    handle_errors,
)
from tabular_bench.utils.exceptions import PerformanceError


class TestExceptions:
    """Test the exception hierarchy."""

    @pytest.mark.unit
    def test_str_includes_code_and_context(self):
        err = LearnerError("Training failed", error_code="TRAIN_FAILED", context={"task_id": "titanic"})
        text = str(err)
        assert text.startswith("[TRAIN_FAILED] Training failed")
        assert "task_id=titanic" in text

    @pytest.mark.unit
    def test_subclasses_share_base(self):
        for cls in (ConfigurationError, LearnerError, PipelineError):
            assert issubclass(cls, TabularBenchError)

    @pytest.mark.unit
    def test_handle_and_reraise_chains_original(self):
        with pytest.raises(LearnerError) as exc_info:
            try:
                raise ValueError("bad input")
            except ValueError as e:
                handle_and_reraise(e, LearnerError, "Wrapped", error_code="WRAPPED")

        err = exc_info.value
        assert err.error_code == "WRAPPED"
        assert err.context["original_error"] == "bad input"
        assert err.context["original_error_type"] == "ValueError"
        assert isinstance(err.__cause__, ValueError)

    @pytest.mark.unit
    def test_validate_parameter(self):
        validate_parameter("folds", 5, min_value=2)
        validate_parameter("method", "mode", valid_values=["mode", "sample"])
        validate_parameter("optional", None)

        with pytest.raises(ConfigurationError, match="must be >= 2"):
            validate_parameter("folds", 1, min_value=2)
        with pytest.raises(ConfigurationError, match="must be <= 1"):
            validate_parameter("ratio", 1.5, max_value=1)
        with pytest.raises(ConfigurationError) as exc_info:
            validate_parameter("method", "median", valid_values=["mode", "sample"])
        assert exc_info.value.error_code == "PARAM_INVALID_VALUE"
        with pytest.raises(ConfigurationError) as exc_info:
            validate_parameter("key", None, required=True)
        assert exc_info.value.error_code == "PARAM_REQUIRED"

    @pytest.mark.unit
    def test_create_error_context_stringifies_objects(self):
        class Holder:
            pass

        context = create_error_context(n=3, obj=Holder())
        assert context["n"] == 3
        assert isinstance(context["obj"], str)


class TestTimer:
    """Test timing functionality."""

    @pytest.mark.unit
    def test_timer_decorator_records_stats(self):
        reset_performance_stats("unit_sleep")

        @timer(name="unit_sleep")
        def sleepy():
            time.sleep(0.01)
            return 42

        assert sleepy() == 42
        stats = get_performance_stats("unit_sleep")
        assert stats["call_count"] == 1
        assert stats["total_time"] > 0
        summary = performance_summary()
        assert "unit_sleep" in summary.index
        assert summary.loc["unit_sleep", "median_time"] == pytest.approx(stats["total_time"])

    @pytest.mark.unit
    def test_timed_operation_fills_duration(self):
        with timed_operation("unit_block", log_result=False) as timing:
            time.sleep(0.01)
        assert timing["duration"] > 0

    @pytest.mark.unit
    def test_timed_operation_timeout(self):
        with pytest.raises(PerformanceError):
            with timed_operation("too_slow", log_result=False, timeout=0.001):
                time.sleep(0.02)


class TestErrorHandling:
    """Test operation contexts wrapping external failures."""

    @pytest.mark.unit
    def test_external_errors_become_learner_errors(self):
        with pytest.raises(LearnerError) as exc_info:
            with learner_operation_context("train", "classif.rpart", user_data={"task_id": "german_credit"}):
                raise ValueError("Input contains NaN")

        err = exc_info.value
        assert err.error_code == "TRAIN_FAILED"
        assert err.context["task_id"] == "german_credit"
        assert err.context["component"] == "classif.rpart"
        assert "Recovery suggestions" in err.message

    @pytest.mark.unit
    def test_package_errors_pass_through(self):
        with pytest.raises(ConfigurationError):
            with learner_operation_context("train", "classif.rpart"):
                raise ConfigurationError("unchanged")

    @pytest.mark.unit
    def test_pipeline_context_reraises_as_pipeline_error(self):
        with pytest.raises(PipelineError):
            with pipeline_operation_context("train", "imputehist"):
                raise KeyError("age")

    @pytest.mark.unit
    def test_operation_type_mapping(self):
        handler = ErrorHandler("component")
        assert handler._determine_exception_type("predict") is LearnerError
        assert handler._determine_exception_type("graph train") is LearnerError
        assert handler._determine_exception_type("config load") is ConfigurationError

    @pytest.mark.unit
    def test_handle_errors_decorator_uses_object_id(self):
        class Component:
            id = "classif.demo"

            @handle_errors(operation_name="predict")
            def run(self):
                raise RuntimeError("boom")

        with pytest.raises(LearnerError, match="classif.demo"):
            Component().run()
