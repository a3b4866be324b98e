"""Unit tests for pipeline graphs and GraphLearner."""
import pytest

from tabular_bench.learners import lrn
from tabular_bench.measures import msr
from tabular_bench.pipelines import (
    Graph,
    GraphLearner,
    PipeOpLearner,
    as_graph,
    as_learner,
    gunion,
    po,
)
from tabular_bench.resampling import resample, rsmp
from tabular_bench.utils.exceptions import ConfigurationError, LearnerError, PipelineError


@pytest.fixture
def imputation_graph():
    """Histogram imputation plus missing indicators, new level for factors, then a forest."""
    return (
        gunion([po("imputehist", seed=1), po("missind")])
        >> po("featureunion")
        >> po("imputenewlvl")
        >> lrn("classif.ranger", num_trees=25, seed=1)
    )


class TestGraphConstruction:
    """Test graph combinators."""

    @pytest.mark.unit
    def test_chain(self):
        graph = po("imputehist") >> po("imputenewlvl") >> lrn("classif.rpart")
        assert isinstance(graph, Graph)
        assert graph.ids == ["imputehist", "imputenewlvl", "classif.rpart"]
        assert graph.edges == [("imputehist", "imputenewlvl", 0), ("imputenewlvl", "classif.rpart", 0)]
        assert graph.input_ids == ["imputehist"]
        assert graph.output_ids == ["classif.rpart"]
        assert isinstance(graph.pipeops["classif.rpart"], PipeOpLearner)

    @pytest.mark.unit
    def test_gunion_fan_in(self, imputation_graph):
        assert imputation_graph.input_ids == ["imputehist", "missind"]
        incoming = sorted(e[:2] for e in imputation_graph.edges if e[1] == "featureunion")
        assert incoming == [("imputehist", "featureunion"), ("missind", "featureunion")]
        assert imputation_graph.topological_order()[-1] == "classif.ranger"

    @pytest.mark.unit
    def test_fan_out(self):
        graph = po("nop") >> gunion([po("imputemean"), po("imputemedian")])
        assert sorted(e[1] for e in graph.edges) == ["imputemean", "imputemedian"]
        assert graph.output_ids == ["imputemean", "imputemedian"]

    @pytest.mark.unit
    def test_channel_mismatch(self):
        left = gunion([po("nop", id="a"), po("nop", id="b")])
        right = gunion([po("imputemean"), po("imputemedian"), po("imputemode")])
        with pytest.raises(PipelineError) as exc_info:
            left >> right
        assert exc_info.value.error_code == "CHANNEL_MISMATCH"

    @pytest.mark.unit
    def test_duplicate_ids(self):
        with pytest.raises(PipelineError) as exc_info:
            po("imputemean") >> po("imputemean")
        assert exc_info.value.error_code == "DUPLICATE_PIPEOP_ID"
        graph = po("imputemean") >> po("imputemean", id="imputemean2")
        assert graph.ids == ["imputemean", "imputemean2"]

    @pytest.mark.unit
    def test_cycle_rejected(self):
        graph = Graph().add_pipeop(po("nop", id="a")).add_pipeop(po("nop", id="b"))
        graph.add_edge("a", "b")
        with pytest.raises(PipelineError) as exc_info:
            graph.add_edge("b", "a")
        assert exc_info.value.error_code == "GRAPH_CYCLE"

    @pytest.mark.unit
    def test_occupied_input_and_learner_source(self):
        graph = as_graph(po("nop", id="a")).add_pipeop(po("nop", id="b")).add_pipeop(po("imputemean"))
        graph.add_edge("a", "imputemean")
        with pytest.raises(PipelineError) as exc_info:
            graph.add_edge("b", "imputemean")
        assert exc_info.value.error_code == "INPUT_OCCUPIED"

        learner_graph = po("nop") >> lrn("classif.rpart")
        learner_graph.add_pipeop(po("imputemean"))
        with pytest.raises(PipelineError) as exc_info:
            learner_graph.add_edge("classif.rpart", "imputemean")
        assert exc_info.value.error_code == "INVALID_EDGE"

    @pytest.mark.unit
    def test_combinators_copy_operators(self):
        op = po("imputemean")
        graph = op >> lrn("classif.rpart")
        assert graph.pipeops["imputemean"] is not op

    @pytest.mark.unit
    def test_param_values(self):
        graph = po("imputehist") >> lrn("classif.rpart")
        assert graph.param_values["classif.rpart.cp"] == 0.01
        graph.set_params(**{"classif.rpart.cp": 0.05, "imputehist.seed": 3})
        assert graph.pipeops["classif.rpart"].learner.param_values["cp"] == 0.05
        assert graph.pipeops["imputehist"].param_values["seed"] == 3
        with pytest.raises(ConfigurationError) as exc_info:
            graph.set_params(**{"ranger.num_trees": 5})
        assert exc_info.value.error_code == "UNKNOWN_GRAPH_PARAMETER"

    @pytest.mark.unit
    def test_summary(self, imputation_graph):
        summary = imputation_graph.summary()
        assert list(summary.columns) == ["id", "class", "inputs", "outputs"]
        row = summary.set_index("id").loc["featureunion"]
        assert row["inputs"] == "imputehist, missind"
        assert "<Graph> with 5 PipeOps" in repr(imputation_graph)


class TestGraphExecution:
    """Test training and prediction through graphs."""

    @pytest.mark.unit
    def test_train_and_predict(self, titanic_model_task):
        graph = po("imputehist", seed=1) >> po("imputenewlvl") >> lrn("classif.log_reg")
        assert graph.train(titanic_model_task) == [None]
        assert graph.is_trained
        prediction = graph.predict(titanic_model_task)[0]
        assert len(prediction) == titanic_model_task.nrow

    @pytest.mark.unit
    def test_preprocessing_graph_outputs_tasks(self, titanic_model_task):
        graph = gunion([po("imputehist", seed=1), po("missind")]) >> po("featureunion")
        out = graph.train(titanic_model_task)[0]
        assert "missing_age" in out.feature_names
        assert out.missings()["age"] == 0

    @pytest.mark.unit
    def test_predict_untrained(self, titanic_model_task):
        with pytest.raises(PipelineError) as exc_info:
            (po("imputemean") >> lrn("classif.rpart")).predict(titanic_model_task)
        assert exc_info.value.error_code == "GRAPH_NOT_TRAINED"

    @pytest.mark.unit
    def test_empty_graph(self, titanic_model_task):
        with pytest.raises(PipelineError):
            Graph().train(titanic_model_task)


class TestGraphLearner:
    """Test graphs used as learners."""

    @pytest.mark.unit
    def test_construction(self, imputation_graph):
        learner = GraphLearner(imputation_graph)
        assert learner.id == "imputehist.missind.featureunion.imputenewlvl.classif.ranger"
        assert "missings" in learner.properties
        assert learner.param_values["classif.ranger.num_trees"] == 25
        assert not learner.is_trained

    @pytest.mark.unit
    def test_graph_must_end_in_learner(self):
        with pytest.raises(PipelineError) as exc_info:
            GraphLearner(po("imputemean") >> po("imputenewlvl"))
        assert exc_info.value.error_code == "INVALID_GRAPH_LEARNER"

    @pytest.mark.unit
    def test_predict_type(self, imputation_graph):
        learner = GraphLearner(imputation_graph, id="ranger_imputed", predict_type="prob")
        assert learner.id == "ranger_imputed"
        assert learner.base_learner.predict_type == "prob"
        with pytest.raises(ConfigurationError):
            learner.predict_type = "se"

    @pytest.mark.unit
    def test_train_predict_on_missing_data(self, imputation_graph, titanic_model_task):
        learner = GraphLearner(imputation_graph, predict_type="prob")
        rows = titanic_model_task.row_ids
        learner.train(titanic_model_task, row_ids=rows[:160])
        prediction = learner.predict(titanic_model_task, row_ids=rows[160:])

        assert prediction.row_ids == rows[160:]
        assert list(prediction.prob.columns) == ["yes", "no"]
        assert 0.0 <= prediction.score(msr("classif.ce"))["classif.ce"] <= 1.0

    @pytest.mark.unit
    def test_preprocessing_sees_training_rows_only(self, titanic_model_task):
        learner = GraphLearner(po("scale") >> lrn("classif.rpart"))
        rows = titanic_model_task.row_ids[:100]
        learner.train(titanic_model_task, row_ids=rows)
        center = learner.graph.pipeops["scale"].state["center"]
        expected = titanic_model_task.data(rows=rows, cols=["age"])["age"].mean()
        assert center["age"] == pytest.approx(expected)

    @pytest.mark.unit
    def test_original_learner_untouched(self, titanic_model_task):
        ranger = lrn("classif.ranger", num_trees=10)
        learner = as_learner(po("imputehist") >> po("imputenewlvl") >> ranger)
        learner.train(titanic_model_task)
        assert not ranger.is_trained

    @pytest.mark.unit
    def test_without_imputation_fails(self, titanic_model_task):
        learner = GraphLearner(po("nop") >> lrn("classif.ranger", num_trees=10))
        with pytest.raises(LearnerError) as exc_info:
            learner.train(titanic_model_task)
        assert exc_info.value.error_code == "MISSINGS_NOT_SUPPORTED"

    @pytest.mark.unit
    def test_resample(self, imputation_graph, titanic_model_task):
        learner = GraphLearner(imputation_graph)
        rr = resample(titanic_model_task, learner, rsmp("cv", folds=3), seed=1)
        scores = rr.score(msr("classif.ce"))
        assert len(scores) == 3
        assert scores["classif.ce"].between(0.0, 1.0).all()
        assert not learner.is_trained

    @pytest.mark.unit
    def test_bootstrap_with_repeated_rows(self, titanic_model_task):
        learner = GraphLearner(po("imputemedian") >> po("imputemode") >> lrn("classif.log_reg"))
        rr = resample(titanic_model_task, learner, rsmp("bootstrap", repeats=2), seed=1)
        assert rr.iters == 2

    @pytest.mark.unit
    def test_importance_from_base_learner(self, titanic_model_task):
        learner = GraphLearner(po("imputemedian") >> lrn("classif.rpart"))
        learner.train(titanic_model_task)
        importance = learner.importance()
        assert set(importance.index) == set(titanic_model_task.feature_names)

    @pytest.mark.unit
    def test_predict_newdata(self, titanic_frame, titanic_model_task):
        learner = GraphLearner(po("imputehist", seed=1) >> po("imputenewlvl") >> lrn("classif.rpart"))
        learner.train(titanic_model_task)
        newdata = titanic_frame.head(10).drop(columns=["survived"])
        prediction = learner.predict_newdata(newdata)
        assert len(prediction) == 10
        assert not prediction.has_truth

    @pytest.mark.unit
    def test_as_learner_passes_learners_through(self):
        learner = lrn("classif.rpart")
        assert as_learner(learner) is learner
        assert isinstance(as_learner(po("nop") >> learner), GraphLearner)
