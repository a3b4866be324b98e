"""Titanic walkthrough: feature engineering and imputation inside pipelines.

A random forest cannot handle the missing ages, fares and embarkation
ports, so this script first shows the failure, then builds a graph that
extracts titles, decks and family sizes, imputes numeric features from a
histogram next to missing-value indicators, gives factors a new level for
missing values, and benchmarks the result against simpler pipelines.

Run:
    python -m examples.titanic_pipelines
"""

from tabular_bench import (
    GraphLearner,
    LearnerError,
    benchmark,
    benchmark_grid,
    gunion,
    lrn,
    msrs,
    po,
    rsmp,
    selector_invert,
    selector_name,
    tsk,
)
from tabular_bench.data import extract_deck, extract_title, family_size


def feature_engineering():
    """Titles, decks and family size, with the free-text columns dropped afterwards."""
    return (
        po("mutate", mutation={
            "title": lambda df: extract_title(df["name"]),
            "deck": lambda df: extract_deck(df["cabin"]),
            "family_size": lambda df: family_size(df["sibsp"], df["parch"]),
        })
        >> po("select", selector=selector_invert(selector_name("name", "ticket", "cabin")))
        >> po("collapsefactors", target_level_count=5, affect_columns=selector_name("title", "deck"))
        >> po("fixfactors")
    )


def main(task=None, seed: int = 42, num_trees: int = 100):
    task = task if task is not None else tsk("titanic")
    print(task)
    missings = task.missings()
    print("Missing values:")
    print(missings[missings > 0])

    ranger = lrn("classif.ranger", num_trees=num_trees, seed=seed)
    plain_task = task.clone().select(["pclass", "sex", "age", "sibsp", "parch", "fare", "embarked"])
    try:
        ranger.train(plain_task)
    except LearnerError as e:
        print(f"Training on incomplete data fails: {e.message}")

    imputed_forest = GraphLearner(
        feature_engineering()
        >> gunion([po("imputehist", seed=seed), po("missind")])
        >> po("featureunion")
        >> po("imputenewlvl")
        >> lrn("classif.ranger", num_trees=num_trees, seed=seed),
        id="ranger.imputed",
    )
    sampled_tree = GraphLearner(
        feature_engineering() >> po("imputesample", seed=seed) >> lrn("classif.rpart"),
        id="rpart.imputesample",
    )
    imputed_log_reg = GraphLearner(
        feature_engineering() >> po("imputemedian") >> po("imputemode") >> lrn("classif.log_reg"),
        id="log_reg.imputed",
    )

    learners = [lrn("classif.featureless"), sampled_tree, imputed_log_reg, imputed_forest]
    design = benchmark_grid(task, learners, rsmp("cv", folds=3), seed=seed)
    bmr = benchmark(design)

    measures = msrs(["classif.ce", "classif.acc"])
    aggregate = bmr.aggregate(measures)
    print("Benchmark:")
    print(aggregate[["learner_id", "classif.ce", "classif.acc"]])
    print("Best learner:")
    print(bmr.best("classif.ce")[["task_id", "learner_id", "classif.ce"]])

    imputed_forest.train(task)
    newdata = task.data(rows=task.row_ids[:5], cols=task.feature_names)
    print("Predictions for the first passengers:")
    print(imputed_forest.predict_newdata(newdata).as_data_frame())

    return {"benchmark_result": bmr, "aggregate": aggregate, "learner": imputed_forest}


if __name__ == "__main__":
    main()
