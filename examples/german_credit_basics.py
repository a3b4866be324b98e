"""German credit walkthrough: one task, a few learners, resampling and a benchmark.

This script trains a logistic regression on a holdout split, inspects the
confusion matrix, cross-validates it, benchmarks it against a featureless
baseline and a random forest, and prints the forest's variable importance.

Run:
    python -m examples.german_credit_basics
"""

import numpy as np

from tabular_bench import benchmark, benchmark_grid, lrn, msr, msrs, resample, rsmp, tsk


def main(task=None, seed: int = 42, num_trees: int = 100):
    task = task if task is not None else tsk("german_credit")
    print(task)
    print(f"Missing values per column: {int(task.missings().sum())} in total")

    # Holdout: train on two thirds, predict the rest
    holdout = rsmp("holdout", ratio=2 / 3)
    holdout.instantiate(task, seed=seed)
    train_ids, test_ids = holdout.train_set(0), holdout.test_set(0)

    log_reg = lrn("classif.log_reg", predict_type="prob")
    log_reg.train(task, row_ids=train_ids)
    prediction = log_reg.predict(task, row_ids=test_ids)

    print("Confusion matrix (rows: response, columns: truth):")
    print(prediction.confusion)
    print(f"Holdout scores: {prediction.score(msrs(['classif.ce', 'classif.acc', 'classif.auc']))}")

    # Stricter cutoff for predicting a good credit risk
    strict = log_reg.predict(task, row_ids=test_ids).set_threshold(0.7)
    print(f"Accuracy at threshold 0.7: {strict.score(msr('classif.acc'))['classif.acc']:.3f}")

    # 10-fold cross-validation of the same learner
    rr = resample(task, lrn("classif.log_reg"), rsmp("cv", folds=10), seed=seed)
    scores = rr.score(msr("classif.ce"))["classif.ce"]
    print(f"CV classification error: mean {scores.mean():.3f}, sd {np.std(scores, ddof=1):.3f}")

    # Benchmark against a baseline and a random forest on identical splits
    learners = [
        lrn("classif.featureless"),
        lrn("classif.log_reg"),
        lrn("classif.ranger", num_trees=num_trees, seed=seed),
    ]
    design = benchmark_grid(task, learners, rsmp("cv", folds=5), seed=seed)
    bmr = benchmark(design)
    aggregate = bmr.aggregate(msrs(["classif.ce", "classif.acc"]))
    print("Benchmark:")
    print(aggregate[["learner_id", "classif.ce", "classif.acc"]])

    ranger = lrn("classif.ranger", num_trees=num_trees, importance="impurity", seed=seed)
    ranger.train(task)
    importance = ranger.importance()
    print("Top features by impurity importance:")
    print(importance.head(5))

    return {"prediction": prediction, "resample_result": rr, "benchmark_result": bmr, "importance": importance}


if __name__ == "__main__":
    main()
