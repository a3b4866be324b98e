"""End-to-end benchmark workflows.

``run_experiment`` takes a config (or a YAML path), loads the tasks, builds
the learners and resampling, runs the benchmark and optionally writes the
scores, the config and a boxplot to an output directory.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from ..benchmark import benchmark
from ..config import ExperimentConfig, build_benchmark_design, load_config, save_config
from ..data.task import ClassificationTask
from ..measures import msrs
from ..utils.error_handling import handle_errors
from ..utils.exceptions import ConfigurationError
from ..utils.logger import configure_logging, get_logger, set_log_level
from ..utils.timer import timed_operation

logger = get_logger(__name__)


@handle_errors("run experiment", component_name="Workflow")
def run_experiment(
    config: Union[ExperimentConfig, str, Path],
    tasks: Optional[Sequence[ClassificationTask]] = None,
    plot: bool = True
) -> Dict[str, Any]:
    """Run the benchmark an experiment config describes.

    Args:
        config: ExperimentConfig or path to a YAML file
        tasks: Tasks to use instead of loading ``config.tasks`` by key
        plot: Save a boxplot of the first measure when ``output_dir`` is set

    Returns:
        Dictionary with ``benchmark_result``, ``aggregate``, ``best`` and
        ``duration``

    Example:
        >>> results = run_experiment("examples/configs/german_credit.yaml")
        >>> results["aggregate"]
    """
    if isinstance(config, (str, Path)):
        config = load_config(config)
    if not isinstance(config, ExperimentConfig):
        raise ConfigurationError(
            f"Expected an ExperimentConfig or a YAML path, got {type(config).__name__}",
            error_code="INVALID_CONFIG"
        )

    if config.log_file:
        configure_logging(level=config.log_level, log_file=config.log_file, force=True)
    else:
        set_log_level(config.log_level)
    measures = msrs(config.measures)
    logger.info(f"Starting experiment '{config.experiment_name}'")

    with timed_operation(f"experiment {config.experiment_name}", log_result=False) as timing:
        design = build_benchmark_design(config, tasks)
        bmr = benchmark(design, store_models=config.store_models, n_jobs=config.n_jobs)

    aggregate = bmr.aggregate(measures)
    best = bmr.best(measures[0])
    logger.info(f"Experiment '{config.experiment_name}' finished in {timing['duration']:.1f}s")
    for row in best.to_dict("records"):
        logger.info(f"  Best on {row['task_id']}: {row['learner_id']} ({measures[0].id}={row[measures[0].id]:.4f})")

    if config.output_dir:
        output_dir = Path(config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        aggregate.to_csv(output_dir / "aggregate.csv", index=False)
        bmr.score(measures).to_csv(output_dir / "scores.csv", index=False)
        save_config(config, output_dir / "config.yaml")
        if plot:
            from ..viz import plot_benchmark
            import matplotlib.pyplot as plt

            fig = plot_benchmark(bmr, measures[0], save_path=output_dir / "benchmark.png")
            plt.close(fig)
        logger.info(f"Results saved to {output_dir}")

    return {
        "benchmark_result": bmr,
        "aggregate": aggregate,
        "best": best,
        "duration": timing["duration"],
    }
