"""MLflow I/O utilities for experiment tracking.

This module provides helpers for:
- Setting up MLflow tracking (local file store, Databricks, or an existing URI).
- Orchestrating MLflow runs (context manager for parent/nested runs).
- Logging parameters, metrics and per-iteration time series.
"""

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path

import mlflow

log = logging.getLogger(__name__)


def setup_mlflow_tracking(mode: str = "local"):
    """
    Configures MLflow tracking.

    Parameters
    ----------
    mode : str
        "databricks", "local" (./mlruns) or anything else to keep the
        current tracking URI.
    """
    if mode == "databricks":
        try:
            mlflow.login(backend="databricks", interactive=False)
            mlflow.set_tracking_uri("databricks")
            log.info("Connected to Databricks MLflow tracking.")
        except Exception as e:
            raise RuntimeError(
                "MLflow Databricks setup failed. Ensure credentials are configured."
            ) from e
    elif mode == "local":
        mlruns_uri = f"file://{Path.cwd() / 'mlruns'}"
        mlflow.set_tracking_uri(mlruns_uri)
        log.info(f"Using local file-based MLflow tracking backend: {mlruns_uri}")
    else:
        log.warning(f"Unknown MLflow mode '{mode}'. Using existing URI: {mlflow.get_tracking_uri()}")


def get_mlflow_client() -> mlflow.tracking.MlflowClient:
    """Get an MLflow tracking client."""
    return mlflow.tracking.MlflowClient()


@contextmanager
def start_mlflow_run_context(
    experiment_name: str,
    parent_run_name: str,
    child_run_name: str,
    project_prefix: str = "/Shared/Relaxation",
):
    """
    Context manager to start a child run nested under a (reused) parent run.
    """
    if mlflow.get_tracking_uri() == "databricks" and not experiment_name.startswith("/"):
        experiment_name = f"{project_prefix}/{experiment_name}"

    mlflow.set_experiment(experiment_name)
    exp = mlflow.get_experiment_by_name(experiment_name)
    log.info(f"Using MLflow experiment: {experiment_name}")

    client = get_mlflow_client()
    parent_runs = client.search_runs(
        experiment_ids=[exp.experiment_id],
        filter_string=f"tags.mlflow.runName = '{parent_run_name}' AND tags.is_parent = 'true'",
        max_results=1,
    )
    parent_run_id = parent_runs[0].info.run_id if parent_runs else None

    with mlflow.start_run(
        run_id=parent_run_id, run_name=parent_run_name, tags={"is_parent": "true"}
    ):
        with mlflow.start_run(run_name=child_run_name, nested=True) as child_mlflow_run:
            # Tag run with environment (HPC vs local) for easy filtering
            env = (
                "hpc"
                if os.environ.get("LSB_JOBID") or os.environ.get("SLURM_JOB_ID")
                else "local"
            )
            mlflow.set_tag("environment", env)
            log.info(f"Started MLflow run '{child_mlflow_run.info.run_name}' "
                     f"({child_mlflow_run.info.run_id}) [{env}]")
            yield child_mlflow_run


def log_parameters(params: dict):
    """Log a dictionary of parameters to the active MLflow run."""
    mlflow.log_params(params)


def log_metrics_dict(metrics: dict):
    """Log a dictionary of metrics to the active MLflow run, filtering out None values."""
    filtered_metrics = {k: v for k, v in metrics.items() if v is not None}
    mlflow.log_metrics(filtered_metrics)


def timeseries_to_metrics(timeseries_data: object, timestamp: int = 0) -> list:
    """Convert a timeseries dataclass to step-indexed MLflow Metric objects."""
    metrics = []
    for name, values in asdict(timeseries_data).items():
        for step, value in enumerate(values):
            try:
                val = float(value)
            except (ValueError, TypeError):
                continue
            metrics.append(mlflow.entities.Metric(name, val, timestamp, step))
    return metrics


def log_timeseries_metrics(timeseries_data: object):
    """Log time series data as step-based metrics to the active MLflow run."""
    if not mlflow.active_run():
        return
    client = get_mlflow_client()
    run_id = mlflow.active_run().info.run_id
    metrics_to_log = timeseries_to_metrics(timeseries_data, int(time.time() * 1000))
    for i in range(0, len(metrics_to_log), 1000):
        chunk = metrics_to_log[i : i + 1000]
        client.log_batch(run_id=run_id, metrics=chunk, synchronous=True)
    if metrics_to_log:
        log.info(f"Logged {len(metrics_to_log)} time-series metrics.")
