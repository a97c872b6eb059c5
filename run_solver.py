"""
Unified Solver Runner - runs serial, threaded or MPI relaxation from a Hydra config.

Usage:
    python run_solver.py N=128 precision=1e-4 solver=threads n_workers=8
    python run_solver.py solver=mpi n_ranks=4 N=256
    python run_solver.py N=64,128,256 solver=serial,threads --multirun
"""

import logging
import os
import subprocess
import sys

import hydra
from omegaconf import DictConfig, OmegaConf

log = logging.getLogger(__name__)

SOLVERS = ("serial", "threads", "mpi")


def _configure_logging(cfg: DictConfig):
    """Apply the 0 (ALL) .. 5 (NONE) log level to the package loggers."""
    from Relaxation import LogLevel

    level = LogLevel(cfg.get("log_level", LogLevel.INFO)).to_logging()
    for name in ("Relaxation", "utils", __name__):
        logging.getLogger(name).setLevel(level)


def _create_solver(cfg: DictConfig, **extra):
    """Create solver instance from config."""
    from Relaxation import create_solver

    return create_solver(
        cfg.solver,
        N=cfg.N,
        precision=cfg.precision,
        kernel=cfg.get("kernel", "numpy"),
        interior=cfg.get("interior", "zeros"),
        seed=cfg.get("seed", 42),
        max_iter=cfg.get("max_iter"),
        log_level=cfg.get("log_level", 2),
        experiment_name=cfg.get("experiment_name") or "default",
        **extra,
    )


def _log_results(cfg: DictConfig, solver, rank_metrics: list = None):
    """Log solver results to MLflow."""
    import pandas as pd
    import mlflow
    from utils.mlflow.io import (start_mlflow_run_context, log_parameters,
                                 log_metrics_dict, log_timeseries_metrics)

    experiment_name = solver.config.experiment_name
    run_name = f"{cfg.solver}_N{cfg.N}_w{solver.metrics.n_workers}"

    with start_mlflow_run_context(experiment_name=experiment_name,
                                  parent_run_name=f"N{cfg.N}", child_run_name=run_name):
        log_parameters(solver.config.to_mlflow())
        log_metrics_dict(solver.metrics.to_mlflow())
        log_timeseries_metrics(solver.timeseries)
        if rank_metrics:
            mlflow.log_table(pd.DataFrame(rank_metrics), artifact_file="ranks.json")


def _finish(cfg: DictConfig, solver, rank_metrics: list = None):
    """Persist and report results on the root."""
    if cfg.get("output"):
        solver.save_hdf5(cfg.output)
    if cfg.mlflow.get("enabled", False):
        _log_results(cfg, solver, rank_metrics)


@hydra.main(config_path="Experiments/hydra-conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Entry point - runs in-process or spawns MPI based on solver / n_ranks."""
    _configure_logging(cfg)
    if cfg.solver not in SOLVERS:
        log.error(f"Unknown solver: {cfg.solver}")
        sys.exit(1)

    log.info(f"{cfg.solver}, N={cfg.N}, precision={cfg.precision}")

    if cfg.solver == "mpi":
        _spawn_mpi(cfg, cfg.get("n_ranks", 1))
        return

    if cfg.get("mlflow", {}).get("enabled", False):
        from utils.mlflow.io import setup_mlflow_tracking
        setup_mlflow_tracking(mode=cfg.mlflow.mode)

    extra = {"n_workers": cfg.get("n_workers", 1)} if cfg.solver == "threads" else {}
    solver = _create_solver(cfg, **extra)
    solver.warmup()
    solver.solve()
    _finish(cfg, solver)


def _spawn_mpi(cfg: DictConfig, n_ranks: int):
    """Spawn MPI subprocess."""
    env = os.environ.copy()
    env["MPI_SUBPROCESS"] = "1"

    cmd = ["mpiexec", "-n", str(n_ranks), sys.executable, os.path.abspath(__file__)]

    # Pass config as args
    for key in ["N", "precision", "kernel", "interior", "seed", "max_iter",
                "log_level", "output", "experiment_name"]:
        val = cfg.get(key)
        if val is not None:
            cmd.append(f"{key}={val}")
    cmd.append(f"mlflow.enabled={cfg.mlflow.enabled}")
    cmd.append(f"mlflow.mode={cfg.mlflow.mode}")

    result = subprocess.run(cmd, capture_output=True, text=True, env=env)
    for line in (result.stdout or "").strip().split("\n"):
        if line:
            log.info(line)
    for line in (result.stderr or "").strip().split("\n"):
        if line:
            log.warning(line) if "error" in line.lower() else log.info(line)
    if result.returncode != 0:
        log.error(f"mpiexec exited with code {result.returncode}")
        sys.exit(result.returncode)


def _run_mpi_solver(cfg: DictConfig, comm):
    """Run MPI solver (called within mpiexec subprocess)."""
    rank = comm.Get_rank()

    if rank == 0 and cfg.mlflow.enabled:
        from utils.mlflow.io import setup_mlflow_tracking
        setup_mlflow_tracking(mode=cfg.mlflow.mode)

    solver = _create_solver(cfg, comm=comm)
    solver.warmup()
    solver.solve()
    rank_metrics = solver.gather_metrics()

    if rank == 0:
        _finish(cfg, solver, rank_metrics)


def _parse_overrides(args: list) -> dict:
    """Parse key=value args (dotted keys nest) into a dict."""
    cfg_dict = {}
    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, val = arg.split("=", 1)
            d = cfg_dict
            for k in key.split(".")[:-1]:
                d = d.setdefault(k, {})
            d[key.split(".")[-1]] = _parse_scalar(val)
    return cfg_dict


def _parse_scalar(val: str):
    literals = {"true": True, "false": False, "null": None, "none": None}
    if val.lower() in literals:
        return literals[val.lower()]
    for cast in (int, float):
        try:
            return cast(val)
        except ValueError:
            continue
    return val


if __name__ == "__main__":
    if os.environ.get("MPI_SUBPROCESS"):
        from mpi4py import MPI

        overrides = _parse_overrides(sys.argv[1:])
        level = overrides.get("log_level", 2)

        from Relaxation import LogLevel
        logging.basicConfig(level=LogLevel(level).to_logging(),
                            format=f"[%(levelname)s] rank {MPI.COMM_WORLD.Get_rank()}: %(message)s")

        cfg = OmegaConf.create({"solver": "mpi", "mlflow": {"enabled": False, "mode": "local"}})
        cfg = OmegaConf.merge(cfg, OmegaConf.create(overrides))
        _run_mpi_solver(cfg, MPI.COMM_WORLD)
    else:
        main()
