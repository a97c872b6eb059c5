"""Run the MPI relaxation solver via mpiexec subprocess."""

import json
import subprocess
import sys
import tempfile
from pathlib import Path


def run_solver(N: int, precision: float, n_ranks: int = 1, output: str = None,
               load_grid: bool = False, **kwargs) -> dict:
    """Run the MPI solver on an N x N grid with n_ranks processes.

    Parameters
    ----------
    N : int
        Grid size
    precision : float
        Convergence threshold per cell
    n_ranks : int
        Number of MPI ranks
    output : str, optional
        Path to save HDF5 results (uses temp file if not provided)
    load_grid : bool
        Also return the final grid under the 'grid' key
    **kwargs
        Extra options: kernel, interior, seed, max_iter, log_level

    Returns
    -------
    dict
        Results with config and metrics (or 'error' key on failure)
    """
    import pandas as pd

    # Use temp file if no output path specified
    use_temp = output is None
    if use_temp:
        tmp = tempfile.NamedTemporaryFile(suffix='.h5', delete=False)
        output = tmp.name
        tmp.close()

    config = {"N": N, "precision": precision, "output": output, **kwargs}
    cmd = ["mpiexec", "-n", str(n_ranks), sys.executable,
           "-m", "Relaxation.helpers.runner_helper", json.dumps(config)]

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)

        if proc.returncode != 0:
            return {"error": proc.stderr}

        # Load results from HDF5
        if not Path(output).exists() or Path(output).stat().st_size == 0:
            return {"error": "No output file created", "stderr": proc.stderr}

        result = pd.read_hdf(output, key='results').iloc[0].to_dict()
        if load_grid:
            result["grid"] = pd.read_hdf(output, key='grid').to_numpy()
        return result
    finally:
        # Clean up temp file if we created one
        if use_temp:
            Path(output).unlink(missing_ok=True)
