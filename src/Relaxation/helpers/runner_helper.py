"""MPI worker - invoked via: mpiexec -n X python -m Relaxation.helpers.runner_helper '{config}'"""

import json
import logging
import sys

from mpi4py import MPI

from Relaxation import JacobiMPISolver
from Relaxation.datastructures import LogLevel


def main(argv):
    config = json.loads(argv[1])
    comm = MPI.COMM_WORLD
    log_level = config.get("log_level", int(LogLevel.WARN))

    logging.basicConfig(
        level=LogLevel(log_level).to_logging(),
        format=f"[%(levelname)s] rank {comm.Get_rank()}: %(message)s",
    )

    solver = JacobiMPISolver(
        N=config["N"],
        precision=config["precision"],
        comm=comm,
        kernel=config.get("kernel", "numpy"),
        interior=config.get("interior", "zeros"),
        seed=config.get("seed", 42),
        max_iter=config.get("max_iter"),
        log_level=log_level,
    )
    solver.warmup()
    solver.solve()

    # Save results to HDF5
    output_path = config.get("output")
    if output_path:
        solver.save_hdf5(output_path)

    if comm.Get_rank() == 0:
        # Just print the path - runner.py will load the HDF5
        print(f"RESULT:{output_path}")


if __name__ == "__main__":
    main(sys.argv)
