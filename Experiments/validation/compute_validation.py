"""
Solver Validation
=================

Run the threaded and MPI solvers against the serial reference across
grid sizes and worker counts, and save the MPI results as HDF5.
"""

import numpy as np

from Relaxation import JacobiSolver, JacobiThreadedSolver, run_solver, get_project_root

# --- Script Setup ---
repo_root = get_project_root()
data_dir = repo_root / "data" / "validation"
data_dir.mkdir(parents=True, exist_ok=True)

# Parameters
problem_sizes = [8, 16, 32]
worker_counts = [1, 2, 4]
precision = 1e-6

print("Solver Validation")
print("=" * 60)

for N in problem_sizes:
    print(f"\nN={N}")
    reference = JacobiSolver(N=N, precision=precision, interior="random")
    reference.solve()

    for n_workers in worker_counts:
        threaded = JacobiThreadedSolver(N=N, precision=precision, n_workers=n_workers, interior="random")
        threaded.solve()
        ok = np.array_equal(threaded.u, reference.u) and \
            threaded.metrics.iterations == reference.metrics.iterations
        print(f"  threads={n_workers}: {'match' if ok else 'MISMATCH'}")

        output_file = data_dir / f"N{N}_np{n_workers}.h5"
        result = run_solver(N=N, precision=precision, n_ranks=n_workers, interior="random",
                            output=str(output_file), load_grid=True)
        if "error" in result:
            print(f"  ranks={n_workers}: ERROR")
            continue
        ok = np.array_equal(result["grid"], reference.u) and \
            result["iterations"] == reference.metrics.iterations
        print(f"  ranks={n_workers}: {'match' if ok else 'MISMATCH'}")

print(f"\nSaved results to: {data_dir}")
