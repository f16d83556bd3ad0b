"""Run a multi-leg transfer from a JSON configuration and write its tables."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

import numpy as np

from mga_transfer.exceptions import ConfigurationError, InfeasibleLegError, SolverConvergenceError
from mga_transfer.io.config import default_run_config, load_run_config
from mga_transfer.pipeline import run_transfer


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="mga_transfer")
    parser.add_argument("config", type=Path, nargs="?", default=None)
    parser.add_argument("--output", type=Path, default=None, help="output directory")
    parser.add_argument("--approximate", action="store_true", help="use the analytic planetary ephemeris")
    parser.add_argument("--kernels", type=Path, default=None, help="SPICE kernel directory")
    parser.add_argument("--workers", type=int, default=None, help="legs propagated in parallel")
    parser.add_argument("--plot", action="store_true", help="save a position-difference plot")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_run_config(args.config) if args.config is not None else default_run_config()
        overrides = {}
        if args.output is not None:
            overrides["output_dir"] = str(args.output)
        if args.approximate:
            overrides["environment"] = "approximate"
        if args.kernels is not None:
            overrides["kernel_dir"] = str(args.kernels)
        if args.workers is not None:
            if args.workers < 1:
                raise ConfigurationError("--workers must be >= 1")
            overrides["max_workers"] = args.workers
        config = dataclasses.replace(config, **overrides)

        result = run_transfer(config)
    except (ConfigurationError, SolverConvergenceError, InfeasibleLegError) as e:
        logging.getLogger("mga_transfer").error("Transfer failed: %s", e)
        return 1

    trajectory = result.solution.trajectory
    print("sequence:", " -> ".join(result.problem.body_sequence))
    print("departure dv [km/s]:", trajectory.departure_delta_v)
    for flyby in trajectory.flybys:
        print(f"flyby {flyby.body}: dv [km/s]: {flyby.delta_v:.6f}, rp [km]: {flyby.periapsis_radius:.1f}")
    print("capture dv [km/s]:", trajectory.capture_delta_v)
    print("total dv [km/s]:", trajectory.total_delta_v)
    print("numerical wall clock [s]:", result.numerical_wall_clock)
    print("legs propagated:", f"{len(result.reconciliation.legs)}/{result.problem.n_legs}")

    if args.plot and result.reconciliation.legs:
        from mga_transfer.mission.plotting import plot_position_differences
        filename = Path(config.output_dir) / "position_differences.png"
        filename.parent.mkdir(parents=True, exist_ok=True)
        plot_position_differences(result.solution.analytic_histories, result.reconciliation, str(filename))
        print("saved plot to:", filename)

    if not np.isfinite(trajectory.total_delta_v) or not result.complete:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
