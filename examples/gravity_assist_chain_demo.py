import numpy as np
import os
import sys
import dataclasses
import matplotlib.pyplot as plt

# Ensure the package is importable from a source checkout
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from mga_transfer.environment.approximate import ApproximateEphemeris
from mga_transfer.io.config import default_run_config
from mga_transfer.exceptions import InfeasibleLegError, SolverConvergenceError
from mga_transfer.mission.plotting import plot_position_differences
from mga_transfer.mission.sequence import TRANSFER_CASES, transfer_body_order
from mga_transfer.pipeline import run_transfer

DAY = 86400.0


def main():
    print("Earth-Venus-X-Y-Jupiter Gravity Assist Chain")

    config = default_run_config()
    config = dataclasses.replace(config, environment='approximate', output_dir='output_demo', max_workers=4)
    environment = ApproximateEphemeris()

    print(f"Sequence: {' -> '.join(transfer_body_order(config.parameters[-1]))}")
    print(f"Available cases: {len(TRANSFER_CASES)}")

    # 1. Analytic design + numerical validation
    try:
        run = run_transfer(config, environment=environment)
    except (InfeasibleLegError, SolverConvergenceError) as e:
        print(f"Patched-conic design failed: {e}")
        return

    trajectory = run.solution.trajectory
    print(f"Departure V_inf: {trajectory.departure_delta_v:.4f} km/s "
          f"(C3 = {trajectory.departure_asymptotes['C3']:.3f} km^2/s^2)")
    for flyby in trajectory.flybys:
        print(f"  {flyby.body:8s} bending {np.degrees(flyby.bending_angle):7.3f} deg, "
              f"rp {flyby.periapsis_radius:12.1f} km, dv {flyby.delta_v * 1000:.2f} m/s")
    print(f"Capture dv: {trajectory.capture_delta_v:.4f} km/s")
    print(f"Total dv (departure excluded): {trajectory.total_delta_v:.4f} km/s")

    # 2. How far does the N-body solution drift from the conics at the leg ends?
    for index, leg in sorted(run.reconciliation.legs.items()):
        analytic = run.solution.analytic_histories[index]
        dr_start = np.linalg.norm(leg.propagated.states[0, 0:3] - analytic.states[0, 0:3])
        dr_end = np.linalg.norm(leg.propagated.states[-1, 0:3] - analytic.states[-1, 0:3])
        print(f"Leg {index}: |dr| start {dr_start:.1f} km, end {dr_end:.1f} km "
              f"({len(leg.propagated)} samples)")
    for index, error in run.reconciliation.failures.items():
        print(f"Leg {index} failed: {error}")

    print(f"Numerical phase: {run.numerical_wall_clock:.2f} s")

    # 3. Plot
    if run.reconciliation.legs:
        plot_position_differences(run.solution.analytic_histories, run.reconciliation)
        plt.show()


if __name__ == "__main__":
    main()
