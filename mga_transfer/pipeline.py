"""
End-to-end transfer run: environment -> perturbation sets -> patched conics
-> numerical reconciliation -> output artifacts.
"""
import logging
import time
from dataclasses import dataclass, field
from mga_transfer.dynamics.acceleration import build_perturbation_sets
from mga_transfer.environment.approximate import ApproximateEphemeris
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError
from mga_transfer.io.config import RunConfig
from mga_transfer.io.output import write_run_outputs
from mga_transfer.mission.sequence import TransferProblem
from mga_transfer.spice.manager import spice_manager
from mga_transfer.propagation.reconciler import PropagationReconciler, ReconciliationResult, monitored_bodies_for
from mga_transfer.trajectory.patched_conic import PatchedConicSolution, PatchedConicSolver

logger = logging.getLogger(__name__)

PROPAGATED_BODY = 'Spacecraft'


@dataclass(frozen=True)
class TransferRun:
    problem: TransferProblem
    solution: PatchedConicSolution
    perturbation_sets: tuple
    reconciliation: ReconciliationResult
    numerical_wall_clock: float
    output_failures: list = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.reconciliation.complete and not self.output_failures


def make_environment(config: RunConfig) -> EphemerisEnvironment:
    """Builds the ephemeris environment selected in the configuration."""
    if config.environment == 'approximate':
        return ApproximateEphemeris()
    if config.environment == 'spice':
        spice_manager.load_standard_kernels(config.kernel_dir)
        return spice_manager
    raise ConfigurationError(f"Unknown environment '{config.environment}'", quantity='environment')


def run_transfer(config: RunConfig, environment: EphemerisEnvironment = None, write_outputs: bool = True) -> TransferRun:
    """
    Designs the transfer analytically and validates it numerically.

    Args:
        config (RunConfig): Run configuration.
        environment (EphemerisEnvironment): Overrides the configured environment.
        write_outputs (bool): Write the tables to config.output_dir.

    Returns:
        TransferRun

    Raises:
        ConfigurationError, SolverConvergenceError, InfeasibleLegError: The
        analytic design failed; nothing is propagated or written.
    """
    problem = config.build_problem()
    if environment is None:
        environment = make_environment(config)

    logger.info("Transfer %s, %d legs", " -> ".join(problem.body_sequence), problem.n_legs)

    perturbation_sets = build_perturbation_sets(problem.n_legs, problem.central_body, PROPAGATED_BODY,
                                                problem.body_sequence)

    solver = PatchedConicSolver(environment, central_body=problem.central_body)
    solution = solver.solve(problem, sample_step=config.sample_step)

    reconciler = PropagationReconciler(
        environment,
        settings=config.integrator,
        monitored_bodies=monitored_bodies_for(problem.body_sequence, problem.central_body),
        max_workers=config.max_workers,
    )
    start = time.perf_counter()
    reconciliation = reconciler.reconcile(problem.legs, perturbation_sets, solution.analytic_histories)
    wall_clock = time.perf_counter() - start
    logger.info("Numerical phase took %.3f s", wall_clock)

    failures = []
    if write_outputs:
        failures = write_run_outputs(config.output_dir, solution.trajectory, solution.analytic_histories,
                                     reconciliation, wall_clock)

    return TransferRun(
        problem=problem,
        solution=solution,
        perturbation_sets=perturbation_sets,
        reconciliation=reconciliation,
        numerical_wall_clock=wall_clock,
        output_failures=failures,
    )
