import logging
import numpy as np
from dataclasses import dataclass, field
from multiprocessing.pool import ThreadPool
from typing import Sequence
from mga_transfer.dynamics.acceleration import PerturbationSet
from mga_transfer.dynamics.nbody import NBodyDynamics
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError, IntegrationError
from mga_transfer.mission.sequence import Leg
from mga_transfer.propagation.history import DependentVariableHistory, StateHistory
from mga_transfer.propagation.integrator import IntegratorSettings, propagate_arc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciledLeg:
    """Numerical counterpart of one analytic leg."""
    leg_index: int
    seed_epoch: float
    seed_state: np.ndarray = field(compare=False)
    backward: StateHistory = field(compare=False)
    forward: StateHistory = field(compare=False)
    propagated: StateHistory = field(compare=False)
    dependent_variables: DependentVariableHistory = field(compare=False)


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Successful legs keyed by leg index, and the IntegrationError of every
    leg that could not be propagated.
    """
    legs: dict
    failures: dict

    @property
    def complete(self) -> bool:
        return not self.failures


def monitored_bodies_for(body_sequence: Sequence[str], central_body: str = 'Sun') -> tuple:
    """Unique bodies of the sequence in order of first appearance, then the central body."""
    bodies = []
    for body in body_sequence:
        if body not in bodies and body != central_body:
            bodies.append(body)
    return tuple(bodies) + (central_body,)


class PropagationReconciler:
    """
    Validates an analytic transfer with numerical integration.

    Each leg is seeded at its time midpoint with the interpolated analytic
    state and integrated backward to its start and forward to its end under the
    leg's perturbation set. Legs are independent and run in a thread pool.
    """

    def __init__(self, environment: EphemerisEnvironment, settings: IntegratorSettings = None,
                 monitored_bodies: Sequence[str] = ('Sun',), max_workers: int = 1, frame: str = 'ECLIPJ2000'):
        if int(max_workers) < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {max_workers}", quantity='max_workers')
        self.environment = environment
        self.settings = settings if settings is not None else IntegratorSettings()
        self.monitored_bodies = tuple(monitored_bodies)
        self.max_workers = int(max_workers)
        self.frame = frame

    def reconcile_leg(self, leg: Leg, perturbation_set: PerturbationSet,
                      analytic_history: StateHistory) -> ReconciledLeg:
        """
        Propagates one leg from its midpoint.

        Raises:
            IntegrationError: If the seed cannot be interpolated or either
                              integration fails.
        """
        seed_epoch = leg.midpoint_epoch
        seed_state = analytic_history.interpolate(seed_epoch, leg_index=leg.index)

        dynamics = NBodyDynamics.from_perturbation_set(self.environment, perturbation_set, frame=self.frame)

        backward = propagate_arc(dynamics.equations_of_motion, seed_epoch, seed_state, leg.start_epoch,
                                 self.settings, leg_index=leg.index)
        forward = propagate_arc(dynamics.equations_of_motion, seed_epoch, seed_state, leg.end_epoch,
                                self.settings, leg_index=leg.index)
        propagated = StateHistory.merge(backward, forward)

        logger.info("Leg %d propagated: %d samples (%d backward, %d forward)",
                    leg.index, len(propagated), len(backward), len(forward))

        return ReconciledLeg(
            leg_index=leg.index,
            seed_epoch=seed_epoch,
            seed_state=seed_state,
            backward=backward,
            forward=forward,
            propagated=propagated,
            dependent_variables=self.dependent_variables(propagated, perturbation_set.central_body, leg.index),
        )

    def dependent_variables(self, history: StateHistory, central_body: str = 'Sun',
                            leg_index: int = None) -> DependentVariableHistory:
        """Distances from the propagated body to each monitored body [km]."""
        distances = np.empty((len(history), len(self.monitored_bodies)))
        for k, t in enumerate(history.epochs):
            r_sc = history.states[k, 0:3]
            for j, body in enumerate(self.monitored_bodies):
                if body == central_body:
                    distances[k, j] = np.linalg.norm(r_sc)
                    continue
                try:
                    r_body = self.environment.get_body_position(body, central_body, t, self.frame)
                except ConfigurationError as e:
                    raise IntegrationError(f"Distance to {body} unavailable: {e}", leg_index=leg_index,
                                           epoch=t) from e
                distances[k, j] = np.linalg.norm(r_sc - r_body)
        return DependentVariableHistory(history.epochs, self.monitored_bodies, distances)

    def _reconcile_task(self, args):
        leg, perturbation_set, analytic_history = args
        try:
            return leg.index, self.reconcile_leg(leg, perturbation_set, analytic_history), None
        except IntegrationError as e:
            logger.error("Leg %d could not be propagated: %s", leg.index, e)
            return leg.index, None, e

    def reconcile(self, legs: Sequence[Leg], perturbation_sets: Sequence[PerturbationSet],
                  analytic_histories: Sequence[StateHistory]) -> ReconciliationResult:
        """
        Propagates every leg; a failing leg does not stop the others.

        Args:
            legs: Legs of the transfer.
            perturbation_sets: One PerturbationSet per leg.
            analytic_histories: One analytic StateHistory per leg.

        Returns:
            ReconciliationResult
        """
        if not len(legs) == len(perturbation_sets) == len(analytic_histories):
            raise ConfigurationError(
                f"Got {len(legs)} legs, {len(perturbation_sets)} perturbation sets "
                f"and {len(analytic_histories)} analytic histories")

        logger.info("Propagating %d legs on %d workers", len(legs), self.max_workers)

        args_list = list(zip(legs, perturbation_sets, analytic_histories))
        if self.max_workers <= 1 or len(args_list) <= 1:
            results_list = [self._reconcile_task(args) for args in args_list]
        else:
            with ThreadPool(processes=min(self.max_workers, len(args_list))) as pool:
                results_list = pool.map(self._reconcile_task, args_list)

        reconciled = {}
        failures = {}
        for index, leg_result, error in results_list:
            if error is None:
                reconciled[index] = leg_result
            else:
                failures[index] = error

        logger.info("Propagation complete: %d/%d legs successful", len(reconciled), len(legs))
        return ReconciliationResult(legs=reconciled, failures=failures)
