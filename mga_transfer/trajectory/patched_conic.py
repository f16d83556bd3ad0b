import logging
import numpy as np
from dataclasses import dataclass, field
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError, SolverConvergenceError
from mga_transfer.mission.departure import calculate_departure_asymptotes, capture_delta_v, departure_delta_v
from mga_transfer.mission.sequence import LegType, TransferProblem
from mga_transfer.propagation.history import INTERPOLATION_ORDER, StateHistory
from mga_transfer.trajectory.flyby import FlybyResult, powered_swingby
from mga_transfer.trajectory.kepler import sample_conic
from mga_transfer.trajectory.lambert import LambertSolver
from mga_transfer.trajectory.maneuver import Maneuver

logger = logging.getLogger(__name__)

# Fewest samples per analytic leg: one more than the interpolation stencil
MIN_SAMPLES_PER_LEG = INTERPOLATION_ORDER + 1


@dataclass(frozen=True)
class LambertArc:
    """Heliocentric conic connecting two consecutive bodies."""
    leg_index: int
    t1: float
    t2: float
    r1: np.ndarray = field(compare=False)
    v1: np.ndarray = field(compare=False)
    r2: np.ndarray = field(compare=False)
    v2: np.ndarray = field(compare=False)

    @property
    def departure_state(self) -> np.ndarray:
        return np.concatenate((self.r1, self.v1))


@dataclass(frozen=True)
class TrajectoryResult:
    """
    Outcome of the analytic design.

    total_delta_v is the sum of every flyby burn plus the capture burn. The
    departure burn is listed among the maneuvers but is NOT part of the total;
    it is reported on its own as departure_delta_v.
    """
    total_delta_v: float
    capture_delta_v: float
    departure_delta_v: float
    maneuvers: tuple
    flybys: tuple = ()
    departure_asymptotes: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class PatchedConicSolution:
    trajectory: TrajectoryResult
    arcs: tuple
    analytic_histories: tuple


def sample_epochs(start: float, end: float, sample_step: float) -> np.ndarray:
    """Evenly spaced grid over [start, end] including both ends."""
    n = max(MIN_SAMPLES_PER_LEG, int(np.ceil((end - start) / sample_step)) + 1)
    return np.linspace(start, end, n)


class PatchedConicSolver:
    """
    Chains zero-revolution Lambert arcs between the bodies of a transfer and
    patches them at each body with a powered swing-by.
    """

    def __init__(self, environment: EphemerisEnvironment, central_body: str = 'Sun', frame: str = 'ECLIPJ2000'):
        self.environment = environment
        self.central_body = central_body
        self.frame = frame

    def solve(self, problem: TransferProblem, sample_step: float = 86400.0) -> PatchedConicSolution:
        """
        Computes the analytic transfer.

        Args:
            problem (TransferProblem): Legs, body sequence and capture/departure orbits.
            sample_step (float): Spacing of the analytic samples [s].

        Returns:
            PatchedConicSolution: Delta-v budget, Lambert arcs and sampled leg histories.

        Raises:
            ConfigurationError: On invalid settings or missing body data.
            SolverConvergenceError: If a Lambert arc cannot be solved.
            InfeasibleLegError: If a flyby cannot provide the required bending.
        """
        if not (sample_step > 0):
            raise ConfigurationError(f"Sample step must be positive, got {sample_step}", quantity='sample_step')

        legs = problem.legs
        node_epochs = [leg.start_epoch for leg in legs] + [legs[-1].end_epoch]
        node_bodies = [leg.departure_body for leg in legs] + [legs[-1].arrival_body]
        node_states = [self.environment.get_body_state(body, self.central_body, t, self.frame)
                       for body, t in zip(node_bodies, node_epochs)]
        mu_central = self.environment.get_mu(self.central_body)

        arcs = tuple(self._solve_arc(leg.index, node_states[i], node_states[i + 1],
                                     node_epochs[i], node_epochs[i + 1], mu_central)
                     for i, leg in enumerate(legs))

        maneuvers = []
        flybys = []

        # Departure
        first = legs[0]
        v_inf_dep = arcs[0].v1 - node_states[0][3:6]
        mu_dep = self.environment.get_mu(first.departure_body) if problem.departure_orbit is not None else None
        dv_departure = departure_delta_v(v_inf_dep, mu_dep, problem.departure_orbit)
        asymptotes = calculate_departure_asymptotes(v_inf_dep, frame=self.frame)
        maneuvers.append(Maneuver(first.start_epoch, node_states[0][0:3], dv_departure, 0,
                                  first.departure_body, LegType.DEPARTURE))
        logger.info("Departure from %s: v_inf=%.4f km/s, C3=%.3f km^2/s^2",
                    first.departure_body, asymptotes['v_inf_mag_km_s'], asymptotes['C3'])

        # Swing-bys
        for k in range(1, len(legs)):
            leg = legs[k]
            body = leg.departure_body
            v_body = node_states[k][3:6]
            flyby = powered_swingby(
                body, leg.start_epoch,
                arcs[k - 1].v2 - v_body, arcs[k].v1 - v_body,
                mu=self.environment.get_mu(body),
                body_radius=self.environment.get_radius(body),
                min_periapsis_radius=leg.minimum_periapsis_radius,
                leg_index=k,
            )
            flybys.append(flyby)
            maneuvers.append(Maneuver(leg.start_epoch, node_states[k][0:3], flyby.delta_v, k, body, LegType.SWINGBY))
            logger.info("Flyby of %s: bending=%.3f deg, rp=%.1f km, dv=%.6f km/s",
                        body, np.degrees(flyby.bending_angle), flyby.periapsis_radius, flyby.delta_v)

        # Capture
        last = legs[-1]
        dv_capture = np.nan
        if last.leg_type == LegType.CAPTURE:
            if problem.capture_orbit is None:
                raise ConfigurationError("Capture leg without a capture orbit", leg_index=last.index)
            v_inf_arr = arcs[-1].v2 - node_states[-1][3:6]
            dv_capture = capture_delta_v(v_inf_arr, self.environment.get_mu(last.arrival_body), problem.capture_orbit)
            maneuvers.append(Maneuver(last.end_epoch, node_states[-1][0:3], dv_capture, last.index,
                                      last.arrival_body, LegType.CAPTURE))
            logger.info("Capture at %s: dv=%.4f km/s", last.arrival_body, dv_capture)

        total = sum(m.delta_v for m in maneuvers if m.kind != LegType.DEPARTURE)

        trajectory = TrajectoryResult(
            total_delta_v=float(total),
            capture_delta_v=float(dv_capture),
            departure_delta_v=float(dv_departure),
            maneuvers=tuple(sorted(maneuvers, key=lambda m: m.epoch)),
            flybys=tuple(flybys),
            departure_asymptotes=asymptotes,
        )
        logger.info("Patched-conic transfer: total dv=%.4f km/s (departure %.4f km/s excluded)",
                    trajectory.total_delta_v, trajectory.departure_delta_v)

        histories = tuple(self.sample_arc(arc, sample_step, mu_central) for arc in arcs)
        return PatchedConicSolution(trajectory=trajectory, arcs=arcs, analytic_histories=histories)

    def sample_arc(self, arc: LambertArc, sample_step: float, mu: float) -> StateHistory:
        """Samples a Lambert arc on a grid that contains both leg boundaries."""
        epochs = sample_epochs(arc.t1, arc.t2, sample_step)
        try:
            states = sample_conic(arc.r1, arc.v1, arc.t1, epochs, mu)
        except SolverConvergenceError as e:
            raise SolverConvergenceError(f"Sampling of the analytic arc failed: {e}", leg_index=arc.leg_index) from e
        return StateHistory(epochs, states)

    @staticmethod
    def _solve_arc(leg_index: int, state1: np.ndarray, state2: np.ndarray, t1: float, t2: float,
                   mu: float) -> LambertArc:
        r1 = np.asarray(state1[0:3], dtype=float)
        r2 = np.asarray(state2[0:3], dtype=float)
        try:
            v1, v2 = LambertSolver.solve(r1, r2, t2 - t1, mu, prograde=True)
        except SolverConvergenceError as e:
            raise SolverConvergenceError(f"Lambert arc failed: {e}", leg_index=leg_index, epoch=t1) from e
        return LambertArc(leg_index, t1, t2, r1, v1, r2, v2)
