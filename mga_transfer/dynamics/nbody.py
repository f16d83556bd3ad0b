import logging
import warnings
import numpy as np
from mga_transfer.dynamics.acceleration import PerturbationSet
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class NBodyDynamics:
    """
    Point-mass gravity of a central body and third bodies acting on a
    spacecraft, integrated in a frame centred on the central body.
    """
    def __init__(self, environment: EphemerisEnvironment, bodies: list[str], frame: str = 'ECLIPJ2000',
                 central_body: str = 'Sun'):
        """
        Initialize the N-Body dynamics model.

        Args:
            environment (EphemerisEnvironment): Source of body states and GMs.
            bodies (list[str]): Bodies exerting gravity, central body included (e.g. ['Sun', 'Earth', 'Venus']).
            frame (str): Reference frame for the state vector (default: 'ECLIPJ2000').
            central_body (str): The body at the origin of integration.
        """
        self.environment = environment
        self.bodies = list(bodies)
        self.frame = frame
        self.central_body = central_body
        self.mus = {}

        for body in self.bodies:
            try:
                self.mus[body] = environment.get_mu(body)
            except ConfigurationError as e:
                warnings.warn(f"Could not load GM for {body}, it will be ignored in dynamics. Error: {str(e)}")

    @classmethod
    def from_perturbation_set(cls, environment: EphemerisEnvironment, perturbation_set: PerturbationSet,
                              frame: str = 'ECLIPJ2000') -> 'NBodyDynamics':
        return cls(environment, list(perturbation_set.bodies), frame=frame,
                   central_body=perturbation_set.central_body)

    def equations_of_motion(self, t: float, state: np.ndarray) -> np.ndarray:
        """
        Computes derivative of state [v, a].
        """
        if len(state) != 6:
            raise ValueError(f"State vector length {len(state)} not supported. Expected 6.")

        r_sc = state[0:3]
        v_sc = state[3:6]

        a_total = np.zeros(3)

        for body in self.bodies:
            mu = self.mus.get(body, 0.0)
            if mu == 0.0:
                continue

            if body == self.central_body:
                r_mag = np.linalg.norm(r_sc)
                a_total += -mu * r_sc / (r_mag**3)
            else:
                r_body = self.environment.get_body_position(body, self.central_body, t, self.frame)

                r_body_to_sc = r_sc - r_body
                dist = np.linalg.norm(r_body_to_sc)

                term1 = r_body_to_sc / (dist**3)

                # Indirect term: the central body is itself accelerated by the third body
                r_body_mag = np.linalg.norm(r_body)
                term2 = r_body / (r_body_mag**3)

                a_total += -mu * (term1 + term2)

        return np.concatenate((v_sc, a_total))
