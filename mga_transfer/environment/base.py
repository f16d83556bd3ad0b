from abc import ABC, abstractmethod
import numpy as np


class EphemerisEnvironment(ABC):
    """
    Read-only provider of body ephemerides and physical constants.

    Implementations must be safe to query concurrently from several threads,
    since the legs of a transfer are propagated in parallel.
    """

    @abstractmethod
    def get_body_state(self, target: str, observer: str, et: float, frame: str = 'ECLIPJ2000') -> np.ndarray:
        """
        State of a target body relative to an observer.

        Args:
            target (str): Body name (e.g. 'Earth').
            observer (str): Observer body name (e.g. 'Sun').
            et (float): Ephemeris Time [s past J2000].
            frame (str): Reference frame.

        Returns:
            np.ndarray: [x, y, z, vx, vy, vz] in km and km/s.
        """

    @abstractmethod
    def get_mu(self, body: str) -> float:
        """Gravitational parameter [km^3/s^2]."""

    @abstractmethod
    def get_radius(self, body: str) -> float:
        """Mean (equatorial) physical radius [km]."""

    def get_body_position(self, target: str, observer: str, et: float, frame: str = 'ECLIPJ2000') -> np.ndarray:
        return np.asarray(self.get_body_state(target, observer, et, frame))[0:3]
