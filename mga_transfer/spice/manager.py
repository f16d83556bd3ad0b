import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError
import os
import glob
import logging
import threading
import numpy as np
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Transfer body names -> SPICE ephemeris objects. Outer planets (and Mars,
# whose satellite kernel is rarely loaded) are taken at their barycenters.
SPICE_EPHEMERIS_NAMES = {
    'Sun': 'SUN',
    'Mercury': 'MERCURY',
    'Venus': 'VENUS',
    'Earth': 'EARTH',
    'Moon': 'MOON',
    'Mars': 'MARS BARYCENTER',
    'Jupiter': 'JUPITER BARYCENTER',
    'Saturn': 'SATURN BARYCENTER',
    'Uranus': 'URANUS BARYCENTER',
    'Neptune': 'NEPTUNE BARYCENTER',
    'Pluto': 'PLUTO BARYCENTER',
}


def to_spice_name(body: str) -> str:
    return SPICE_EPHEMERIS_NAMES.get(body.strip().capitalize(), body.strip().upper())


class SpiceManager(EphemerisEnvironment):
    """
    A singleton-like class to manage SPICE kernels and provide the ephemeris
    environment of the transfer.

    CSPICE is not re-entrant, so every call into spiceypy is serialised with a
    lock; this makes the manager safe to share between propagation workers.
    """
    _instance = None
    _kernels_loaded = False
    _lock = threading.RLock()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(SpiceManager, cls).__new__(cls)
        return cls._instance

    def load_standard_kernels(self, base_dir: str = 'data') -> int:
        """
        Loads standard SPICE kernels (.bsp, .tpc, .tls, .tf) from a directory.

        Returns:
            int: Number of kernels loaded.

        Raises:
            ConfigurationError: If no kernel could be loaded.
        """
        with self._lock:
            # Unload previous to prevent duplication if called multiple times
            if self._kernels_loaded:
                spice.kclear()
                SpiceManager._kernels_loaded = False

            logger.info("Loading SPICE kernels from %s", os.path.abspath(base_dir))

            count = 0
            for pattern in ['*.bsp', '*.tpc', '*.tls', '*.tf']:
                for kernel in sorted(glob.glob(os.path.join(base_dir, pattern))):
                    try:
                        spice.furnsh(kernel)
                    except SpiceyError as e:
                        logger.warning("Failed to load %s: %s", kernel, e)
                        continue
                    logger.debug("Loaded: %s", os.path.basename(kernel))
                    count += 1

            if count == 0:
                raise ConfigurationError(
                    f"No SPICE kernels were loaded from '{base_dir}'. "
                    "Ensure .bsp, .tpc and .tls files are present.")

            SpiceManager._kernels_loaded = True
            return count

    def get_body_state(self, target: str, observer: str, et: float, frame: str = 'ECLIPJ2000') -> np.ndarray:
        """
        Get the state vector (position, velocity) of a target body relative to an observer.

        Args:
            target (str): Name of target body (e.g., 'Mars', 'EARTH')
            observer (str): Name of observing body (e.g., 'Sun')
            et (float): Ephemeris Time (seconds past J2000)
            frame (str): Reference frame (default: 'ECLIPJ2000')

        Returns:
            numpy.ndarray: 6-element state vector [x, y, z, vx, vy, vz] in km and km/s
        """
        with self._lock:
            try:
                state, _ = spice.spkezr(to_spice_name(target), et, frame, 'NONE', to_spice_name(observer))
            except SpiceyError as e:
                raise ConfigurationError(f"SPICE error getting state for {target} wrt {observer}: {e}", epoch=et)
        return np.array(state)

    def get_mu(self, body: str) -> float:
        """
        Get the gravitational parameter (GM) for a body [km^3/s^2].
        """
        name = to_spice_name(body)
        with self._lock:
            try:
                # GM is stored as 'BODYnnn_GM'; barycenters resolve to nnn < 10
                body_id = spice.bodn2c(name)
                n, mu = spice.gdpool(f"BODY{body_id}_GM", 0, 1)
                if n > 0:
                    return float(mu[0])
            except SpiceyError:
                pass

            try:
                _, values = spice.bodvrd(name, "GM", 1)
                return float(values[0])
            except SpiceyError as e:
                raise ConfigurationError(f"Could not determine GM for body '{body}'. Check pck kernel. Error: {e}")

    def get_radius(self, body: str) -> float:
        """Equatorial radius [km] of the body itself (never the barycenter)."""
        return float(self.get_body_constant(body.strip().upper(), 'RADII', 3)[0])

    def utc2et(self, utc_str: str) -> float:
        """Converts UTC string (ISO 8601) to Ephemeris Time."""
        with self._lock:
            return spice.str2et(utc_str)

    def et2utc(self, et: float, format_str: str = "ISOC", precision: int = 3) -> str:
        """Converts Ephemeris Time to UTC string."""
        with self._lock:
            return spice.et2utc(et, format_str, precision)

    def get_body_constant(self, body: str, constant_name: str, max_values: int = 3):
        """
        Wraps spice.bodvrd to retrieve body constants like radii.

        Args:
            body (str): Body name (e.g., 'EARTH')
            constant_name (str): Constant name (e.g., 'RADII')

        Returns:
            Numpy array.
        """
        with self._lock:
            try:
                _, values = spice.bodvrd(body, constant_name, max_values)
            except SpiceyError as e:
                raise ConfigurationError(f"Could not find constant {constant_name} for {body}: {e}")
        return np.array(values)


# Global accessibility
spice_manager = SpiceManager()
