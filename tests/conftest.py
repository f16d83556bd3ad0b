import pytest
import numpy as np
import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from mga_transfer.environment.approximate import ApproximateEphemeris
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError

MU_SUN = 1.32712440018e11
AU = 1.495978707e8


class StaticEnvironment(EphemerisEnvironment):
    """
    Ephemeris double: each body has either a constant heliocentric state or a
    callable et -> state.
    """

    def __init__(self, states: dict, mus: dict, radii: dict = None):
        self.states = states
        self.mus = mus
        self.radii = radii or {}

    def _state(self, body, et):
        if body == 'Sun':
            return np.zeros(6)
        if body not in self.states:
            raise ConfigurationError(f"No state for '{body}'", epoch=et)
        value = self.states[body]
        return np.array(value(et) if callable(value) else value, dtype=float)

    def get_body_state(self, target, observer, et, frame='ECLIPJ2000'):
        return self._state(target, et) - self._state(observer, et)

    def get_mu(self, body):
        if body not in self.mus:
            raise ConfigurationError(f"No GM for '{body}'")
        return self.mus[body]

    def get_radius(self, body):
        return self.radii.get(body, 1.0)


@pytest.fixture
def sun_only_environment():
    return StaticEnvironment(states={}, mus={'Sun': MU_SUN})


@pytest.fixture
def small_body_ephemeris():
    """Analytic planets shrunk to 1 km so only the bending limit constrains flybys."""
    return ApproximateEphemeris(radius_overrides={name: 1.0 for name in
                                                  ('Mercury', 'Venus', 'Earth', 'Mars', 'Jupiter')})
