import numpy as np
from scipy.optimize import newton
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.exceptions import ConfigurationError

AU_KM = 1.495978707e8
JULIAN_CENTURY_S = 36525.0 * 86400.0

# Keplerian elements and rates (per Julian century) for the approximate
# positions of the major planets, valid 1800 AD - 2050 AD (Standish, JPL).
# a [AU], e [-], I [deg], L [deg], long. perihelion [deg], long. node [deg]
MEAN_ELEMENTS = {
    'Mercury': ((0.38709927, 0.20563593, 7.00497902, 252.25032350, 77.45779628, 48.33076593),
                (0.00000037, 0.00001906, -0.00594749, 149472.67411175, 0.16047689, -0.12534081)),
    'Venus': ((0.72333566, 0.00677672, 3.39467605, 181.97909950, 131.60246718, 76.67984255),
              (0.00000390, -0.00004107, -0.00078890, 58517.81538729, 0.00268329, -0.27769418)),
    'Earth': ((1.00000261, 0.01671123, -0.00001531, 100.46457166, 102.93768193, 0.0),
              (0.00000562, -0.00004392, -0.01294668, 35999.37244981, 0.32327364, 0.0)),
    'Mars': ((1.52371034, 0.09339410, 1.84969142, -4.55343205, -23.94362959, 49.55953891),
             (0.00001847, 0.00007882, -0.00813131, 19140.30268499, 0.44441088, -0.29257343)),
    'Jupiter': ((5.20288700, 0.04838624, 1.30439695, 34.39644051, 14.72847983, 100.47390909),
                (-0.00011607, -0.00013253, -0.00183714, 3034.74612775, 0.21252668, 0.20469106)),
    'Saturn': ((9.53667594, 0.05386179, 2.48599187, 49.95424423, 92.59887831, 113.66242448),
               (-0.00125060, -0.00050991, 0.00193609, 1222.49362201, -0.41897216, -0.28867794)),
    'Uranus': ((19.18916464, 0.04725744, 0.77263783, 313.23810451, 170.95427630, 74.01692503),
               (-0.00196176, -0.00004397, -0.00242939, 428.48202785, 0.40805281, 0.04240589)),
    'Neptune': ((30.06992276, 0.00859048, 1.77004347, -55.12002969, 44.96476227, 131.78422574),
                (0.00026291, 0.00005105, 0.00035372, 218.45945325, -0.32241464, -0.00508664)),
}

# km^3/s^2
GRAVITATIONAL_PARAMETERS = {
    'Sun': 1.32712440018e11,
    'Mercury': 2.2031780e4,
    'Venus': 3.24858592e5,
    'Earth': 3.986004418e5,
    'Mars': 4.282837e4,
    'Jupiter': 1.26686534e8,
    'Saturn': 3.7931187e7,
    'Uranus': 5.793939e6,
    'Neptune': 6.836529e6,
}

# km
EQUATORIAL_RADII = {
    'Sun': 695700.0,
    'Mercury': 2439.7,
    'Venus': 6051.8,
    'Earth': 6378.137,
    'Mars': 3396.19,
    'Jupiter': 71492.0,
    'Saturn': 60268.0,
    'Uranus': 25559.0,
    'Neptune': 24764.0,
}


def normalize_body_name(name: str) -> str:
    """'EARTH BARYCENTER' -> 'Earth'."""
    key = name.strip().upper()
    if key.endswith(' BARYCENTER'):
        key = key[:-len(' BARYCENTER')]
    return key.capitalize()


class ApproximateEphemeris(EphemerisEnvironment):
    """
    Analytic heliocentric ephemeris from JPL mean orbital elements.

    Only the Sun can be used as observer, and only the ECLIPJ2000 frame is
    supported. The environment holds no mutable state so it can be shared
    between worker threads.
    """

    frame = 'ECLIPJ2000'

    def __init__(self, mu_overrides: dict = None, radius_overrides: dict = None):
        self.mus = dict(GRAVITATIONAL_PARAMETERS)
        self.radii = dict(EQUATORIAL_RADII)
        for name, mu in (mu_overrides or {}).items():
            self.mus[normalize_body_name(name)] = float(mu)
        for name, radius in (radius_overrides or {}).items():
            self.radii[normalize_body_name(name)] = float(radius)

    def get_body_state(self, target: str, observer: str, et: float, frame: str = 'ECLIPJ2000') -> np.ndarray:
        if frame != self.frame:
            raise ConfigurationError(f"Approximate ephemeris only supports {self.frame}, got '{frame}'")

        state = self._heliocentric_state(normalize_body_name(target), et)
        observer_name = normalize_body_name(observer)
        if observer_name != 'Sun':
            state = state - self._heliocentric_state(observer_name, et)
        return state

    def get_mu(self, body: str) -> float:
        name = normalize_body_name(body)
        if name not in self.mus:
            raise ConfigurationError(f"No gravitational parameter for body '{body}'")
        return self.mus[name]

    def get_radius(self, body: str) -> float:
        name = normalize_body_name(body)
        if name not in self.radii:
            raise ConfigurationError(f"No radius for body '{body}'")
        return self.radii[name]

    def _heliocentric_state(self, name: str, et: float) -> np.ndarray:
        if name == 'Sun':
            return np.zeros(6)
        if name not in MEAN_ELEMENTS:
            raise ConfigurationError(f"No mean elements for body '{name}'", epoch=et)

        base, rates = MEAN_ELEMENTS[name]
        T = et / JULIAN_CENTURY_S
        a_au, e, inc, L, varpi, raan = (b + r * T for b, r in zip(base, rates))

        a = a_au * AU_KM
        arg_p = np.radians(varpi - raan)
        inc = np.radians(inc)
        raan = np.radians(raan)

        # Mean anomaly wrapped to [-pi, pi]
        M = np.radians((L - varpi + 180.0) % 360.0 - 180.0)
        E = newton(lambda E: E - e * np.sin(E) - M, M, fprime=lambda E: 1.0 - e * np.cos(E), tol=1e-12, maxiter=50)

        mu = self.mus['Sun']
        n = np.sqrt(mu / a**3)
        E_dot = n / (1.0 - e * np.cos(E))
        sqrt_1_e2 = np.sqrt(1.0 - e**2)

        r_pf = np.array([a * (np.cos(E) - e), a * sqrt_1_e2 * np.sin(E), 0.0])
        v_pf = np.array([-a * np.sin(E) * E_dot, a * sqrt_1_e2 * np.cos(E) * E_dot, 0.0])

        Q = perifocal_to_inertial(raan, inc, arg_p)
        return np.concatenate((Q @ r_pf, Q @ v_pf))


def perifocal_to_inertial(raan: float, inc: float, arg_p: float) -> np.ndarray:
    """Rotation matrix from the perifocal frame (P, Q, W) to the inertial frame."""
    cO, sO = np.cos(raan), np.sin(raan)
    ci, si = np.cos(inc), np.sin(inc)
    cw, sw = np.cos(arg_p), np.sin(arg_p)
    return np.array([
        [cO * cw - sO * sw * ci, -cO * sw - sO * cw * ci, sO * si],
        [sO * cw + cO * sw * ci, -sO * sw + cO * cw * ci, -cO * si],
        [sw * si, cw * si, ci],
    ])
