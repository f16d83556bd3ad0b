import numpy as np
from typing import Optional
from mga_transfer.mission.sequence import KeplerOrbit

# Mean obliquity of the ecliptic at J2000 [deg]
OBLIQUITY_J2000_DEG = 23.43929111


def ecliptic_to_equatorial(vec: np.ndarray) -> np.ndarray:
    """Rotates an ECLIPJ2000 vector into the Earth mean equator (J2000) frame."""
    eps = np.radians(OBLIQUITY_J2000_DEG)
    c, s = np.cos(eps), np.sin(eps)
    R = np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, -s],
        [0.0, s, c],
    ])
    return R @ np.asarray(vec, dtype=float)


def calculate_departure_asymptotes(v_inf_vec: np.ndarray, frame: str = 'J2000') -> dict:
    """
    Calculates departure asymptote parameters (C3, DLA, RLA) from a V-infinity vector.

    Args:
        v_inf_vec (np.ndarray): Hyperbolic excess velocity vector [vx, vy, vz] [km/s].
        frame (str): Frame of v_inf_vec. 'ECLIPJ2000' vectors are rotated to the
                     equator first, since DLA and RLA are equatorial angles.

    Returns:
        dict: {
            'C3': characteristic energy [km^2/s^2],
            'DLA_deg': Declination of Launch Asymptote [deg],
            'RLA_deg': Right Ascension of Launch Asymptote [deg],
            'v_inf_mag_km_s': Magnitude of V_inf [km/s]
        }
    """
    v_inf_vec = np.asarray(v_inf_vec, dtype=float)
    if frame.upper() == 'ECLIPJ2000':
        v_inf_vec = ecliptic_to_equatorial(v_inf_vec)

    v_inf_mag = np.linalg.norm(v_inf_vec)
    c3 = v_inf_mag**2

    if v_inf_mag == 0:
        u = np.zeros(3)
    else:
        u = v_inf_vec / v_inf_mag

    # Declination from the equatorial plane, right ascension from the X axis
    dla_rad = np.arcsin(u[2])
    rla_rad = np.arctan2(u[1], u[0])
    if rla_rad < 0:
        rla_rad += 2 * np.pi

    return {
        'C3': c3,
        'DLA_deg': np.degrees(dla_rad),
        'RLA_deg': np.degrees(rla_rad),
        'v_inf_mag_km_s': v_inf_mag
    }


def hyperbolic_periapsis_burn(v_inf_mag: float, mu: float, orbit: KeplerOrbit) -> float:
    """
    Impulse at the periapsis of a bound orbit that connects it to a hyperbola
    with excess speed v_inf_mag.

    Note:
        dv = |sqrt(v_inf^2 + 2*mu/rp) - sqrt(mu*(1+e)/rp)|, rp = a*(1-e)
    """
    rp = orbit.periapsis_radius
    v_hyperbola = np.sqrt(v_inf_mag**2 + 2.0 * mu / rp)
    v_orbit = np.sqrt(mu * (1.0 + orbit.eccentricity) / rp)
    return abs(v_hyperbola - v_orbit)


def departure_delta_v(v_inf_vec: np.ndarray, mu: float = None, orbit: Optional[KeplerOrbit] = None) -> float:
    """
    Departure cost. Without a parking orbit it is the excess speed itself;
    with one it is the escape burn at the orbit periapsis.
    """
    v_inf_mag = float(np.linalg.norm(v_inf_vec))
    if orbit is None:
        return v_inf_mag
    if mu is None:
        raise ValueError("A gravitational parameter is required to depart from a parking orbit.")
    return hyperbolic_periapsis_burn(v_inf_mag, mu, orbit)


def capture_delta_v(v_inf_vec: np.ndarray, mu: float, orbit: KeplerOrbit) -> float:
    """Insertion burn from the arrival hyperbola into the capture orbit [km/s]."""
    return hyperbolic_periapsis_burn(float(np.linalg.norm(v_inf_vec)), mu, orbit)
