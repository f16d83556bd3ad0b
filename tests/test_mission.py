import pytest
import numpy as np
from mga_transfer.mission.departure import (calculate_departure_asymptotes, capture_delta_v, departure_delta_v,
                                            ecliptic_to_equatorial)
from mga_transfer.mission.sequence import KeplerOrbit

MU_JUPITER = 1.26686534e8

def test_departure_c3():
    # V_inf = [3, 4, 0] km/s
    v_inf = np.array([3.0, 4.0, 0.0])
    res = calculate_departure_asymptotes(v_inf)

    assert res['C3'] == 25.0 # 3^2 + 4^2
    assert res['v_inf_mag_km_s'] == 5.0

    # Unit vec = [0.6, 0.8, 0] -> DLA = 0, RLA = atan2(0.8, 0.6)
    assert res['DLA_deg'] == 0.0
    assert np.isclose(res['RLA_deg'], np.degrees(np.arctan2(0.8, 0.6)))

def test_departure_asymptote_from_ecliptic():
    # Ecliptic pole tilted by the obliquity in the equatorial frame
    res = calculate_departure_asymptotes(np.array([0.0, 0.0, 2.0]), frame='ECLIPJ2000')
    assert np.isclose(res['DLA_deg'], 90.0 - 23.43929111)
    assert np.isclose(res['C3'], 4.0)

def test_ecliptic_rotation_keeps_x_axis():
    np.testing.assert_allclose(ecliptic_to_equatorial([1.0, 0.0, 0.0]), [1.0, 0.0, 0.0])

def test_departure_without_parking_orbit_is_v_inf():
    assert departure_delta_v(np.array([0.0, 3.0, 4.0])) == 5.0

def test_departure_from_parking_orbit():
    mu = 398600.4418
    orbit = KeplerOrbit(6678.0, 0.0)
    dv = departure_delta_v(np.array([3.0, 0.0, 0.0]), mu, orbit)
    expected = np.sqrt(9.0 + 2 * mu / 6678.0) - np.sqrt(mu / 6678.0)
    assert np.isclose(dv, expected)

def test_departure_from_parking_orbit_requires_mu():
    with pytest.raises(ValueError):
        departure_delta_v(np.array([3.0, 0.0, 0.0]), None, KeplerOrbit(6678.0, 0.0))

def test_capture_delta_v():
    orbit = KeplerOrbit(5.4475e6, 0.98)
    rp = orbit.periapsis_radius
    assert np.isclose(rp, 108950.0)

    dv = capture_delta_v(np.array([5.0, 0.0, 0.0]), MU_JUPITER, orbit)

    expected = abs(np.sqrt(25.0 + 2 * MU_JUPITER / rp) - np.sqrt(MU_JUPITER * 1.98 / rp))
    assert np.isclose(dv, expected)
    assert dv > 0
