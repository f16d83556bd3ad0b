import pytest
import numpy as np
import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from mga_transfer.exceptions import SolverConvergenceError
from mga_transfer.trajectory.kepler import propagate_kepler
from mga_transfer.trajectory.lambert import LambertSolver

def test_lambert_circular_earth():
    """
    Test Lambert solver for a simple 90 degree transfer in a circular orbit (1 AU).
    Reference: Earth moving 90 degrees around Sun.
    """
    mu_sun = 132712440041.9394  # km^3/s^2 (approx)
    r_earth = 149597870.7  # km
    v_earth = np.sqrt(mu_sun / r_earth) # ~29.78 km/s

    r1 = np.array([r_earth, 0.0, 0.0])
    v1_expected = np.array([0.0, v_earth, 0.0])
    r2 = np.array([0.0, r_earth, 0.0])

    # Time of flight for 1/4 period
    period = 2 * np.pi * np.sqrt(r_earth**3 / mu_sun)
    dt = period / 4.0

    v1, v2 = LambertSolver.solve(r1, r2, dt, mu_sun)

    np.testing.assert_allclose(v1, v1_expected, rtol=1e-5, atol=1e-6, err_msg="Initial velocity mismatch for 90deg circular arc")

    v2_expected = np.array([-v_earth, 0.0, 0.0])
    np.testing.assert_allclose(v2, v2_expected, rtol=1e-5, atol=1e-6, err_msg="Final velocity mismatch for 90deg circular arc")

def test_lambert_180_failure_case():
    """
    Exactly 180 degrees leaves the transfer plane undefined.
    """
    mu = 1.0
    r1 = np.array([1.0, 0.0, 0.0])
    r2 = np.array([-1.0, 0.0, 0.0])
    dt = np.pi

    with pytest.raises(SolverConvergenceError):
        LambertSolver.solve(r1, r2, dt, mu)

def test_lambert_rejects_non_positive_time_of_flight():
    with pytest.raises(SolverConvergenceError):
        LambertSolver.solve(np.array([1.0, 0, 0]), np.array([0, 1.0, 0]), 0.0, 1.0)

def test_lambert_elliptical():
    """
    Solve for v1, v2 and propagate from r1 with v1 for dt seconds.
    The resulting state should match (r2, v2).
    """
    mu = 3.986004418e5
    r1 = np.array([7000.0, 0.0, 0.0])
    r2 = np.array([0.0, 8000.0, 2000.0])
    dt = 2000.0 # seconds

    v1, v2 = LambertSolver.solve(r1, r2, dt, mu, prograde=True)

    r2_sim, v2_sim = propagate_kepler(r1, v1, dt, mu)

    np.testing.assert_allclose(r2_sim, r2, rtol=1e-6, atol=1e-4, err_msg="Propagated position does not match r2")
    np.testing.assert_allclose(v2_sim, v2, rtol=1e-6, atol=1e-7, err_msg="Propagated velocity does not match v2")

    # Physical Sanity: Conservation of Energy
    eps1 = 0.5 * np.linalg.norm(v1)**2 - mu / np.linalg.norm(r1)
    eps2 = 0.5 * np.linalg.norm(v2)**2 - mu / np.linalg.norm(r2)
    assert np.isclose(eps1, eps2, rtol=1e-8), "Energy not conserved in Lambert solution"

def test_lambert_long_way_is_prograde():
    """A 270 degree prograde transfer keeps positive angular momentum."""
    mu = 1.32712440018e11
    r = 1.5e8
    r1 = np.array([r, 0.0, 0.0])
    r2 = np.array([0.0, -r, 0.0])
    period = 2 * np.pi * np.sqrt(r**3 / mu)

    v1, v2 = LambertSolver.solve(r1, r2, 0.75 * period, mu, prograde=True)

    assert np.cross(r1, v1)[2] > 0
    np.testing.assert_allclose(np.linalg.norm(v1), np.sqrt(mu / r), rtol=1e-5)

if __name__ == "__main__":
    try:
        test_lambert_circular_earth()
        print("test_lambert_circular_earth PASSED")
    except Exception as e:
        print(f"test_lambert_circular_earth FAILED: {e}")

    try:
        test_lambert_elliptical()
        print("test_lambert_elliptical PASSED")
    except Exception as e:
        print(f"test_lambert_elliptical FAILED: {e}")
