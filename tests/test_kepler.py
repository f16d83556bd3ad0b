import numpy as np
import pytest
from conftest import AU, MU_SUN
from mga_transfer.trajectory.kepler import propagate_kepler, sample_conic

MU_EARTH = 3.986004418e5


def test_circular_quarter_orbit():
    r = 7000.0
    v = np.sqrt(MU_EARTH / r)
    period = 2 * np.pi * np.sqrt(r**3 / MU_EARTH)

    r1, v1 = propagate_kepler(np.array([r, 0, 0]), np.array([0, v, 0]), period / 4, MU_EARTH)

    np.testing.assert_allclose(r1, [0.0, r, 0.0], atol=1e-6)
    np.testing.assert_allclose(v1, [-v, 0.0, 0.0], atol=1e-9)


def test_backward_undoes_forward():
    r0 = np.array([7000.0, 1000.0, -500.0])
    v0 = np.array([-1.0, 7.5, 1.2])

    r1, v1 = propagate_kepler(r0, v0, 3000.0, MU_EARTH)
    r2, v2 = propagate_kepler(r1, v1, -3000.0, MU_EARTH)

    np.testing.assert_allclose(r2, r0, atol=1e-5)
    np.testing.assert_allclose(v2, v0, atol=1e-8)


def test_hyperbolic_energy_conserved():
    r0 = np.array([7000.0, 0.0, 0.0])
    v0 = np.array([0.0, 12.0, 0.0])  # above escape speed

    r1, v1 = propagate_kepler(r0, v0, 20000.0, MU_EARTH)

    e0 = 0.5 * np.dot(v0, v0) - MU_EARTH / np.linalg.norm(r0)
    e1 = 0.5 * np.dot(v1, v1) - MU_EARTH / np.linalg.norm(r1)
    assert e0 > 0
    assert np.isclose(e0, e1, rtol=1e-9)


def test_sample_conic_starts_at_seed():
    r0 = np.array([7000.0, 0.0, 0.0])
    v0 = np.array([0.0, 7.5, 0.0])
    epochs = np.linspace(100.0, 1100.0, 11)

    states = sample_conic(r0, v0, 100.0, epochs, MU_EARTH)

    assert states.shape == (11, 6)
    np.testing.assert_array_equal(states[0], np.concatenate((r0, v0)))


@pytest.mark.parametrize("days", [400.0, -400.0, 900.0, -900.0])
def test_strongly_hyperbolic_heliocentric_arc(days):
    r0 = np.array([AU, 0.0, 0.0])
    v0 = np.array([0.0, 3.0 * np.sqrt(MU_SUN / AU), 0.0])
    dt = days * 86400.0

    r1, v1 = propagate_kepler(r0, v0, dt, MU_SUN)

    e0 = 0.5 * np.dot(v0, v0) - MU_SUN / np.linalg.norm(r0)
    e1 = 0.5 * np.dot(v1, v1) - MU_SUN / np.linalg.norm(r1)
    assert np.isclose(e0, e1, rtol=1e-9)
    np.testing.assert_allclose(np.cross(r1, v1), np.cross(r0, v0), rtol=1e-9, atol=1e-3)

    r2, v2 = propagate_kepler(r1, v1, -dt, MU_SUN)
    np.testing.assert_allclose(r2, r0, rtol=1e-8, atol=10.0)
    np.testing.assert_allclose(v2, v0, rtol=1e-8, atol=1e-7)
