import numpy as np
from scipy.optimize import brentq, newton
from mga_transfer.trajectory.lambert import LambertSolver
from mga_transfer.exceptions import SolverConvergenceError


def propagate_kepler(r0: np.ndarray, v0: np.ndarray, dt: float, mu: float,
                     max_iter: int = 100, tol: float = 1e-10) -> tuple[np.ndarray, np.ndarray]:
    """
    Two-body propagation with the universal anomaly (chi) and Lagrange f, g coefficients.

    Valid for elliptic, parabolic and hyperbolic orbits, forward or backward in time.

    Args:
        r0 (np.ndarray): Initial position [km].
        v0 (np.ndarray): Initial velocity [km/s].
        dt (float): Propagation time [s].
        mu (float): Gravitational parameter [km^3/s^2].

    Returns:
        tuple[np.ndarray, np.ndarray]: Position and velocity after dt.

    Raises:
        SolverConvergenceError: If Kepler's equation cannot be solved.
    """
    r0 = np.asarray(r0, dtype=float)
    v0 = np.asarray(v0, dtype=float)
    if dt == 0:
        return r0.copy(), v0.copy()

    r0_mag = np.linalg.norm(r0)
    vr0 = np.dot(r0, v0) / r0_mag
    sqrt_mu = np.sqrt(mu)

    # Reciprocal of the semi-major axis
    alpha = 2.0 / r0_mag - np.dot(v0, v0) / mu

    def kepler_equation(chi):
        z = alpha * chi**2
        return (r0_mag * vr0 / sqrt_mu * chi**2 * LambertSolver.stumpC(z)
                + (1 - alpha * r0_mag) * chi**3 * LambertSolver.stumpS(z)
                + r0_mag * chi - sqrt_mu * dt)

    def kepler_derivative(chi):
        z = alpha * chi**2
        return (r0_mag * vr0 / sqrt_mu * chi * (1 - z * LambertSolver.stumpS(z))
                + (1 - alpha * r0_mag) * chi**2 * LambertSolver.stumpC(z)
                + r0_mag)

    chi0 = _initial_anomaly(r0_mag, np.dot(r0, v0), alpha, dt, mu)
    try:
        with np.errstate(over='ignore', invalid='ignore'):
            chi = newton(kepler_equation, chi0, fprime=kepler_derivative, tol=tol, maxiter=max_iter)
    except (RuntimeError, OverflowError):
        chi = np.nan

    with np.errstate(over='ignore', invalid='ignore'):
        converged = np.isfinite(chi) and abs(kepler_equation(chi)) <= 1e-6 * sqrt_mu * abs(dt)
    if not converged:
        # The Kepler function increases monotonically with chi (its slope is r > 0)
        chi = _bracketed_anomaly(kepler_equation, dt, alpha, r0_mag, sqrt_mu, max_iter)

    z = alpha * chi**2
    C = LambertSolver.stumpC(z)
    S = LambertSolver.stumpS(z)

    f = 1 - chi**2 / r0_mag * C
    g = dt - chi**3 * S / sqrt_mu
    r = f * r0 + g * v0
    r_mag = np.linalg.norm(r)

    f_dot = sqrt_mu / (r_mag * r0_mag) * (z * chi * S - chi)
    g_dot = 1 - chi**2 / r_mag * C
    v = f_dot * r0 + g_dot * v0

    return r, v


def _initial_anomaly(r0_mag: float, r0_dot_v0: float, alpha: float, dt: float, mu: float) -> float:
    """Starting guess for the universal anomaly (Vallado, Algorithm 8)."""
    sqrt_mu = np.sqrt(mu)
    if alpha > 1e-12:
        return sqrt_mu * alpha * dt
    if alpha < -1e-12:
        a = 1.0 / alpha
        sign = np.sign(dt)
        denominator = r0_dot_v0 + sign * np.sqrt(-mu * a) * (1.0 - r0_mag * alpha)
        ratio = -2.0 * mu * alpha * dt / denominator
        if np.isfinite(ratio) and ratio > 0:
            return sign * np.sqrt(-a) * np.log(ratio)
    return sqrt_mu * dt / r0_mag


def _bracketed_anomaly(kepler_equation, dt: float, alpha: float, r0_mag: float, sqrt_mu: float,
                       max_iter: int) -> float:
    sign = np.sign(dt)
    step = 1.0 / np.sqrt(abs(alpha)) if abs(alpha) > 1e-12 else sqrt_mu * abs(dt) / r0_mag
    bound = sign * step
    with np.errstate(over='ignore', invalid='ignore'):
        for _ in range(max_iter):
            value = kepler_equation(bound)
            if np.isfinite(value) and sign * value > 0:
                break
            if not np.isfinite(value):
                raise SolverConvergenceError("Universal Kepler equation overflowed while bracketing.",
                                             quantity='universal_anomaly')
            bound *= 2.0
        else:
            raise SolverConvergenceError("Could not bracket the universal anomaly.", quantity='universal_anomaly')

        try:
            return brentq(kepler_equation, min(0.0, bound), max(0.0, bound), xtol=1e-12, maxiter=max_iter)
        except (RuntimeError, ValueError) as e:
            raise SolverConvergenceError(f"Universal Kepler equation did not converge: {e}",
                                         quantity='universal_anomaly') from e


def sample_conic(r0: np.ndarray, v0: np.ndarray, t0: float, epochs: np.ndarray, mu: float) -> np.ndarray:
    """
    States (N, 6) on the conic through (r0, v0) at t0, evaluated at the given epochs.
    """
    states = np.empty((len(epochs), 6))
    for k, t in enumerate(epochs):
        r, v = propagate_kepler(r0, v0, t - t0, mu)
        states[k, 0:3] = r
        states[k, 3:6] = v
    return states
