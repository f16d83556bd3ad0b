import numpy as np
from scipy.optimize import brentq
from mga_transfer.exceptions import SolverConvergenceError


class LambertSolver:
    """
    Zero-revolution Lambert solver using Universal Variables.
    Finds the velocity vectors at two points (r1, r2) given the time of flight (dt).

    The time-of-flight equation is monotonic in the universal variable z, so the
    root is bracketed between the parabolic limit and z = (2*pi)^2 and refined
    with Brent's method rather than an unguarded Newton iteration.
    """

    # Upper limit of z for a single revolution: (2*pi)^2
    Z_MAX = 4.0 * np.pi**2

    @staticmethod
    def solve(r1: np.ndarray, r2: np.ndarray, dt: float, mu: float, prograde: bool = True,
              max_iter: int = 200, tol: float = 1e-12) -> tuple[np.ndarray, np.ndarray]:
        """
        Solves Lambert's problem for the transfer between position vectors r1 and r2
        with time of flight dt.

        Args:
            r1 (np.ndarray): Initial position vector [km].
            r2 (np.ndarray): Final position vector [km].
            dt (float): Time of flight [seconds].
            mu (float): Gravitational parameter [km^3/s^2].
            prograde (bool): If True, the transfer angular momentum has a positive
                             z component; otherwise the retrograde solution.
            max_iter (int): Maximum iterations of the root finder.
            tol (float): Absolute tolerance on z.

        Returns:
            tuple[np.ndarray, np.ndarray]: (v1, v2) - Velocity vectors at r1 and r2 [km/s].

        Raises:
            SolverConvergenceError: If the geometry is singular or the solver fails to converge.
        """
        if dt <= 0:
            raise SolverConvergenceError(f"Time of flight must be positive, got {dt}", quantity='time_of_flight')

        r1 = np.asarray(r1, dtype=float)
        r2 = np.asarray(r2, dtype=float)
        r1_mag = np.linalg.norm(r1)
        r2_mag = np.linalg.norm(r2)

        cross_12 = np.cross(r1, r2)
        cos_dnu = np.clip(np.dot(r1, r2) / (r1_mag * r2_mag), -1.0, 1.0)
        dnu = np.arccos(cos_dnu)

        # Pick the branch whose angular momentum matches the requested direction
        if prograde:
            if cross_12[2] < 0:
                dnu = 2 * np.pi - dnu
        else:
            if cross_12[2] >= 0:
                dnu = 2 * np.pi - dnu

        if 1 - np.cos(dnu) < 1e-14:
            raise SolverConvergenceError("Zero transfer angle: r1 and r2 are collinear and co-directional.",
                                         quantity='transfer_angle')

        A = np.sin(dnu) * np.sqrt((r1_mag * r2_mag) / (1 - np.cos(dnu)))

        if abs(A) < 1e-12 * (r1_mag + r2_mag):
            raise SolverConvergenceError("Limit case A=0 (180 degree transfer): transfer plane is undefined.",
                                         quantity='transfer_angle')

        def y_of(z):
            return r1_mag + r2_mag + A * (z * LambertSolver.stumpS(z) - 1.0) / np.sqrt(LambertSolver.stumpC(z))

        def tof_equation(z):
            y = y_of(z)
            if y <= 0:
                # Below the parabolic limit: time of flight tends to zero there
                return -dt
            c_z = LambertSolver.stumpC(z)
            x = np.sqrt(y / c_z)
            t_flight = (x**3 * LambertSolver.stumpS(z) + A * np.sqrt(y)) / np.sqrt(mu)
            return t_flight - dt

        # Bracket the root
        z_high = LambertSolver.Z_MAX - 1e-3
        z_low = -4.0
        for _ in range(max_iter):
            if tof_equation(z_low) < 0:
                break
            z_low *= 2.0
        else:
            raise SolverConvergenceError("Lambert solver could not bracket the hyperbolic branch.",
                                         quantity='universal_variable')

        if not tof_equation(z_high) > 0:
            raise SolverConvergenceError("Lambert solver could not bracket the elliptic branch.",
                                         quantity='universal_variable')

        try:
            z = brentq(tof_equation, z_low, z_high, xtol=tol, maxiter=max_iter)
        except (RuntimeError, ValueError) as e:
            raise SolverConvergenceError(f"Lambert solver failed to converge: {e}", quantity='universal_variable') from e

        y = y_of(z)
        if y <= 0:
            raise SolverConvergenceError("Lambert solution lies below the parabolic limit.", quantity='universal_variable')

        f = 1 - (y / r1_mag)
        g = A * np.sqrt(y / mu)
        g_dot = 1 - (y / r2_mag)

        v1 = (r2 - f * r1) / g
        v2 = (g_dot * r2 - r1) / g

        return v1, v2

    @staticmethod
    def stumpS(z):
        if z > 1e-6:
            return (np.sqrt(z) - np.sin(np.sqrt(z))) / (np.sqrt(z))**3
        elif z < -1e-6:
            return (np.sinh(np.sqrt(-z)) - np.sqrt(-z)) / (np.sqrt(-z))**3
        else:
            return 1.0/6.0 - z/120.0

    @staticmethod
    def stumpC(z):
        if z > 1e-6:
            return (1 - np.cos(np.sqrt(z))) / z
        elif z < -1e-6:
            return (np.cosh(np.sqrt(-z)) - 1) / (-z)
        else:
            return 0.5 - z/24.0
