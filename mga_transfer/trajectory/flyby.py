import numpy as np
from dataclasses import dataclass
from scipy.optimize import brentq
from mga_transfer.exceptions import InfeasibleLegError, SolverConvergenceError


def compute_turn_angle(v_inf_mag: float, mu: float, rp: float) -> float:
    """
    Computes the turn angle (delta) for a hyperbolic flyby.

    Args:
        v_inf_mag (float): Hyperbolic excess velocity magnitude [km/s].
        mu (float): Gravitational parameter of the flyby body [km^3/s^2].
        rp (float): Periapsis radius [km].

    Returns:
        float: Turn angle in radians.
    """
    # delta = 2 * arcsin(1 / e), with eccentricity e = 1 + rp * v_inf^2 / mu
    e = 1.0 + (rp * v_inf_mag**2) / mu
    return 2.0 * np.arcsin(1.0 / e)


def compute_aiming_radius(v_inf_mag: float, mu: float, rp: float) -> float:
    """
    Computes the aiming radius (b), also known as the impact parameter.

    Note:
        b = rp * sqrt(1 + 2*mu/(rp*v_inf^2))
    """
    return rp * np.sqrt(1.0 + (2.0 * mu) / (rp * v_inf_mag**2))


def maximum_bending_angle(v_inf_in: float, v_inf_out: float, mu: float, rp: float) -> float:
    """
    Bending achievable by a (possibly powered) flyby with periapsis rp, when
    the incoming and outgoing hyperbolas have different excess speeds.
    Each branch contributes half of its own symmetric turn angle.
    """
    return 0.5 * (compute_turn_angle(v_inf_in, mu, rp) + compute_turn_angle(v_inf_out, mu, rp))


@dataclass(frozen=True)
class FlybyResult:
    """Geometry and cost of a swing-by at an intermediate body."""
    body: str
    epoch: float
    v_inf_in: float
    v_inf_out: float
    bending_angle: float
    max_bending_angle: float
    periapsis_radius: float
    aiming_radius: float
    delta_v: float


def powered_swingby(body: str, epoch: float, v_inf_in_vec: np.ndarray, v_inf_out_vec: np.ndarray,
                    mu: float, body_radius: float, min_periapsis_radius: float,
                    leg_index: int = None, max_iter: int = 200) -> FlybyResult:
    """
    Matches the incoming and outgoing excess velocities of a flyby.

    The direction change must be produced entirely by the body's gravity: the
    periapsis radius is solved so that the bending of the two hyperbolic
    branches equals the angle between the two V-infinity vectors. The only
    propulsive cost is the periapsis burn that takes the spacecraft from the
    incoming to the outgoing hyperbola (zero when both excess speeds match).

    Args:
        body (str): Flyby body name.
        epoch (float): Flyby epoch [ET].
        v_inf_in_vec (np.ndarray): Incoming V-infinity relative to the body [km/s].
        v_inf_out_vec (np.ndarray): Outgoing V-infinity relative to the body [km/s].
        mu (float): Body gravitational parameter [km^3/s^2].
        body_radius (float): Physical radius of the body [km].
        min_periapsis_radius (float): Smallest allowed periapsis radius [km].
        leg_index (int): Leg starting at this flyby, for error context.

    Returns:
        FlybyResult

    Raises:
        InfeasibleLegError: If the required bending exceeds what rp_min allows,
                            or the solved periapsis lies below the body surface.
        SolverConvergenceError: If the periapsis radius cannot be solved.
    """
    v_in = np.linalg.norm(v_inf_in_vec)
    v_out = np.linalg.norm(v_inf_out_vec)
    if v_in == 0 or v_out == 0:
        raise InfeasibleLegError(f"Zero excess velocity at {body} flyby", leg_index=leg_index, epoch=epoch,
                                 quantity='v_inf')

    cos_bend = np.clip(np.dot(v_inf_in_vec, v_inf_out_vec) / (v_in * v_out), -1.0, 1.0)
    bending = np.arccos(cos_bend)

    max_bending = maximum_bending_angle(v_in, v_out, mu, min_periapsis_radius)
    if bending > max_bending:
        raise InfeasibleLegError(
            f"{body} flyby requires {np.degrees(bending):.3f} deg of bending but only "
            f"{np.degrees(max_bending):.3f} deg is admissible at rp_min={min_periapsis_radius:.1f} km",
            leg_index=leg_index, epoch=epoch, quantity='bending_angle')

    if bending < 1e-12:
        # No turn needed: the hyperbola degenerates into a straight pass at infinity
        rp = np.inf
        delta_v = abs(v_out - v_in)
    else:
        def residual(rp):
            return maximum_bending_angle(v_in, v_out, mu, rp) - bending

        # Bending decreases monotonically with rp; bracket the root above rp_min
        rp_high = 2.0 * min_periapsis_radius
        for _ in range(max_iter):
            if residual(rp_high) < 0:
                break
            rp_high *= 2.0
        else:
            raise SolverConvergenceError(f"Could not bracket the {body} flyby periapsis radius",
                                         leg_index=leg_index, epoch=epoch, quantity='periapsis_radius')

        if residual(min_periapsis_radius) == 0:
            rp = min_periapsis_radius
        else:
            try:
                rp = brentq(residual, min_periapsis_radius, rp_high, rtol=1e-12, maxiter=max_iter)
            except (RuntimeError, ValueError) as e:
                raise SolverConvergenceError(f"{body} flyby periapsis radius did not converge: {e}",
                                             leg_index=leg_index, epoch=epoch, quantity='periapsis_radius') from e

        delta_v = abs(np.sqrt(v_out**2 + 2 * mu / rp) - np.sqrt(v_in**2 + 2 * mu / rp))

    if rp < body_radius:
        raise InfeasibleLegError(
            f"{body} flyby periapsis {rp:.1f} km lies below the surface (radius {body_radius:.1f} km)",
            leg_index=leg_index, epoch=epoch, quantity='periapsis_radius')

    return FlybyResult(
        body=body,
        epoch=epoch,
        v_inf_in=v_in,
        v_inf_out=v_out,
        bending_angle=bending,
        max_bending_angle=max_bending,
        periapsis_radius=rp,
        aiming_radius=compute_aiming_radius(v_in, mu, rp) if np.isfinite(rp) else np.inf,
        delta_v=delta_v,
    )
