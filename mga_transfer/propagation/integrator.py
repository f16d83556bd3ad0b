import logging
import numpy as np
from dataclasses import dataclass
from scipy.integrate import BDF, DOP853, LSODA, RK23, RK45, Radau
from mga_transfer.exceptions import ConfigurationError, IntegrationError
from mga_transfer.propagation.history import StateHistory

logger = logging.getLogger(__name__)

INTEGRATION_METHODS = {
    'RK23': RK23,
    'RK45': RK45,
    'DOP853': DOP853,
    'Radau': Radau,
    'BDF': BDF,
    'LSODA': LSODA,
}


@dataclass(frozen=True)
class IntegratorSettings:
    """
    Numerical integration settings shared by every leg.

    Attributes:
        method (str): scipy.integrate solver name.
        step_size (float): Initial step [s].
        max_step (float): Largest allowed step [s].
        rtol (float): Relative tolerance.
        atol (float): Absolute tolerance.
        max_steps (int): Safeguard on the number of steps per arc.
    """
    method: str = 'DOP853'
    step_size: float = 1000.0
    max_step: float = np.inf
    rtol: float = 1e-10
    atol: float = 1e-6
    max_steps: int = 200000

    def __post_init__(self):
        if self.method not in INTEGRATION_METHODS:
            raise ConfigurationError(f"Unknown integration method '{self.method}'. "
                                     f"Available: {sorted(INTEGRATION_METHODS)}", quantity='method')
        if not self.step_size > 0:
            raise ConfigurationError(f"Step size must be positive, got {self.step_size}", quantity='step_size')
        if not self.max_step > 0:
            raise ConfigurationError(f"Maximum step must be positive, got {self.max_step}", quantity='max_step')
        if not (self.rtol > 0 and self.atol > 0):
            raise ConfigurationError("Integration tolerances must be positive", quantity='tolerance')
        if int(self.max_steps) < 1:
            raise ConfigurationError(f"max_steps must be at least 1, got {self.max_steps}", quantity='max_steps')


def propagate_arc(fun, t0: float, y0: np.ndarray, t_bound: float, settings: IntegratorSettings,
                  leg_index: int = None) -> StateHistory:
    """
    Integrates y' = fun(t, y) from (t0, y0) to t_bound.

    The direction follows the sign of t_bound - t0. Every accepted step is
    recorded and the seed y0 is kept as the first sample. The returned
    history is chronological regardless of direction.

    Args:
        fun (callable): Right-hand side fun(t, y).
        t0 (float): Seed epoch [ET].
        y0 (np.ndarray): Seed state (6,).
        t_bound (float): Target epoch [ET].
        settings (IntegratorSettings): Integrator configuration.
        leg_index (int): Leg being integrated, for error context.

    Returns:
        StateHistory

    Raises:
        IntegrationError: On solver failure, non-finite states or when the
                          step-count safeguard is exceeded.
    """
    y0 = np.array(y0, dtype=float)
    if not np.all(np.isfinite(y0)):
        raise IntegrationError("Non-finite seed state", leg_index=leg_index, epoch=t0, quantity='state')

    epochs = [float(t0)]
    states = [y0.copy()]

    if t_bound != t0:
        solver_class = INTEGRATION_METHODS[settings.method]
        try:
            solver = solver_class(fun, t0, y0, t_bound,
                                  first_step=min(settings.step_size, abs(t_bound - t0)),
                                  max_step=settings.max_step, rtol=settings.rtol, atol=settings.atol)
        except ConfigurationError as e:
            raise IntegrationError(f"Force model evaluation failed: {e}", leg_index=leg_index, epoch=t0) from e
        n_steps = 0
        while solver.status == 'running':
            if n_steps >= settings.max_steps:
                raise IntegrationError(f"Step limit of {settings.max_steps} exceeded before reaching {t_bound:.3f}",
                                       leg_index=leg_index, epoch=solver.t, quantity='max_steps')
            try:
                message = solver.step()
            except ConfigurationError as e:
                raise IntegrationError(f"Force model evaluation failed: {e}", leg_index=leg_index,
                                       epoch=solver.t) from e
            n_steps += 1

            if solver.status == 'failed':
                raise IntegrationError(f"Integrator failed: {message}", leg_index=leg_index, epoch=solver.t)
            if not np.all(np.isfinite(solver.y)):
                raise IntegrationError("Non-finite state encountered", leg_index=leg_index, epoch=solver.t,
                                       quantity='state')

            epochs.append(float(solver.t))
            states.append(solver.y.copy())

        logger.debug("Arc %.3f -> %.3f integrated in %d steps", t0, t_bound, n_steps)

    epochs = np.array(epochs)
    states = np.array(states)
    if t_bound < t0:
        epochs = epochs[::-1]
        states = states[::-1]
    return StateHistory(epochs, states)
