"""
Error taxonomy for the transfer pipeline.

ConfigurationError, SolverConvergenceError and InfeasibleLegError abort the
whole run. IntegrationError only aborts the leg it was raised for and
OutputWriteError only the artifact that could not be written.
"""


class TransferError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, leg_index: int = None, epoch: float = None, quantity: str = None):
        self.leg_index = leg_index
        self.epoch = epoch
        self.quantity = quantity

        context = []
        if leg_index is not None:
            context.append(f"leg={leg_index}")
        if epoch is not None:
            context.append(f"epoch={epoch:.3f}")
        if quantity is not None:
            context.append(f"quantity={quantity}")

        if context:
            message = f"{message} [{', '.join(context)}]"
        super().__init__(message)


class ConfigurationError(TransferError, ValueError):
    """Invalid case selector, malformed body sequence, non-increasing epochs, bad settings."""


class SolverConvergenceError(TransferError, RuntimeError):
    """Lambert (or Kepler) iteration failed."""


class InfeasibleLegError(TransferError):
    """A flyby needs more bending than the minimum periapsis radius allows."""


class IntegrationError(TransferError, RuntimeError):
    """Numerical propagation of a leg failed."""


class OutputWriteError(TransferError, OSError):
    """An output artifact could not be written."""

    def __init__(self, message: str, path: str = None, leg_index: int = None):
        self.path = path
        super().__init__(message, leg_index=leg_index, quantity=path)
