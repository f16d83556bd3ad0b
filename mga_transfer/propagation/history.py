import numpy as np
from dataclasses import dataclass
from scipy.interpolate import KroghInterpolator
from mga_transfer.exceptions import IntegrationError

# Nodes used for Lagrange interpolation of a sampled history
INTERPOLATION_ORDER = 8


def _frozen(array: np.ndarray, dtype=float) -> np.ndarray:
    array = np.array(array, dtype=dtype)
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class StateHistory:
    """
    Time-ordered Cartesian states of one leg.

    Attributes:
        epochs (np.ndarray): (N,) strictly increasing epochs [ET].
        states (np.ndarray): (N, 6) states [km, km/s].
    """
    epochs: np.ndarray
    states: np.ndarray

    def __post_init__(self):
        epochs = _frozen(self.epochs)
        states = _frozen(self.states)
        if epochs.ndim != 1 or states.ndim != 2 or states.shape != (epochs.size, 6):
            raise ValueError(f"Expected epochs (N,) and states (N, 6), got {epochs.shape} and {states.shape}")
        if epochs.size > 1 and np.any(np.diff(epochs) <= 0):
            raise ValueError("State history epochs must be strictly increasing")
        object.__setattr__(self, 'epochs', epochs)
        object.__setattr__(self, 'states', states)

    def __len__(self):
        return self.epochs.size

    @property
    def start_epoch(self) -> float:
        return float(self.epochs[0])

    @property
    def end_epoch(self) -> float:
        return float(self.epochs[-1])

    def as_table(self) -> np.ndarray:
        """(N, 7) array: epoch followed by the state."""
        return np.column_stack((self.epochs, self.states))

    def interpolate(self, t: float, order: int = INTERPOLATION_ORDER, leg_index: int = None) -> np.ndarray:
        """
        Lagrange interpolation of the state at t using the `order` samples
        nearest to it. A sample at exactly t is returned as is.

        Raises:
            IntegrationError: If t lies outside the covered span or there are
                              fewer samples than interpolation nodes.
        """
        if not (self.epochs[0] <= t <= self.epochs[-1]):
            raise IntegrationError(
                f"Interpolation epoch outside the sampled span [{self.epochs[0]:.3f}, {self.epochs[-1]:.3f}]",
                leg_index=leg_index, epoch=t, quantity='state')
        if len(self) < order:
            raise IntegrationError(f"Need at least {order} samples to interpolate, got {len(self)}",
                                   leg_index=leg_index, epoch=t, quantity='state')

        i = int(np.searchsorted(self.epochs, t))
        if i < len(self) and self.epochs[i] == t:
            return self.states[i].copy()

        # Window of `order` consecutive samples centred on t
        start = min(max(i - order // 2, 0), len(self) - order)
        window = slice(start, start + order)

        # Shift and scale time for conditioning; nodes are used in window order
        t_nodes = self.epochs[window]
        scale = t_nodes[-1] - t_nodes[0]
        x = (t_nodes - t) / scale
        interpolator = KroghInterpolator(x, self.states[window], axis=0)
        return np.asarray(interpolator(0.0), dtype=float)

    @classmethod
    def merge(cls, backward: 'StateHistory', forward: 'StateHistory') -> 'StateHistory':
        """
        Joins a backward arc (chronologically ordered, ending at the seed) and a
        forward arc (starting at the seed). The shared seed appears once.
        """
        if backward.epochs[-1] != forward.epochs[0]:
            raise ValueError("Backward and forward arcs do not share their seed epoch")
        epochs = np.concatenate((backward.epochs, forward.epochs[1:]))
        states = np.concatenate((backward.states, forward.states[1:]), axis=0)
        return cls(epochs, states)


@dataclass(frozen=True)
class DependentVariableHistory:
    """
    Distances from the propagated body to the monitored bodies.

    Attributes:
        epochs (np.ndarray): (N,) epochs [ET].
        body_names (tuple): (M,) monitored body names.
        distances (np.ndarray): (N, M) distances [km].
    """
    epochs: np.ndarray
    body_names: tuple
    distances: np.ndarray

    def __post_init__(self):
        epochs = _frozen(self.epochs)
        distances = _frozen(self.distances)
        body_names = tuple(self.body_names)
        if distances.shape != (epochs.size, len(body_names)):
            raise ValueError(f"Expected distances of shape {(epochs.size, len(body_names))}, got {distances.shape}")
        object.__setattr__(self, 'epochs', epochs)
        object.__setattr__(self, 'body_names', body_names)
        object.__setattr__(self, 'distances', distances)

    def as_table(self) -> np.ndarray:
        return np.column_stack((self.epochs, self.distances))

    def distance_to(self, body: str) -> np.ndarray:
        return self.distances[:, self.body_names.index(body)]
