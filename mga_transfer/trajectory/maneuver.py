import numpy as np
from dataclasses import dataclass, field
from mga_transfer.mission.sequence import LegType


@dataclass(frozen=True)
class Maneuver:
    """
    Impulsive maneuver at a node of the transfer.

    Args:
        epoch (float): Time of maneuver execution [ET].
        position (np.ndarray): Heliocentric position of the node body [km] (3,).
        delta_v (float): Magnitude of the impulse [km/s].
        leg_index (int): Leg that owns the maneuver.
        body (str): Body at the node.
        kind (LegType): DEPARTURE burn, SWINGBY (powered flyby) burn or CAPTURE burn.
    """
    epoch: float
    position: np.ndarray = field(compare=False)
    delta_v: float
    leg_index: int
    body: str
    kind: LegType

    def __post_init__(self):
        position = np.array(self.position, dtype=float)
        if position.shape != (3,):
            raise ValueError(f"Maneuver position must have shape (3,), got {position.shape}")
        position.flags.writeable = False
        object.__setattr__(self, 'position', position)
        object.__setattr__(self, 'delta_v', float(self.delta_v))

    def as_row(self) -> np.ndarray:
        """[epoch, x, y, z, delta_v, leg_index] for tabular output."""
        return np.concatenate(([self.epoch], self.position, [self.delta_v, self.leg_index]))
