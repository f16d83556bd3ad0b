"""
Leg and body-sequence bookkeeping.

Turns the flat parameter vector [t0, d1, ..., dn, case] (days) into an
immutable TransferProblem: the body sequence, one Leg per consecutive body
pair with its type, epochs and flyby periapsis bound, and the capture orbit.
"""
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
from mga_transfer.exceptions import ConfigurationError

DAY = 86400.0

# Intermediate bodies (X, Y) of the Earth-Venus-X-Y-Jupiter sequence
TRANSFER_CASES = (
    ('Earth', 'Earth'),
    ('Venus', 'Earth'),
    ('Earth', 'Venus'),
    ('Venus', 'Mars'),
    ('Earth', 'Mars'),
    ('Mars', 'Mars'),
    ('Mars', 'Venus'),
)

# [t0 (days past J2000), leg durations (days)..., case index]
DEFAULT_PARAMETERS = (-1851.46422926478, 94.13188652993128, 381.9429079287791,
                      55.6729929900098, 700.990295462437, 1)

# Smallest admissible flyby periapsis radius per body [km]
DEFAULT_MINIMUM_PERIAPSIS_RADII = {
    'Mercury': 2639.7,
    'Venus': 6251.8,
    'Earth': 6578.1,
    'Mars': 3596.2,
    'Jupiter': 72000.0,
    'Saturn': 61000.0,
    'Uranus': 26000.0,
    'Neptune': 25000.0,
    'Pluto': 1395.0,
}

# Highly eccentric Jupiter capture orbit
CAPTURE_SEMI_MAJOR_AXIS = 1.0895e5 / 0.02  # km
CAPTURE_ECCENTRICITY = 0.98


class LegType(Enum):
    DEPARTURE = 'departure'
    SWINGBY = 'swingby'
    CAPTURE = 'capture'


@dataclass(frozen=True)
class KeplerOrbit:
    """Bound orbit around a departure or arrival body."""
    semi_major_axis: float
    eccentricity: float

    def __post_init__(self):
        if not (self.semi_major_axis > 0):
            raise ConfigurationError(f"Orbit semi-major axis must be positive, got {self.semi_major_axis}")
        if not (0.0 <= self.eccentricity < 1.0):
            raise ConfigurationError(f"Orbit eccentricity must be in [0, 1), got {self.eccentricity}")

    @property
    def periapsis_radius(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity)


@dataclass(frozen=True)
class Leg:
    """
    One transfer segment between two consecutive bodies.

    minimum_periapsis_radius bounds the flyby of departure_body at start_epoch
    (NaN for the departure leg, which starts with a launch burn instead).
    """
    index: int
    departure_body: str
    arrival_body: str
    leg_type: LegType
    start_epoch: float
    end_epoch: float
    minimum_periapsis_radius: float = np.nan

    @property
    def duration(self) -> float:
        return self.end_epoch - self.start_epoch

    @property
    def midpoint_epoch(self) -> float:
        return 0.5 * (self.start_epoch + self.end_epoch)


@dataclass(frozen=True)
class TransferProblem:
    body_sequence: tuple
    legs: tuple
    capture_orbit: Optional[KeplerOrbit] = None
    departure_orbit: Optional[KeplerOrbit] = None
    central_body: str = 'Sun'

    @property
    def n_legs(self) -> int:
        return len(self.legs)

    @property
    def leg_types(self) -> tuple:
        return tuple(leg.leg_type for leg in self.legs)


def transfer_body_order(case: int) -> tuple:
    """Earth-Venus-X-Y-Jupiter for the selected entry of TRANSFER_CASES."""
    if isinstance(case, float):
        if not case.is_integer():
            raise ConfigurationError(f"Transfer case selector must be an integer, got {case}")
        case = int(case)
    if not 0 <= case < len(TRANSFER_CASES):
        raise ConfigurationError(f"Transfer case selector {case} outside [0, {len(TRANSFER_CASES) - 1}]")
    third, fourth = TRANSFER_CASES[case]
    return ('Earth', 'Venus', third, fourth, 'Jupiter')


def leg_types_for(n_legs: int, capture: bool = True) -> tuple:
    """
    Departure first, capture last (when configured), swing-bys in between.
    """
    if n_legs < 1:
        raise ConfigurationError("A transfer needs at least one leg")
    if n_legs == 1:
        return (LegType.DEPARTURE,)
    final = LegType.CAPTURE if capture else LegType.SWINGBY
    return (LegType.DEPARTURE,) + (LegType.SWINGBY,) * (n_legs - 2) + (final,)


def validate_leg_types(leg_types: Sequence[LegType]):
    n = len(leg_types)
    if n == 0 or leg_types[0] != LegType.DEPARTURE:
        raise ConfigurationError("The first leg must be a departure leg", leg_index=0)
    for i, leg_type in enumerate(leg_types[1:-1], start=1):
        if leg_type != LegType.SWINGBY:
            raise ConfigurationError(f"Intermediate leg must be a swing-by leg, got {leg_type.value}", leg_index=i)
    if n > 1 and leg_types[-1] not in (LegType.CAPTURE, LegType.SWINGBY):
        raise ConfigurationError("The final leg must be a capture or swing-by leg", leg_index=n - 1)


def build_legs(body_sequence: Sequence[str], leg_types: Sequence[LegType], epochs: Sequence[float],
               minimum_periapsis_radii: dict = None) -> tuple:
    """
    Creates the legs of a transfer.

    Args:
        body_sequence: Ordered body names (length L >= 2).
        leg_types: One LegType per leg (length L - 1).
        epochs: Node epochs [ET], length L, strictly increasing.
        minimum_periapsis_radii: Per-body flyby bounds [km]; missing bodies
                                 fall back to DEFAULT_MINIMUM_PERIAPSIS_RADII.

    Returns:
        tuple[Leg, ...]

    Raises:
        ConfigurationError: On malformed sequences, epochs or radii.
    """
    body_sequence = tuple(body_sequence)
    if len(body_sequence) < 2:
        raise ConfigurationError(f"Body sequence needs at least 2 bodies, got {len(body_sequence)}")
    n_legs = len(body_sequence) - 1
    if len(leg_types) != n_legs:
        raise ConfigurationError(f"Expected {n_legs} leg types for {len(body_sequence)} bodies, got {len(leg_types)}")
    if len(epochs) != len(body_sequence):
        raise ConfigurationError(f"Expected {len(body_sequence)} node epochs, got {len(epochs)}")
    validate_leg_types(leg_types)

    radii = dict(DEFAULT_MINIMUM_PERIAPSIS_RADII)
    radii.update(minimum_periapsis_radii or {})

    legs = []
    for i in range(n_legs):
        start, end = float(epochs[i]), float(epochs[i + 1])
        if not (np.isfinite(start) and np.isfinite(end)):
            raise ConfigurationError("Leg epochs must be finite", leg_index=i)
        if not end > start:
            raise ConfigurationError("Leg epochs must be strictly increasing", leg_index=i, epoch=end)

        rp_min = np.nan
        if i > 0:
            body = body_sequence[i]
            if body not in radii:
                raise ConfigurationError(f"No minimum periapsis radius for flyby body '{body}'", leg_index=i)
            rp_min = float(radii[body])
            if not rp_min > 0:
                raise ConfigurationError(f"Minimum periapsis radius for '{body}' must be positive",
                                         leg_index=i, quantity='minimum_periapsis_radius')

        legs.append(Leg(
            index=i,
            departure_body=body_sequence[i],
            arrival_body=body_sequence[i + 1],
            leg_type=leg_types[i],
            start_epoch=start,
            end_epoch=end,
            minimum_periapsis_radius=rp_min,
        ))
    return tuple(legs)


def problem_from_parameters(parameters: Sequence[float], minimum_periapsis_radii: dict = None,
                            capture_orbit: Optional[KeplerOrbit] = None,
                            departure_orbit: Optional[KeplerOrbit] = None,
                            capture: bool = True) -> TransferProblem:
    """
    Builds the transfer problem from [t0, d1, ..., dn, case].

    t0 is in days past J2000 and the durations in days. The case selector picks
    the two intermediate flyby bodies from TRANSFER_CASES. Unless given, the
    final leg is a capture into the default Jupiter orbit. With capture=False
    the transfer ends with an unpowered pass of the last body.
    """
    parameters = [float(p) for p in parameters]
    body_sequence = transfer_body_order(parameters[-1]) if parameters else ()
    n_legs = len(body_sequence) - 1
    if len(parameters) != n_legs + 2:
        raise ConfigurationError(
            f"Parameter vector must hold a start epoch, {n_legs} leg durations and a case selector "
            f"({n_legs + 2} values), got {len(parameters)}")

    durations = np.array(parameters[1:-1])
    if np.any(durations <= 0):
        raise ConfigurationError(f"Leg durations must be positive, got {durations.tolist()}",
                                 leg_index=int(np.argmax(durations <= 0)))

    epochs = parameters[0] * DAY + np.concatenate(([0.0], np.cumsum(durations * DAY)))

    if not capture:
        capture_orbit = None
    elif capture_orbit is None:
        capture_orbit = KeplerOrbit(CAPTURE_SEMI_MAJOR_AXIS, CAPTURE_ECCENTRICITY)

    legs = build_legs(body_sequence, leg_types_for(n_legs, capture=capture), epochs, minimum_periapsis_radii)
    return TransferProblem(body_sequence=body_sequence, legs=legs, capture_orbit=capture_orbit,
                           departure_orbit=departure_orbit)
