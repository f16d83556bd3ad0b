from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class PerturbationSet:
    """
    Gravity sources acting on the propagated body during one leg: the central
    body plus point-mass third bodies.
    """
    leg_index: int
    propagated_body: str
    central_body: str
    third_bodies: tuple

    @property
    def bodies(self) -> tuple:
        return (self.central_body,) + self.third_bodies


def build_perturbation_sets(n_legs: int, central_body: str, propagated_body: str,
                            body_sequence: Sequence[str]) -> tuple:
    """
    Builds the gravity model of every leg.

    Leg i feels the central body, the body it departs from and, when different,
    the body it arrives at. A body equal to the central body is not repeated.

    Args:
        n_legs (int): Number of legs.
        central_body (str): Central body of the integration (e.g. 'Sun').
        propagated_body (str): Name of the spacecraft.
        body_sequence (Sequence[str]): Ordered transfer bodies.

    Returns:
        tuple[PerturbationSet, ...]: One set per leg.
    """
    sets = []
    for i in range(n_legs):
        third_bodies = []
        candidates = [body_sequence[i]] if i < len(body_sequence) else []
        if i + 1 < len(body_sequence):
            candidates.append(body_sequence[i + 1])
        for body in candidates:
            if body != central_body and body not in third_bodies:
                third_bodies.append(body)
        sets.append(PerturbationSet(i, propagated_body, central_body, tuple(third_bodies)))
    return tuple(sets)
