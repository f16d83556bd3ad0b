"""Tabular output artifacts of a transfer run."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from mga_transfer.exceptions import OutputWriteError

logger = logging.getLogger(__name__)

STATE_HEADER = "epoch_et x_km y_km z_km vx_km_s vy_km_s vz_km_s"


def write_table(path: str | Path, data: np.ndarray, header: str = "", leg_index: int = None) -> Path:
    """
    Writes a space-delimited table with np.savetxt.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savetxt(path, np.atleast_2d(data), delimiter=" ", header=header, fmt="%.17g")
    except OSError as e:
        raise OutputWriteError(f"cannot write {path}: {e}", str(path), leg_index) from e
    logger.debug("Wrote %s", path)
    return path


def leg_artifacts(leg_index: int, analytic_history=None, reconciled_leg=None) -> dict:
    """File name -> (table, header) for every artifact available for one leg."""
    artifacts = {}
    if analytic_history is not None:
        artifacts[f"leg{leg_index}_analytic.dat"] = (analytic_history.as_table(), STATE_HEADER)
    if reconciled_leg is not None:
        artifacts[f"leg{leg_index}_forward.dat"] = (reconciled_leg.forward.as_table(), STATE_HEADER)
        artifacts[f"leg{leg_index}_backward.dat"] = (reconciled_leg.backward.as_table(), STATE_HEADER)
        artifacts[f"leg{leg_index}_propagated.dat"] = (reconciled_leg.propagated.as_table(), STATE_HEADER)
        dependent = reconciled_leg.dependent_variables
        header = "epoch_et " + " ".join(f"dist_{name.replace(' ', '_')}_km" for name in dependent.body_names)
        artifacts[f"leg{leg_index}_dependent.dat"] = (dependent.as_table(), header)
    return artifacts


def write_run_outputs(output_dir: str | Path, trajectory, analytic_histories, reconciliation=None,
                      numerical_wall_clock: float = np.nan) -> list:
    """
    Writes every artifact of a run. A file that cannot be written is logged
    and skipped; the remaining files are still written.

    Args:
        output_dir: Destination directory.
        trajectory (TrajectoryResult): Analytic delta-v budget.
        analytic_histories: Analytic StateHistory per leg.
        reconciliation (ReconciliationResult): Propagated legs, if any.
        numerical_wall_clock (float): Duration of the numerical phase [s].

    Returns:
        list[OutputWriteError]: Artifacts that failed.
    """
    output_dir = Path(output_dir)
    artifacts = {}

    for i, history in enumerate(analytic_histories):
        reconciled = reconciliation.legs.get(i) if reconciliation is not None else None
        artifacts.update(leg_artifacts(i, history, reconciled))

    artifacts["summary.dat"] = (
        np.array([trajectory.total_delta_v, trajectory.capture_delta_v, numerical_wall_clock]),
        "total_delta_v_km_s capture_delta_v_km_s numerical_wall_clock_s",
    )
    if trajectory.maneuvers:
        artifacts["maneuvers.dat"] = (
            np.array([m.as_row() for m in trajectory.maneuvers]),
            "epoch_et x_km y_km z_km delta_v_km_s leg_index",
        )

    failures = []
    for name, (table, header) in artifacts.items():
        leg_index = int(name[3:name.index("_")]) if name.startswith("leg") else None
        try:
            write_table(output_dir / name, table, header, leg_index)
        except OutputWriteError as e:
            logger.warning("Skipping artifact %s: %s", name, e)
            failures.append(e)

    logger.info("Wrote %d/%d artifacts to %s", len(artifacts) - len(failures), len(artifacts), output_dir)
    return failures
