import logging
import numpy as np
import matplotlib.pyplot as plt
from mga_transfer.propagation.history import StateHistory

logger = logging.getLogger(__name__)

DAY = 86400.0


def position_differences(analytic: StateHistory, propagated: StateHistory) -> tuple[np.ndarray, np.ndarray]:
    """
    Distance between the propagated and the analytic trajectory at every
    propagated epoch; the analytic state is interpolated there.

    Returns:
        tuple[np.ndarray, np.ndarray]: (epochs [ET], |dr| [km])
    """
    diffs = np.empty(len(propagated))
    for k, t in enumerate(propagated.epochs):
        r_analytic = analytic.interpolate(t)[0:3]
        diffs[k] = np.linalg.norm(propagated.states[k, 0:3] - r_analytic)
    return propagated.epochs.copy(), diffs


def plot_position_differences(analytic_histories, reconciliation, filename: str = None):
    """
    Plots, per propagated leg, how far the numerical trajectory drifts from the
    patched-conic one. Time is measured in days from each leg's midpoint.

    Args:
        analytic_histories: Analytic StateHistory per leg.
        reconciliation (ReconciliationResult): Propagated legs.
        filename (str): If provided, save to file.
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    for index in sorted(reconciliation.legs):
        leg = reconciliation.legs[index]
        epochs, diffs = position_differences(analytic_histories[index], leg.propagated)
        ax.semilogy((epochs - leg.seed_epoch) / DAY, np.maximum(diffs, 1e-6), label=f'Leg {index}')

    ax.axvline(0.0, color='k', linestyle='--', linewidth=0.8)
    ax.set_title("Propagated vs. patched-conic position difference", fontsize=14)
    ax.set_xlabel("Time from leg midpoint (days)", fontsize=12)
    ax.set_ylabel(r"$|\Delta r|$ (km)", fontsize=12)
    ax.legend()

    plt.grid(True, alpha=0.3)
    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=150)
        logger.info("Plot saved to %s", filename)
        plt.close(fig)
    return fig
