import pytest
import numpy as np
from conftest import AU, MU_SUN
from mga_transfer.dynamics.acceleration import PerturbationSet
from mga_transfer.exceptions import ConfigurationError
from mga_transfer.mission.sequence import build_legs, leg_types_for
from mga_transfer.propagation.history import StateHistory
from mga_transfer.propagation.integrator import IntegratorSettings
from mga_transfer.propagation.reconciler import PropagationReconciler, monitored_bodies_for
from mga_transfer.trajectory.kepler import sample_conic

PERIOD = 2 * np.pi * np.sqrt(AU**3 / MU_SUN)
SETTINGS = IntegratorSettings(step_size=3600.0, rtol=1e-11, atol=1e-6)


def circular_history(t_start, t_end, n=41):
    """Circular 1 AU heliocentric orbit, phase zero at t = 0."""
    v = np.sqrt(MU_SUN / AU)
    epochs = np.linspace(t_start, t_end, n)
    return StateHistory(epochs, sample_conic(np.array([AU, 0, 0]), np.array([0, v, 0]), 0.0, epochs, MU_SUN))


@pytest.fixture
def circular_transfer():
    epochs = [0.0, PERIOD / 4, PERIOD / 2]
    legs = build_legs(('Earth', 'Mars', 'Venus'), leg_types_for(2, capture=False), epochs,
                      minimum_periapsis_radii={'Mars': 1.0})
    sets = tuple(PerturbationSet(i, 'Spacecraft', 'Sun', ()) for i in range(2))
    histories = tuple(circular_history(leg.start_epoch, leg.end_epoch) for leg in legs)
    return legs, sets, histories


def test_leg_endpoints_follow_circular_orbit(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer
    reconciler = PropagationReconciler(sun_only_environment, SETTINGS)

    result = reconciler.reconcile_leg(legs[0], sets[0], histories[0])

    assert result.propagated.start_epoch == legs[0].start_epoch
    assert result.propagated.end_epoch == legs[0].end_epoch
    np.testing.assert_allclose(result.propagated.states[0, 0:3], histories[0].states[0, 0:3], atol=10.0)
    np.testing.assert_allclose(result.propagated.states[-1, 0:3], histories[0].states[-1, 0:3], atol=10.0)


def test_forward_and_backward_share_seed(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer
    reconciler = PropagationReconciler(sun_only_environment, SETTINGS)

    result = reconciler.reconcile_leg(legs[1], sets[1], histories[1])

    midpoint = 0.5 * (legs[1].start_epoch + legs[1].end_epoch)
    assert result.seed_epoch == midpoint
    assert result.backward.end_epoch == midpoint
    assert result.forward.start_epoch == midpoint
    np.testing.assert_array_equal(result.backward.states[-1], result.seed_state)
    np.testing.assert_array_equal(result.forward.states[0], result.seed_state)

    # Midpoint appears exactly once in the merged history
    assert np.sum(result.propagated.epochs == midpoint) == 1
    assert len(result.propagated) == len(result.backward) + len(result.forward) - 1


def test_reconcile_leg_is_idempotent(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer
    reconciler = PropagationReconciler(sun_only_environment, SETTINGS)

    first = reconciler.reconcile_leg(legs[0], sets[0], histories[0])
    second = reconciler.reconcile_leg(legs[0], sets[0], histories[0])

    np.testing.assert_array_equal(first.propagated.epochs, second.propagated.epochs)
    np.testing.assert_array_equal(first.propagated.states, second.propagated.states)


def test_reconcile_leg_is_idempotent_between_samples(sun_only_environment, circular_transfer):
    legs, sets, _ = circular_transfer
    # 40 samples put the midpoint between two samples
    history = circular_history(legs[0].start_epoch, legs[0].end_epoch, n=40)
    assert legs[0].midpoint_epoch not in history.epochs
    reconciler = PropagationReconciler(sun_only_environment, SETTINGS)

    first = reconciler.reconcile_leg(legs[0], sets[0], history)
    second = reconciler.reconcile_leg(legs[0], sets[0], history)

    np.testing.assert_array_equal(first.seed_state, second.seed_state)
    np.testing.assert_array_equal(first.propagated.epochs, second.propagated.epochs)
    np.testing.assert_array_equal(first.propagated.states, second.propagated.states)


def test_dependent_variables_are_sun_distances(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer
    reconciler = PropagationReconciler(sun_only_environment, SETTINGS, monitored_bodies=('Sun',))

    result = reconciler.reconcile_leg(legs[0], sets[0], histories[0])

    deps = result.dependent_variables
    assert deps.body_names == ('Sun',)
    np.testing.assert_array_equal(deps.epochs, result.propagated.epochs)
    np.testing.assert_allclose(deps.distance_to('Sun'), AU, rtol=1e-7)


def test_failed_leg_does_not_stop_others(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer
    reconciler = PropagationReconciler(sun_only_environment, SETTINGS, max_workers=2)

    # Leg 1 gets leg 0's samples, which do not cover its midpoint
    result = reconciler.reconcile(legs, sets, (histories[0], histories[0]))

    assert set(result.legs) == {0}
    assert set(result.failures) == {1}
    assert result.failures[1].leg_index == 1
    assert not result.complete


def test_parallel_matches_sequential(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer

    sequential = PropagationReconciler(sun_only_environment, SETTINGS, max_workers=1).reconcile(legs, sets, histories)
    parallel = PropagationReconciler(sun_only_environment, SETTINGS, max_workers=2).reconcile(legs, sets, histories)

    assert sequential.complete and parallel.complete
    for i in (0, 1):
        np.testing.assert_array_equal(sequential.legs[i].propagated.states, parallel.legs[i].propagated.states)


def test_mismatched_inputs(sun_only_environment, circular_transfer):
    legs, sets, histories = circular_transfer
    with pytest.raises(ConfigurationError):
        PropagationReconciler(sun_only_environment).reconcile(legs, sets[:1], histories)
    with pytest.raises(ConfigurationError):
        PropagationReconciler(sun_only_environment, max_workers=0)


def test_monitored_bodies():
    assert monitored_bodies_for(('Earth', 'Venus', 'Venus', 'Earth', 'Jupiter')) == \
        ('Earth', 'Venus', 'Jupiter', 'Sun')
