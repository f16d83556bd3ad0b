import json
import pytest
import numpy as np
import dataclasses
from mga_transfer.__main__ import main
from mga_transfer.environment.approximate import ApproximateEphemeris
from mga_transfer.exceptions import ConfigurationError, OutputWriteError
from mga_transfer.io.config import (default_run_config, load_run_config, run_config_from_definition,
                                    save_run_config)
from mga_transfer.io.output import write_table
from mga_transfer.mission.plotting import position_differences
from mga_transfer.mission.sequence import DEFAULT_PARAMETERS, LegType
from mga_transfer.pipeline import run_transfer
from mga_transfer.propagation.integrator import IntegratorSettings


@pytest.fixture(scope="module")
def default_run(tmp_path_factory):
    out = tmp_path_factory.mktemp("run") / "out"
    environment = ApproximateEphemeris(radius_overrides={name: 1.0 for name in ('Venus', 'Earth', 'Jupiter')})
    config = dataclasses.replace(
        default_run_config(),
        environment='approximate',
        minimum_periapsis_radii={'Venus': 1.0, 'Earth': 1.0},
        integrator=IntegratorSettings(rtol=1e-9, atol=1e-6),
        max_workers=4,
        output_dir=str(out),
    )
    return run_transfer(config, environment=environment), out


def test_default_scenario(default_run):
    run, _ = default_run

    assert run.problem.leg_types == (LegType.DEPARTURE, LegType.SWINGBY, LegType.SWINGBY, LegType.CAPTURE)
    assert np.isfinite(run.solution.trajectory.total_delta_v)
    assert np.isfinite(run.solution.trajectory.capture_delta_v)
    assert run.numerical_wall_clock > 0

    assert run.reconciliation.complete
    assert sorted(run.reconciliation.legs) == [0, 1, 2, 3]
    for leg in run.problem.legs:
        propagated = run.reconciliation.legs[leg.index].propagated
        assert propagated.start_epoch == leg.start_epoch
        assert propagated.end_epoch == leg.end_epoch

    # Seeds come from the analytic solution at each leg's midpoint
    for leg in run.problem.legs:
        reconciled = run.reconciliation.legs[leg.index]
        analytic = run.solution.analytic_histories[leg.index]
        np.testing.assert_array_equal(reconciled.seed_state, analytic.interpolate(leg.midpoint_epoch))


def test_default_scenario_outputs(default_run):
    run, out = default_run

    for i in range(4):
        for kind in ('analytic', 'forward', 'backward', 'propagated', 'dependent'):
            assert (out / f'leg{i}_{kind}.dat').exists()

    summary = np.loadtxt(out / 'summary.dat')
    assert np.isclose(summary[0], run.solution.trajectory.total_delta_v)
    assert np.isclose(summary[1], run.solution.trajectory.capture_delta_v)

    maneuvers = np.loadtxt(out / 'maneuvers.dat')
    assert maneuvers.shape == (5, 6)

    propagated = np.loadtxt(out / 'leg2_propagated.dat')
    assert propagated.shape[1] == 7
    dependent = np.loadtxt(out / 'leg2_dependent.dat')
    # Earth, Venus, Jupiter and the Sun
    assert dependent.shape[1] == 5
    assert not run.output_failures


def test_position_differences_vanish_at_seed(default_run):
    run, _ = default_run
    leg = run.reconciliation.legs[1]

    epochs, diffs = position_differences(run.solution.analytic_histories[1], leg.propagated)

    seed_index = int(np.where(epochs == leg.seed_epoch)[0][0])
    assert diffs[seed_index] == 0.0
    assert np.all(diffs >= 0)


def test_config_round_trip(tmp_path):
    config = dataclasses.replace(default_run_config(), max_workers=3, environment='approximate')
    path = tmp_path / 'run.json'

    save_run_config(path, config)
    loaded = load_run_config(path)

    assert loaded == config
    assert loaded.parameters == DEFAULT_PARAMETERS


def test_config_without_capture():
    config = run_config_from_definition({'capture': None})
    assert config.capture_orbit is None
    assert config.build_problem().leg_types[-1] == LegType.SWINGBY


@pytest.mark.parametrize("defn", [
    [],
    {'schema_version': 2},
    {'parameters': 'abc'},
    {'sample_step': -1},
    {'integrator': {'method': 'Euler'}},
    {'integrator': {'order': 4}},
    {'environment': {'kind': 'horizons'}},
    {'capture': {'semi_major_axis': 1.0e6}},
    {'max_workers': 0},
    {'minimum_periapsis_radii': {'Venus': 0.0}},
])
def test_invalid_config(defn):
    with pytest.raises(ConfigurationError):
        run_config_from_definition(defn)


def test_unwritable_artifact(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('x')
    with pytest.raises(OutputWriteError) as excinfo:
        write_table(blocker / 'sub' / 'table.dat', np.zeros((2, 2)), leg_index=1)
    assert excinfo.value.leg_index == 1
    assert isinstance(excinfo.value, OSError)


def test_cli_missing_config(tmp_path):
    assert main([str(tmp_path / 'missing.json')]) == 1


def test_cli_infeasible_flyby(tmp_path):
    path = tmp_path / 'run.json'
    path.write_text(json.dumps({
        'environment': {'kind': 'approximate'},
        'minimum_periapsis_radii': {'Venus': 1.0e8},
        'output_dir': str(tmp_path / 'out'),
    }))
    assert main([str(path)]) == 1
    assert not (tmp_path / 'out').exists()


def test_cli_partial_failure(tmp_path, capsys):
    path = tmp_path / 'run.json'
    path.write_text(json.dumps({
        'environment': {'kind': 'approximate'},
        'integrator': {'max_steps': 1},
        'output_dir': str(tmp_path / 'out'),
    }))

    assert main([str(path)]) == 2
    assert 'legs propagated: 0/4' in capsys.readouterr().out
    # Analytic artifacts are still written when every numerical leg fails
    assert (tmp_path / 'out' / 'summary.dat').exists()
    assert (tmp_path / 'out' / 'leg0_analytic.dat').exists()
    assert not (tmp_path / 'out' / 'leg0_propagated.dat').exists()
