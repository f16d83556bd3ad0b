"""JSON run configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np

from mga_transfer.exceptions import ConfigurationError
from mga_transfer.mission.sequence import (
    CAPTURE_ECCENTRICITY,
    CAPTURE_SEMI_MAJOR_AXIS,
    DEFAULT_PARAMETERS,
    KeplerOrbit,
    TransferProblem,
    problem_from_parameters,
)
from mga_transfer.propagation.integrator import IntegratorSettings

ENVIRONMENT_KINDS = ("spice", "approximate")

RunDefinition = dict[str, Any]


@dataclass(frozen=True)
class RunConfig:
    parameters: tuple = DEFAULT_PARAMETERS
    sample_step: float = 86400.0
    integrator: IntegratorSettings = field(default_factory=IntegratorSettings)
    environment: str = "spice"
    kernel_dir: str = "data"
    minimum_periapsis_radii: dict = field(default_factory=dict)
    capture_orbit: Optional[KeplerOrbit] = field(
        default_factory=lambda: KeplerOrbit(CAPTURE_SEMI_MAJOR_AXIS, CAPTURE_ECCENTRICITY))
    departure_orbit: Optional[KeplerOrbit] = None
    max_workers: int = 1
    output_dir: str = "output"

    def build_problem(self) -> TransferProblem:
        return problem_from_parameters(
            self.parameters,
            minimum_periapsis_radii=self.minimum_periapsis_radii,
            capture_orbit=self.capture_orbit,
            departure_orbit=self.departure_orbit,
            capture=self.capture_orbit is not None,
        )


def default_run_config() -> RunConfig:
    """Earth-Venus-Venus-Earth-Jupiter transfer with the default epochs."""
    return RunConfig()


def load_run_config(path: str | Path) -> RunConfig:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"cannot read run configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"run configuration {path} is not valid JSON: {e}") from e
    return run_config_from_definition(data)


def save_run_config(path: str | Path, config: RunConfig) -> None:
    Path(path).write_text(
        json.dumps(run_config_to_definition(config), indent=2, sort_keys=True),
        encoding="utf-8",
    )


def run_config_from_definition(defn: RunDefinition) -> RunConfig:
    if not isinstance(defn, dict):
        raise ConfigurationError("run configuration must be a JSON object")
    if defn.get("schema_version", 1) != 1:
        raise ConfigurationError("schema_version must be 1")

    kwargs: dict[str, Any] = {}

    if "parameters" in defn:
        params = defn["parameters"]
        if not isinstance(params, list) or not all(_is_number(p) for p in params):
            raise ConfigurationError("parameters must be a list of numbers")
        kwargs["parameters"] = tuple(float(p) for p in params)

    if "sample_step" in defn:
        kwargs["sample_step"] = _positive(defn["sample_step"], "sample_step")

    if "integrator" in defn:
        integ = defn["integrator"]
        if not isinstance(integ, dict):
            raise ConfigurationError("integrator must be an object")
        unknown = set(integ) - {"method", "step_size", "max_step", "rtol", "atol", "max_steps"}
        if unknown:
            raise ConfigurationError(f"unknown integrator fields: {sorted(unknown)}")
        settings = dict(integ)
        if settings.get("max_step") is None:
            settings.pop("max_step", None)
        try:
            kwargs["integrator"] = IntegratorSettings(**settings)
        except TypeError as e:
            raise ConfigurationError(f"invalid integrator settings: {e}") from e

    if "environment" in defn:
        env = defn["environment"]
        if not isinstance(env, dict):
            raise ConfigurationError("environment must be an object")
        kind = env.get("kind", "spice")
        if kind not in ENVIRONMENT_KINDS:
            raise ConfigurationError(f"environment.kind must be one of {ENVIRONMENT_KINDS}")
        kwargs["environment"] = kind
        if "kernel_dir" in env:
            kwargs["kernel_dir"] = str(env["kernel_dir"])

    if "minimum_periapsis_radii" in defn:
        radii = defn["minimum_periapsis_radii"]
        if not isinstance(radii, dict):
            raise ConfigurationError("minimum_periapsis_radii must be an object")
        kwargs["minimum_periapsis_radii"] = {
            str(body): _positive(value, f"minimum_periapsis_radii.{body}") for body, value in radii.items()
        }

    if "capture" in defn:
        kwargs["capture_orbit"] = _orbit(defn["capture"], "capture")
    if "departure" in defn:
        kwargs["departure_orbit"] = _orbit(defn["departure"], "departure")

    if "max_workers" in defn:
        workers = defn["max_workers"]
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            raise ConfigurationError("max_workers must be an integer >= 1")
        kwargs["max_workers"] = workers

    if "output_dir" in defn:
        kwargs["output_dir"] = str(defn["output_dir"])

    return RunConfig(**kwargs)


def run_config_to_definition(config: RunConfig) -> RunDefinition:
    settings = config.integrator
    return {
        "schema_version": 1,
        "parameters": list(config.parameters),
        "sample_step": config.sample_step,
        "integrator": {
            "method": settings.method,
            "step_size": settings.step_size,
            "max_step": None if np.isinf(settings.max_step) else settings.max_step,
            "rtol": settings.rtol,
            "atol": settings.atol,
            "max_steps": settings.max_steps,
        },
        "environment": {"kind": config.environment, "kernel_dir": config.kernel_dir},
        "minimum_periapsis_radii": dict(config.minimum_periapsis_radii),
        "capture": _orbit_to_definition(config.capture_orbit),
        "departure": _orbit_to_definition(config.departure_orbit),
        "max_workers": config.max_workers,
        "output_dir": config.output_dir,
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _positive(value: Any, ctx: str) -> float:
    if not _is_number(value) or not value > 0:
        raise ConfigurationError(f"{ctx} must be a number > 0")
    return float(value)


def _orbit(value: Any, ctx: str) -> Optional[KeplerOrbit]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigurationError(f"{ctx} must be an object or null")
    for key in ("semi_major_axis", "eccentricity"):
        if key not in value:
            raise ConfigurationError(f"missing required field: {ctx}.{key}")
        if not _is_number(value[key]):
            raise ConfigurationError(f"{ctx}.{key} must be a number")
    return KeplerOrbit(float(value["semi_major_axis"]), float(value["eccentricity"]))


def _orbit_to_definition(orbit: Optional[KeplerOrbit]) -> Optional[dict[str, float]]:
    if orbit is None:
        return None
    return {"semi_major_axis": orbit.semi_major_axis, "eccentricity": orbit.eccentricity}
