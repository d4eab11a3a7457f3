"""
Particle Tracing Runner - Hydra + MLflow integration for the tracing core.

Single runs:
    # Streamlines in the obstacle-free driven cavity (uniform dry-run field)
    uv run python run_tracer.py scenario=driven_cavity tracer=streamline

    # Pathlines through solver snapshots (.npz with U, V, W[, P, T])
    uv run python run_tracer.py scenario=karman_vortex_street tracer=pathline \
        snapshot_dir=data/karman/snapshots

Parameter sweeps (multirun mode):
    uv run python run_tracer.py -m tracer=streamline,pathline,streakline num_particles=16,64

MLflow modes:
    local-files  - file-based ./mlruns (default)
    disabled     - mlflow.enabled=false, console summary only
"""

import logging
import os
import sys
import time
from contextlib import nullcontext
from pathlib import Path

import hydra
import mlflow
import numpy as np
from dotenv import load_dotenv
from hydra.utils import instantiate, to_absolute_path
from omegaconf import DictConfig, OmegaConf

# Load .env file (for MLflow credentials)
load_dotenv()

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from cells import FlagField  # noqa: E402
from cli import fail, header, ok, print_trace_summary  # noqa: E402
from meshing import GridGeometry  # noqa: E402
from tracing import (  # noqa: E402
    FlowSnapshot,
    ParticleState,
    SteadyFlowTracer,
    StreaklineTracer,
    TimeVaryingTracer,
    TracerParameters,
    get_particle_seeding_locations,
)

log = logging.getLogger(__name__)


# =============================================================================
# Setup
# =============================================================================


def build_geometry(cfg: DictConfig) -> GridGeometry:
    scenario = cfg.scenario
    return GridGeometry.from_size(
        scenario.nx, scenario.ny, scenario.nz, size=list(scenario.size), origin=list(scenario.origin)
    )


def build_flag_field(cfg: DictConfig, geometry: GridGeometry) -> FlagField:
    """Geometry import if the scenario names a raster, obstacle-free box otherwise."""
    geometry_file = cfg.scenario.get("geometry_file")
    if geometry_file:
        return FlagField.from_geometry_file(cfg.scenario.name, to_absolute_path(geometry_file), geometry)
    return FlagField.no_obstacles(cfg.scenario.name, geometry)


def load_snapshots(cfg: DictConfig, geometry: GridGeometry) -> list:
    """Snapshots from a file, a directory of files, or a uniform dry-run field."""
    if cfg.get("snapshot_dir"):
        directory = Path(to_absolute_path(cfg.snapshot_dir))
        paths = sorted(directory.glob("*.npz"))
        if not paths:
            raise FileNotFoundError(f"No .npz snapshots found in {directory}")
        snapshots = [FlowSnapshot.load(path) for path in paths]
    elif cfg.get("snapshot_file"):
        snapshots = [FlowSnapshot.load(to_absolute_path(cfg.snapshot_file))]
    else:
        log.warning("No snapshot configured; tracing through a uniform velocity field")
        snapshots = [FlowSnapshot.uniform(geometry, list(cfg.uniform_velocity))]

    for snapshot in snapshots:
        snapshot.validate(geometry)
    log.info(f"Loaded {len(snapshots)} snapshot(s)")
    return snapshots


def create_tracer(cfg: DictConfig, flag_field: FlagField):
    """Instantiate the tracer subtree; the flag field is passed when obstacles stop particles."""
    return instantiate(
        cfg.tracer,
        flag_field=flag_field if cfg.stop_at_obstacles else None,
        _convert_="partial",
    )


# =============================================================================
# Tracing
# =============================================================================


def run_trace(tracer, cfg: DictConfig, geometry: GridGeometry, seeds, snapshots):
    """Run the configured tracer and return its trajectories."""
    if isinstance(tracer, SteadyFlowTracer):
        return tracer.trace(seeds, geometry, cfg.dt, snapshots[0])

    tracer.set_seeding_locations(geometry.lower, geometry.size, seeds, t0=snapshots[0].time)
    t = snapshots[0].time
    for step in range(cfg.num_steps):
        snapshot = snapshots[min(step, len(snapshots) - 1)]
        tracer.time_step(t, cfg.dt, geometry, snapshot)
        t += cfg.dt
    # Attributes of the newest points come from the snapshot at the final instant
    final = snapshots[min(cfg.num_steps, len(snapshots) - 1)]
    return tracer.get_trajectories(snapshot=final, geometry=geometry)


def trace_metrics(tracer, trajectories, wall_time: float) -> dict:
    lengths = trajectories.lengths()
    metrics = {
        "num_particles": len(trajectories),
        "mean_length": float(lengths.mean()) if len(lengths) else 0.0,
        "max_length": int(lengths.max()) if len(lengths) else 0,
        "mean_arc_length": float(np.mean([t.arc_length() for t in trajectories])) if len(trajectories) else 0.0,
        "wall_time_seconds": wall_time,
    }
    if isinstance(tracer, TimeVaryingTracer):
        metrics["num_terminated"] = int(np.sum(tracer.states == ParticleState.TERMINATED))
    elif isinstance(tracer, SteadyFlowTracer):
        # Streamlines shorter than max_steps + 1 points left the domain or hit an obstacle
        metrics["num_terminated"] = int(np.sum(lengths <= tracer.max_steps))
    elif isinstance(tracer, StreaklineTracer):
        # Seeds outside the fluid never release particles
        metrics["num_terminated"] = int(np.sum(~tracer.releasing))
    return metrics


# =============================================================================
# MLflow Logging
# =============================================================================


def setup_mlflow(cfg: DictConfig) -> str:
    """Setup MLflow tracking and return experiment name."""
    tracking_uri = cfg.mlflow.get("tracking_uri", "./mlruns")
    if str(cfg.mlflow.get("mode", "")).lower() in ("files", "local"):
        os.environ.pop("MLFLOW_TRACKING_URI", None)
    os.environ["MLFLOW_TRACKING_URI"] = str(tracking_uri)
    mlflow.set_tracking_uri(tracking_uri)

    experiment_name = cfg.experiment_name
    project_prefix = cfg.mlflow.get("project_prefix", "")
    if project_prefix and not experiment_name.startswith("/"):
        experiment_name = f"{project_prefix}/{experiment_name}"
    mlflow.set_experiment(experiment_name)
    return experiment_name


# =============================================================================
# Main Entry Point
# =============================================================================


@hydra.main(config_path="conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Hydra entry point - builds the flag field, seeds, traces, logs."""
    log.info(f"Scenario: {cfg.scenario.name}, tracer: {cfg.tracer._target_.rsplit('.', 1)[-1]}")

    try:
        geometry = build_geometry(cfg)
        flag_field = build_flag_field(cfg, geometry)
        seeds = get_particle_seeding_locations(
            cfg.scenario.name,
            cfg.num_particles,
            geometry,
            flag_field=flag_field if cfg.stop_at_obstacles else None,
        )
        snapshots = load_snapshots(cfg, geometry)
        tracer = create_tracer(cfg, flag_field)
    except (FileNotFoundError, ValueError) as exc:
        fail(f"Setup failed for '{cfg.scenario.name}': {exc}")
        raise

    params = TracerParameters(
        kind=tracer.kind.value,
        dt=cfg.dt,
        max_steps=tracer.max_steps,
        scheme=tracer.scheme,
        attributes=tracer.attributes,
        stop_at_obstacles=cfg.stop_at_obstacles,
    )

    use_mlflow = cfg.mlflow.get("enabled", True)
    if use_mlflow:
        log.info(f"MLflow experiment: {setup_mlflow(cfg)}")
    run_name = f"{cfg.scenario.name}_{params.kind}_n{cfg.num_particles}"
    run_context = mlflow.start_run(run_name=run_name, tags={"tracer": params.kind}) if use_mlflow else nullcontext()

    with run_context:
        if use_mlflow:
            mlflow.log_params({**params.to_mlflow(), "scenario": cfg.scenario.name})
            mlflow.log_dict(OmegaConf.to_container(cfg), "config.yaml")

        header(f"Tracing {cfg.num_particles} {params.kind}s in '{cfg.scenario.name}'")
        time_start = time.time()
        trajectories = run_trace(tracer, cfg, geometry, seeds, snapshots)
        metrics = trace_metrics(tracer, trajectories, time.time() - time_start)

        if use_mlflow:
            mlflow.log_metrics(metrics)

    print_trace_summary(trajectories, metrics)
    ok(f"Done: {len(trajectories)} trajectories in {metrics['wall_time_seconds']:.2f}s")


if __name__ == "__main__":
    main()
