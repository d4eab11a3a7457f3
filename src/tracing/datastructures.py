"""Data structures for particle tracing.

Structure:
- FlowSnapshot: read-only staggered velocity / cell-centred scalar arrays
- Trajectory: append-only points of one particle (plus sampled attributes)
- Trajectories: index-aligned collection, one Trajectory per seed
- TracerParameters: tracer configuration (logged to MLflow)
"""

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd


# ========================================================
# Flow snapshot (input)
# ========================================================


@dataclass
class FlowSnapshot:
    """Velocity, pressure and temperature on the ghost-extended staggered grid.

    ``u``, ``v``, ``w`` live on the faces of their own axis, ``p`` and ``t``
    at cell centres; all arrays are shaped (nx+2, ny+2, nz+2).
    """

    u: np.ndarray
    v: np.ndarray
    w: np.ndarray
    p: Optional[np.ndarray] = None
    t: Optional[np.ndarray] = None
    time: float = 0.0

    def __post_init__(self):
        # Read-only views; the solver's buffers are never touched
        for name in ("u", "v", "w", "p", "t"):
            arr = getattr(self, name)
            if arr is not None:
                view = np.asarray(arr, dtype=np.float64).view()
                view.setflags(write=False)
                setattr(self, name, view)

    def validate(self, geometry) -> "FlowSnapshot":
        for name in ("u", "v", "w", "p", "t"):
            arr = getattr(self, name)
            if arr is not None and arr.shape != geometry.ghost_shape:
                raise ValueError(
                    f"snapshot field '{name}' has shape {arr.shape}, "
                    f"expected {geometry.ghost_shape}"
                )
        return self

    @classmethod
    def uniform(cls, geometry, velocity, pressure=None, temperature=None, time=0.0):
        """Constant field, mostly useful for tests and dry runs."""
        shape = geometry.ghost_shape
        return cls(
            u=np.full(shape, float(velocity[0])),
            v=np.full(shape, float(velocity[1])),
            w=np.full(shape, float(velocity[2])),
            p=None if pressure is None else np.full(shape, float(pressure)),
            t=None if temperature is None else np.full(shape, float(temperature)),
            time=time,
        )

    @classmethod
    def load(cls, path, time: Optional[float] = None) -> "FlowSnapshot":
        """Load a snapshot from an ``.npz`` archive with keys U, V, W and optional P, T."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Snapshot file not found: {path}")
        with np.load(path, allow_pickle=False) as data:
            missing = [key for key in ("U", "V", "W") if key not in data]
            if missing:
                raise ValueError(f"{path.name}: missing velocity arrays {missing}")
            if time is None:
                time = float(data["time"]) if "time" in data else 0.0
            return cls(
                u=data["U"],
                v=data["V"],
                w=data["W"],
                p=data["P"] if "P" in data else None,
                t=data["T"] if "T" in data else None,
                time=time,
            )


# ========================================================
# Particle state
# ========================================================


class ParticleState(IntEnum):
    """Seeded -> Active -> {Active | Terminated}; Terminated is absorbing."""

    SEEDED = 0
    ACTIVE = 1
    TERMINATED = 2


# ========================================================
# Trajectories (output)
# ========================================================


@dataclass
class Trajectory:
    """Append-only sequence of recorded positions of one particle.

    ``attributes`` maps an attribute name to one value per recorded point; a
    list may lag behind ``positions`` until the attribute has been sampled.
    """

    positions: List[np.ndarray] = field(default_factory=list)
    times: List[float] = field(default_factory=list)
    attributes: Dict[str, List[float]] = field(default_factory=dict)

    def append(self, position, time: float, **attributes) -> None:
        self.positions.append(np.array(position, dtype=np.float64).reshape(3))
        self.times.append(float(time))
        for name, value in attributes.items():
            self.attributes.setdefault(name, []).append(float(value))

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def points(self) -> np.ndarray:
        """Recorded positions as an (N, 3) array."""
        if not self.positions:
            return np.empty((0, 3))
        return np.stack(self.positions)

    @property
    def start(self) -> np.ndarray:
        return self.positions[0]

    @property
    def end(self) -> np.ndarray:
        return self.positions[-1]

    def arc_length(self) -> float:
        if len(self) < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(self.points, axis=0), axis=1)))

    def pending_attributes(self, names) -> Dict[str, int]:
        """Number of recorded points still missing each attribute."""
        return {name: len(self) - len(self.attributes.get(name, [])) for name in names}


@dataclass
class Trajectories:
    """Index-aligned trajectories: entry i always belongs to the i-th seed."""

    items: List[Trajectory] = field(default_factory=list)

    @classmethod
    def from_seeds(cls, seeds, time: float = 0.0) -> "Trajectories":
        seeds = np.asarray(seeds, dtype=np.float64).reshape(-1, 3)
        result = cls()
        for seed in seeds:
            trajectory = Trajectory()
            trajectory.append(seed, time)
            result.items.append(trajectory)
        return result

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index) -> Trajectory:
        return self.items[index]

    def __iter__(self):
        return iter(self.items)

    def lengths(self) -> np.ndarray:
        return np.array([len(t) for t in self.items], dtype=np.int64)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per recorded point: particle, step, t, x, y, z and attributes."""
        rows = []
        for particle, trajectory in enumerate(self.items):
            for step, (position, time) in enumerate(zip(trajectory.positions, trajectory.times)):
                row = {
                    "particle": particle,
                    "step": step,
                    "t": time,
                    "x": position[0],
                    "y": position[1],
                    "z": position[2],
                }
                for name, values in trajectory.attributes.items():
                    row[name] = values[step] if step < len(values) else np.nan
                rows.append(row)
        columns = ["particle", "step", "t", "x", "y", "z"]
        return pd.DataFrame(rows, columns=None if rows else columns)


# ========================================================
# Parameters (input configuration)
# ========================================================


@dataclass
class TracerParameters:
    """Tracer configuration shared by all tracer kinds."""

    kind: str = "streamline"
    dt: float = 0.01
    max_steps: Optional[int] = 1000
    scheme: str = "euler"
    attributes: Tuple[str, ...] = ()
    stop_at_obstacles: bool = False

    def __post_init__(self):
        if not self.dt > 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError(f"max_steps must be non-negative, got {self.max_steps}")
        self.attributes = tuple(self.attributes)

    def to_dataframe(self):
        return pd.DataFrame([self.to_mlflow()])

    def to_mlflow(self) -> dict:
        params = asdict(self)
        params["attributes"] = ",".join(self.attributes) or "none"
        params["max_steps"] = "unbounded" if self.max_steps is None else self.max_steps
        return params
