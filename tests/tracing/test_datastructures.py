"""Tests for trajectories and tracer parameters."""

import numpy as np
import pandas as pd
import pytest

from tracing import TracerParameters, Trajectories, Trajectory


class TestTrajectory:
    def test_append_and_geometry(self):
        trajectory = Trajectory()
        trajectory.append([0.0, 0.0, 0.0], 0.0)
        trajectory.append([3.0, 4.0, 0.0], 1.0)
        assert len(trajectory) == 2
        assert trajectory.arc_length() == pytest.approx(5.0)
        assert np.allclose(trajectory.end, [3.0, 4.0, 0.0])

    def test_single_point_has_zero_length(self):
        trajectory = Trajectory()
        trajectory.append([1.0, 1.0, 1.0], 0.0)
        assert trajectory.arc_length() == 0.0

    def test_pending_attributes(self):
        trajectory = Trajectory()
        trajectory.append([0.0, 0.0, 0.0], 0.0, pressure=1.0)
        trajectory.append([1.0, 0.0, 0.0], 0.1)
        assert trajectory.pending_attributes(("pressure", "temperature")) == {"pressure": 1, "temperature": 2}


class TestTrajectories:
    def test_from_seeds_index_aligned(self):
        seeds = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
        trajectories = Trajectories.from_seeds(seeds, time=0.5)
        assert len(trajectories) == 2
        assert np.allclose(trajectories[1].start, [1.0, 2.0, 3.0])
        assert trajectories[0].times == [0.5]

    def test_to_dataframe(self):
        trajectories = Trajectories.from_seeds([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])
        trajectories[0].attributes["pressure"] = [4.0]
        trajectories[0].append([0.5, 0.0, 0.0], 0.1, pressure=5.0)

        df = trajectories.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 3
        assert list(df.columns[:6]) == ["particle", "step", "t", "x", "y", "z"]
        assert df.loc[df.particle == 0, "pressure"].tolist() == [4.0, 5.0]
        assert np.isnan(df.loc[df.particle == 1, "pressure"]).all()

    def test_empty_dataframe_has_columns(self):
        df = Trajectories().to_dataframe()
        assert df.empty
        assert "x" in df.columns


class TestTracerParameters:
    def test_to_mlflow(self):
        params = TracerParameters(kind="pathline", dt=0.05, max_steps=None, attributes=["pressure", "temperature"])
        logged = params.to_mlflow()
        assert logged["attributes"] == "pressure,temperature"
        assert logged["max_steps"] == "unbounded"
        assert logged["kind"] == "pathline"

    def test_to_dataframe(self):
        df = TracerParameters().to_dataframe()
        assert df.loc[0, "attributes"] == "none"
        assert df.loc[0, "max_steps"] == 1000

    @pytest.mark.parametrize("kwargs", [dict(dt=0.0), dict(max_steps=-3)])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            TracerParameters(**kwargs)
