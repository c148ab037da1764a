#   Copyright 2024 - present The poissoncp Developers
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""NumPy array store of posterior draws

Keeps every retained draw of a Gibbs run in memory.
"""

import numpy as np

from poissoncp.backends.report import SamplerReport
from poissoncp.model import ChangepointModel, PointType

__all__ = ["PosteriorDraws"]


def _path_dtype(n_states):
    return np.int8 if n_states <= np.iinfo(np.int8).max else np.int32


class PosteriorDraws:
    """Retained draws of the rates, stay probabilities and regime paths of one run.

    Draws are appended with :meth:`record` while sampling and become read-only once
    :meth:`close` has been called.

    Parameters
    ----------
    model : ChangepointModel
        The model the draws belong to.
    sampler_vars : dict, optional
        Names and dtypes of the statistics exported by the step methods.
    """

    def __init__(self, model: ChangepointModel, sampler_vars=None):
        self.model = model
        self.sampler_vars = dict(sampler_vars or {})
        self.report = SamplerReport()
        self.draw_idx = 0
        self.draws = 0
        self.samples: dict[str, np.ndarray] = {}
        self._stats: dict[str, np.ndarray] = {}
        self.closed = False

    # Sampling methods

    def setup(self, draws: int, report: SamplerReport | None = None) -> None:
        """Allocate storage for ``draws`` retained draws."""
        m = self.model
        self.draws = draws
        self.draw_idx = 0
        self.samples = {
            "rates": np.zeros((draws, m.n_states)),
            "transitions": np.zeros((draws, m.n_changepoints)),
            "path": np.zeros((draws, m.n), dtype=_path_dtype(m.n_states)),
        }
        self._stats = {
            name: np.zeros(draws, dtype=dtype) for name, (dtype, _) in self.sampler_vars.items()
        }
        if report is not None:
            self.report = report

    def record(self, point: PointType, sampler_stats=None) -> None:
        """Record results of a sampling iteration.

        Parameters
        ----------
        point : dict
            Current rates, transitions and path.
        sampler_stats : dict, optional
            Flat mapping of statistic names to values.
        """
        if self.closed:
            raise ValueError("Cannot record into closed PosteriorDraws")
        for varname, trace in self.samples.items():
            trace[self.draw_idx] = point[varname]
        if sampler_stats:
            for key, val in sampler_stats.items():
                if key in self._stats:
                    self._stats[key][self.draw_idx] = val
        self.draw_idx += 1

    def close(self):
        if self.closed:
            return
        if self.draw_idx != self.draws:
            # Remove trailing zeros if interrupted before completed all draws.
            self.samples = {var: vtrace[: self.draw_idx] for var, vtrace in self.samples.items()}
            self._stats = {var: trace[: self.draw_idx] for var, trace in self._stats.items()}
        for arr in (*self.samples.values(), *self._stats.values()):
            arr.setflags(write=False)
        self.closed = True

    def __setstate__(self, state):
        self.__dict__.update(state)
        if self.closed:
            # pickling drops the write flag
            for arr in (*self.samples.values(), *self._stats.values()):
                arr.setflags(write=False)

    # Selection methods

    def __len__(self):
        return self.draw_idx

    @property
    def n_draws(self) -> int:
        return self.draw_idx

    @property
    def varnames(self) -> list[str]:
        return list(self.samples)

    @property
    def stat_names(self) -> set[str]:
        return set(self._stats)

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return self._slice(idx)
        if idx in self.samples:
            return self.samples[idx][: self.draw_idx]
        if idx in self._stats:
            return self._stats[idx][: self.draw_idx]
        raise KeyError(f"Unknown variable {idx!r}")

    def get_sampler_stats(self, stat_name: str) -> np.ndarray:
        return self._stats[stat_name][: self.draw_idx]

    def point(self, idx: int) -> PointType:
        """Return dictionary of point values at `idx` for current chain."""
        return {varname: values[idx].copy() for varname, values in self.samples.items()}

    def _slice(self, idx: slice):
        start, stop, step = idx.indices(len(self))
        sliced = PosteriorDraws(self.model, self.sampler_vars)
        sliced.samples = {v: self[v][idx].copy() for v in self.samples}
        sliced._stats = {v: self[v][idx].copy() for v in self._stats}
        sliced.draws = sliced.draw_idx = len(range(start, stop, step))
        sliced.report = self.report._slice(start, stop, step)
        sliced.close()
        return sliced

    @property
    def observed(self) -> np.ndarray:
        return self.model.observed

    def changepoints(self) -> np.ndarray:
        """``(draws, m)`` array of the first time index of every regime after the first."""
        paths = self["path"]
        states = np.arange(1, self.model.n_states)
        return np.argmax(paths[:, :, None] >= states[None, None, :], axis=1)

    def __repr__(self):
        return f"<PosteriorDraws: {self.model!r}, {len(self)} draws>"
