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

"""Posterior summaries of changepoint model draws."""

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from poissoncp.backends import PosteriorDraws

__all__ = ["ResultSummary", "summarize"]


def _frozen(arr):
    arr = np.asarray(arr)
    arr.setflags(write=False)
    return arr


class ResultSummary:
    """Means, intervals and regime probabilities of a set of posterior draws.

    Parameters
    ----------
    draws : PosteriorDraws
    interval : tuple of float, default (2.5, 97.5)
        Percentiles bounding the credible intervals.

    Attributes
    ----------
    rate_mean, rate_sd : ndarray
        ``(m + 1,)`` posterior mean and standard deviation of the regime rates.
    rate_interval : ndarray
        ``(m + 1, 2)`` lower and upper percentiles of the regime rates.
    transition_mean : ndarray
        ``(m,)`` posterior mean of the stay probabilities.
    transition_interval : ndarray
        ``(m, 2)``.
    expected_duration : ndarray
        ``(m,)`` posterior mean of ``1 / (1 - p[j])``, the expected length of regime ``j``.
    state_probabilities : ndarray
        ``(n, m + 1)`` share of draws assigning time ``t`` to regime ``j``.
    changepoint_probabilities : ndarray
        ``(m, n)`` share of draws in which regime ``j + 1`` starts at time ``t``.
    changepoint_mode, changepoint_mean : ndarray
        ``(m,)`` start indices of every regime after the first: the most frequent joint
        configuration across draws, and the per-regime mean.
    changepoint_interval : ndarray
        ``(m, 2)``.
    """

    def __init__(self, draws: "PosteriorDraws", interval=(2.5, 97.5)):
        if len(draws) == 0:
            raise ValueError("Cannot summarize PosteriorDraws without draws")
        lower, upper = interval
        if not 0 <= lower < upper <= 100:
            raise ValueError(f"Invalid percentile interval {interval}")
        self.interval = (float(lower), float(upper))
        self.n_draws = len(draws)
        self.n_changepoints = draws.model.n_changepoints
        self.index = draws.model.data.index

        q = [lower, upper]
        rates = draws["rates"]
        self.rate_mean = _frozen(rates.mean(axis=0))
        self.rate_sd = _frozen(rates.std(axis=0))
        self.rate_interval = _frozen(np.percentile(rates, q, axis=0).T)

        transitions = draws["transitions"]
        m = self.n_changepoints
        if m > 0:
            self.transition_mean = _frozen(transitions.mean(axis=0))
            self.transition_interval = _frozen(np.percentile(transitions, q, axis=0).T)
            with np.errstate(divide="ignore"):
                self.expected_duration = _frozen((1.0 / (1.0 - transitions)).mean(axis=0))
        else:
            self.transition_mean = _frozen(np.empty(0))
            self.transition_interval = _frozen(np.empty((0, 2)))
            self.expected_duration = _frozen(np.empty(0))

        paths = draws["path"]
        n_states = m + 1
        occupancy = np.stack([(paths == j).mean(axis=0) for j in range(n_states)], axis=1)
        self.state_probabilities = _frozen(occupancy)

        n = paths.shape[1]
        changepoints = draws.changepoints()
        cp_probs = np.zeros((m, n))
        for j in range(m):
            cp_probs[j] = np.bincount(changepoints[:, j], minlength=n) / self.n_draws
        self.changepoint_probabilities = _frozen(cp_probs)
        if m:
            # joint mode, so the starts stay strictly increasing
            configs, counts = np.unique(changepoints, axis=0, return_counts=True)
            self.changepoint_mode = _frozen(configs[counts.argmax()])
        else:
            self.changepoint_mode = _frozen(np.empty(0, dtype=int))
        self.changepoint_mean = _frozen(changepoints.mean(axis=0) if m else np.empty(0))
        self.changepoint_interval = _frozen(
            np.percentile(changepoints, q, axis=0).T if m else np.empty((0, 2))
        )

    def most_likely_path(self) -> np.ndarray:
        """Regime path implied by the modal changepoint locations."""
        path = np.zeros(len(self.index), dtype=np.int64)
        for cp in self.changepoint_mode:
            path[cp:] += 1
        return path

    def table(self) -> list[dict]:
        """One row per regime, ready for a table renderer."""
        rows = []
        starts = [0, *self.changepoint_mode.tolist()]
        ends = [*(s - 1 for s in starts[1:]), len(self.index) - 1]
        for j in range(self.n_changepoints + 1):
            rows.append(
                {
                    "regime": j,
                    "start": self.index[starts[j]],
                    "end": self.index[ends[j]],
                    "rate_mean": float(self.rate_mean[j]),
                    "rate_sd": float(self.rate_sd[j]),
                    "rate_lower": float(self.rate_interval[j, 0]),
                    "rate_upper": float(self.rate_interval[j, 1]),
                }
            )
        return rows

    def __repr__(self):
        return (
            f"<ResultSummary: m={self.n_changepoints}, {self.n_draws} draws, "
            f"rates={np.round(self.rate_mean, 3).tolist()}, "
            f"changepoints={self.changepoint_mode.tolist()}>"
        )


def summarize(draws: "PosteriorDraws", interval=(2.5, 97.5)) -> ResultSummary:
    return ResultSummary(draws, interval=interval)
