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

import dataclasses
import logging

import numpy as np

from poissoncp.exceptions import SamplingError
from poissoncp.stats.convergence import _LEVELS, SamplerWarning

logger = logging.getLogger(__name__)


class SamplerReport:
    """Bundle warnings, iteration counts and metadata of a sampling run."""

    def __init__(self, burnin: int = 0, mcmc: int = 0, thin: int = 1) -> None:
        self._warnings: list[SamplerWarning] = []
        self.burnin = burnin
        self.mcmc = mcmc
        self.thin = thin
        self.n_iterations = 0
        self.cancelled = False
        self.t_sampling: float | None = None
        self.random_seed = None
        self._loglik_trace = np.full(burnin + mcmc, np.nan)

    @property
    def ok(self):
        """Whether the automatic convergence checks found serious problems."""
        return all(_LEVELS[warn.level] < _LEVELS["warn"] for warn in self._warnings)

    @property
    def warnings(self) -> list[SamplerWarning]:
        return list(self._warnings)

    @property
    def total_iterations(self) -> int:
        """Number of requested Gibbs iterations, burn-in included."""
        return self.burnin + self.mcmc

    @property
    def expected_draws(self) -> int:
        return self.mcmc // self.thin

    @property
    def loglik_trace(self) -> np.ndarray:
        """Log-likelihood at every completed iteration, burn-in included."""
        return self._loglik_trace[: self.n_iterations]

    def raise_ok(self, level="error"):
        errors = [warn for warn in self._warnings if _LEVELS[warn.level] >= _LEVELS[level]]
        if errors:
            raise SamplingError("Serious convergence issues during sampling.")

    def _record_iteration(self, iteration: int, loglik: float):
        self._loglik_trace[iteration] = loglik
        self.n_iterations = iteration + 1

    def _add_warnings(self, warnings):
        self._warnings.extend(warnings)

    def _slice(self, start, stop, step):
        report = SamplerReport(self.burnin, self.mcmc, self.thin)
        report.n_iterations = self.n_iterations
        report.cancelled = self.cancelled
        report.t_sampling = self.t_sampling
        report.random_seed = self.random_seed
        report._loglik_trace = self._loglik_trace

        filtered = []
        for warn in self._warnings:
            if warn.step is None:
                filtered.append(warn)
            elif start <= warn.step < stop and (warn.step - start) % step == 0:
                filtered.append(dataclasses.replace(warn, step=(warn.step - start) // step))
        report._add_warnings(filtered)
        return report
