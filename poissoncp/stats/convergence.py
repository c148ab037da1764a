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
import enum
import logging

from typing import Any

import arviz
import numpy as np

__all__ = ["SamplerWarning", "WarningType", "log_warnings", "run_convergence_checks"]

_LEVELS = {
    "info": logging.INFO,
    "error": logging.ERROR,
    "warn": logging.WARN,
    "debug": logging.DEBUG,
    "critical": logging.CRITICAL,
}

logger = logging.getLogger(__name__)


@enum.unique
class WarningType(enum.Enum):
    # Problematic sampler parameters
    BAD_PARAMS = 1
    # Indications that the chain did not converge, eg low ESS
    CONVERGENCE = 2
    # The run stopped before all iterations were done
    INTERRUPTED = 3


@dataclasses.dataclass
class SamplerWarning:
    kind: WarningType
    message: str
    level: str
    step: int | None = None
    extra: Any | None = None


def run_convergence_checks(draws, min_ess: float = 100.0) -> list[SamplerWarning]:
    """Check the retained draws of a single chain.

    Parameters
    ----------
    draws : PosteriorDraws
    min_ess : float
        Smallest acceptable effective sample size of any rate or stay probability.
    """
    if len(draws) < 100:
        msg = "The number of samples is too small to check convergence reliably."
        return [SamplerWarning(WarningType.BAD_PARAMS, msg, "info")]

    ess = {}
    for name in ("rates", "transitions"):
        values = draws[name]
        for j in range(values.shape[1]):
            column = values[:, j]
            if np.ptp(column) == 0:
                continue
            ess[f"{name}[{j}]"] = float(arviz.ess(column))

    warnings = []
    if ess:
        worst = min(ess, key=ess.get)
        if not ess[worst] >= min_ess:
            msg = (
                f"The effective sample size of {worst} is {ess[worst]:.0f}, smaller than "
                f"{min_ess:.0f}. Consider increasing `mcmc` or `thin`."
            )
            warnings.append(SamplerWarning(WarningType.CONVERGENCE, msg, "warn", extra=ess))
    return warnings


def log_warnings(warnings: list[SamplerWarning]):
    for warn in warnings:
        level = _LEVELS[warn.level]
        logger.log(level, warn.message)
