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

"""Posterior summaries, convergence checks and model comparison.

Effective sample sizes are delegated to the ArviZ library.
See https://arviz-devs.github.io/arviz/ for details.
"""

from poissoncp.stats.convergence import SamplerWarning, WarningType, run_convergence_checks
from poissoncp.stats.marginal_likelihood import (
    MarginalLikelihood,
    ModelComparison,
    bayes_factor,
    compare,
    exact_log_marginal_likelihood,
    marginal_likelihood,
)
from poissoncp.stats.summary import ResultSummary, summarize

__all__ = (
    "MarginalLikelihood",
    "ModelComparison",
    "ResultSummary",
    "SamplerWarning",
    "WarningType",
    "bayes_factor",
    "compare",
    "exact_log_marginal_likelihood",
    "marginal_likelihood",
    "run_convergence_checks",
    "summarize",
)
