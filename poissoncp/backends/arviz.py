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

"""Conversion of posterior draws to ArviZ ``InferenceData``."""

import logging

import numpy as np

from arviz import InferenceData
from arviz.data.base import dict_to_dataset

import poissoncp

__all__ = ["to_inference_data"]

_log = logging.getLogger(__name__)


def to_inference_data(draws, include_path: bool = True) -> InferenceData:
    """Convert :class:`~poissoncp.backends.PosteriorDraws` to an ``InferenceData``.

    The ``posterior`` group holds one chain with the rates, stay probabilities,
    changepoint locations and (optionally) the regime paths. The per-draw
    log-likelihood is stored in ``sample_stats``.

    Parameters
    ----------
    draws : PosteriorDraws
    include_path : bool, default True
        Whether to store the ``(draw, time)`` regime paths.
    """
    model = draws.model
    coords = {
        "regime": np.arange(model.n_states),
        "time": np.asarray(model.data.index),
    }
    dims = {"rates": ["regime"], "path": ["time"], "y": ["time"]}

    posterior = {"rates": draws["rates"][None]}
    if model.n_changepoints > 0:
        coords["changepoint"] = np.arange(1, model.n_states)
        dims["transitions"] = ["changepoint"]
        dims["changepoints"] = ["changepoint"]
        posterior["transitions"] = draws["transitions"][None]
        posterior["changepoints"] = draws.changepoints()[None]
    if include_path:
        posterior["path"] = draws["path"][None]

    attrs = {
        "n_changepoints": model.n_changepoints,
        "burnin": draws.report.burnin,
        "mcmc": draws.report.mcmc,
        "thin": draws.report.thin,
    }
    if model.name is not None:
        attrs["series"] = str(model.name)
    if draws.report.t_sampling is not None:
        attrs["sampling_time"] = draws.report.t_sampling

    groups = {
        "posterior": dict_to_dataset(
            posterior, library=poissoncp, coords=coords, dims=dims, attrs=attrs
        ),
        "observed_data": dict_to_dataset(
            {"y": model.observed}, library=poissoncp, coords=coords, dims=dims, default_dims=[]
        ),
    }
    stats = {name: draws.get_sampler_stats(name)[None] for name in draws.stat_names}
    if stats:
        groups["sample_stats"] = dict_to_dataset(stats, library=poissoncp, attrs=attrs)
    return InferenceData(**groups)
