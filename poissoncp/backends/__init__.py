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

"""Storage of posterior draws

Draws of a finished run live in a :class:`PosteriorDraws` object. Values are
selected by name::

    >>> draws["rates"]        # (draws, m + 1)
    >>> draws["transitions"]  # (draws, m)
    >>> draws["path"]         # (draws, n)
    >>> draws.get_sampler_stats("loglik")

Slicing returns a new, read-only ``PosteriorDraws``::

    >>> every_other = draws[::2]

Use :func:`to_inference_data` to hand draws to ArviZ.
"""

from poissoncp.backends.arviz import to_inference_data
from poissoncp.backends.ndarray import PosteriorDraws
from poissoncp.backends.report import SamplerReport

__all__ = ["PosteriorDraws", "SamplerReport", "to_inference_data"]
