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

from poissoncp.step_methods.compound import BlockedStep, CompoundStep
from poissoncp.step_methods.conjugate import RateSampler, TransitionSampler
from poissoncp.step_methods.ffbs import StateSampler, backward_sample, forward_filter

__all__ = [
    "BlockedStep",
    "CompoundStep",
    "RateSampler",
    "StateSampler",
    "TransitionSampler",
    "backward_sample",
    "forward_filter",
    "gibbs_steps",
]


def gibbs_steps(model) -> CompoundStep:
    """The state, rate and transition updates, in the order a Gibbs sweep runs them."""
    return CompoundStep([StateSampler(model), RateSampler(model), TransitionSampler(model)])
