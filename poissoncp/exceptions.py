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

__all__ = [
    "SamplingError",
    "InvalidInput",
    "InvalidConfig",
    "DegenerateLikelihood",
    "MarginalLikelihoodUnstable",
]


def _with_context(message, series=None, n_changepoints=None, iteration=None):
    context = []
    if series is not None:
        context.append(f"series={series!r}")
    if n_changepoints is not None:
        context.append(f"m={n_changepoints}")
    if iteration is not None:
        context.append(f"iteration={iteration}")
    if context:
        return f"{message} ({', '.join(context)})"
    return message


class _ContextMixin:
    """Keep the series identity, model size and iteration next to the message."""

    def __init__(self, message, series=None, n_changepoints=None, iteration=None):
        self.reason = message
        self.series = series
        self.n_changepoints = n_changepoints
        self.iteration = iteration
        super().__init__(_with_context(message, series, n_changepoints, iteration))

    def __reduce__(self):
        return self.__class__, (self.reason, self.series, self.n_changepoints, self.iteration)


class SamplingError(RuntimeError):
    pass


class InvalidInput(_ContextMixin, ValueError):
    """The observation sequence or the requested number of changepoints is unusable."""


class InvalidConfig(_ContextMixin, ValueError):
    """A prior hyperparameter or a sampler setting is out of range."""


class DegenerateLikelihood(_ContextMixin, SamplingError):
    """Every state of the forward filter has zero probability."""


class MarginalLikelihoodUnstable(_ContextMixin, SamplingError):
    """Chib's estimate could not be evaluated at a finite point."""
