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


"""poissoncp: Bayesian multiple-changepoint models for Poisson count series."""

import logging

__version__ = "0.1.0"

_log = logging.getLogger(__name__)

if not logging.root.handlers:
    _log.setLevel(logging.INFO)
    if len(_log.handlers) == 0:
        handler = logging.StreamHandler()
        _log.addHandler(handler)


from poissoncp.backends import *
from poissoncp.data import *
from poissoncp.exceptions import *
from poissoncp.model import *
from poissoncp.sampling import *
from poissoncp.stats import *
from poissoncp.step_methods import *
from poissoncp.util import get_random_generator
