# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES.
# SPDX-FileCopyrightText: All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Iterable

import numpy as np

from .errors import InvalidConfiguration
from .schemas import StressBand


def normalize_thresholds(thresholds: Iterable[float]) -> list[float]:
    """Deduplicate and sort thresholds ascending.

    Raises:
        InvalidConfiguration: Fewer than two distinct finite values remain.
    """
    values = np.asarray(list(thresholds), dtype=np.float64).reshape(-1)
    if values.size and not np.all(np.isfinite(values)):
        raise InvalidConfiguration(f"Thresholds must be finite, got {values.tolist()}")
    unique = np.unique(values)
    if unique.size < 2:
        raise InvalidConfiguration(
            f"At least two distinct thresholds are required to define a band, "
            f"got {values.tolist()}"
        )
    return [float(v) for v in unique]


def build_bands(thresholds: Iterable[float]) -> list[StressBand]:
    """Consecutive bands between sorted unique thresholds.

    Every band is ``[t[i], t[i+1])`` except the last, which is closed so that the
    highest threshold itself is included.
    """
    values = normalize_thresholds(thresholds)
    last = len(values) - 2
    return [
        StressBand(index=i, lower=lo, upper=hi, closed=(i == last))
        for i, (lo, hi) in enumerate(zip(values[:-1], values[1:]))
    ]


def equal_width_thresholds(
    stress_min: float, stress_max: float, num_bands: int
) -> list[float]:
    """Evenly spaced thresholds ``[min, ..., max]`` giving ``num_bands`` bands."""
    if num_bands < 1:
        raise InvalidConfiguration(f"num_bands must be positive, got {num_bands}")
    if not stress_min < stress_max:
        raise InvalidConfiguration(
            f"Stress range must be positive, got [{stress_min}, {stress_max}]"
        )
    return [float(v) for v in np.linspace(stress_min, stress_max, num_bands + 1)]
