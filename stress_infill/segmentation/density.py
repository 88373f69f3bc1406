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

"""Infill density lookup for registered region meshes."""

from dataclasses import dataclass
from typing import Iterable, Sequence

from .schemas import MeshInfo


@dataclass(frozen=True)
class StressDensityMapping:
    """Infill density (percent) for stresses in ``[stress_min, stress_max)``."""

    stress_min: float
    stress_max: float
    density: float


@dataclass(frozen=True)
class DensityConfig:
    """Density limits passed explicitly to ``assign_densities``."""

    default_density: float = 20.0
    min_density: float = 0.0
    max_density: float = 100.0

    def __post_init__(self):
        if self.min_density > self.max_density:
            raise ValueError(
                f"min_density ({self.min_density}) exceeds "
                f"max_density ({self.max_density})"
            )

    def clamp(self, density: float) -> float:
        return min(max(density, self.min_density), self.max_density)


def density_for_stress(
    stress: float,
    mappings: Sequence[StressDensityMapping],
    config: DensityConfig,
) -> float:
    """Density of the first mapping whose range holds ``stress``."""
    for mapping in mappings:
        if mapping.stress_min <= stress < mapping.stress_max:
            return config.clamp(mapping.density)
    return config.clamp(config.default_density)


def assign_densities(
    mesh_infos: Iterable[MeshInfo],
    mappings: Sequence[StressDensityMapping],
    config: DensityConfig = DensityConfig(),
) -> dict[int, float]:
    """Map each mesh id to the density of its band midpoint."""
    return {
        info.mesh_id: density_for_stress(info.midpoint, mappings, config)
        for info in mesh_infos
    }
