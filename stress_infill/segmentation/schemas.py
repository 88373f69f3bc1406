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

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pyvista as pv


@dataclass(frozen=True)
class StressBand:
    """A stress interval ``[lower, upper)``, closed on both ends when ``closed``."""

    index: int
    lower: float
    upper: float
    closed: bool = False

    def contains(self, values: np.ndarray) -> np.ndarray:
        """Boolean mask of ``values`` that fall inside this band."""
        above = values >= self.lower
        if self.closed:
            return above & (values <= self.upper)
        return above & (values < self.upper)

    @property
    def midpoint(self) -> float:
        return 0.5 * (self.lower + self.upper)


@dataclass
class RegionMesh:
    """Triangulated boundary of the cells that fall into one stress band.

    The vertex and triangle buffers are owned by this object; nothing is
    shared with the source grid or with other bands.
    """

    mesh_id: int
    band: StressBand
    vertices: np.ndarray  # (n_vertices, 3) float64
    triangles: np.ndarray  # (n_triangles, 3) int64
    num_cells: int = 0

    @property
    def stress_min(self) -> float:
        return self.band.lower

    @property
    def stress_max(self) -> float:
        return self.band.upper

    @property
    def n_triangles(self) -> int:
        return int(self.triangles.shape[0])

    def to_polydata(self) -> pv.PolyData:
        """Build a PyVista surface from the owned buffers."""
        faces = np.hstack(
            [np.full((self.n_triangles, 1), 3, dtype=np.int64), self.triangles]
        ).ravel()
        return pv.PolyData(self.vertices, faces=faces)


@dataclass(frozen=True)
class MeshInfo:
    """Registry entry for one persisted region mesh.

    Version history:
    - 1.0: Initial version; stress bounds are stored here, never in the file name.
    """

    mesh_id: int
    stress_min: float
    stress_max: float
    file_path: str

    @property
    def midpoint(self) -> float:
        return 0.5 * (self.stress_min + self.stress_max)


@dataclass
class VolumeFractionTable:
    """Volume fraction per equal-width stress bin.

    Version history:
    - 1.0: Initial version with fractions, total volume and cell diagnostics.
    """

    stress_label: str
    stress_min: float
    stress_max: float
    fractions: np.ndarray
    total_volume: float
    processed_cells: int = 0
    skipped_cells: int = 0
    degenerate_cells: int = 0
    cell_type_counts: dict[int, int] = field(default_factory=dict)

    @property
    def num_divisions(self) -> int:
        return int(self.fractions.shape[0])

    @property
    def bin_edges(self) -> np.ndarray:
        return np.linspace(self.stress_min, self.stress_max, self.num_divisions + 1)

    @property
    def has_volume(self) -> bool:
        return self.total_volume > 0.0

    def to_json(self) -> dict:
        return {
            "stress_label": self.stress_label,
            "stress_min": float(self.stress_min),
            "stress_max": float(self.stress_max),
            "num_divisions": self.num_divisions,
            "bin_edges": [float(v) for v in self.bin_edges],
            "fractions": [float(v) for v in self.fractions],
            "total_volume": float(self.total_volume),
            "processed_cells": int(self.processed_cells),
            "skipped_cells": int(self.skipped_cells),
            "degenerate_cells": int(self.degenerate_cells),
            "cell_type_counts": {
                str(k): int(v) for k, v in sorted(self.cell_type_counts.items())
            },
        }


@dataclass
class StressAnalysisMetadata:
    """Metadata for one structural-analysis result.

    Version history:
    - 1.0: Initial version with expected metadata fields.
    """

    filename: str
    stress_label: Optional[str] = None
    stress_min: Optional[float] = None
    stress_max: Optional[float] = None
    used_fallback_label: bool = False
    num_points: Optional[int] = None
    num_cells: Optional[int] = None


@dataclass
class StressAnalysisData:
    """Container for one analysis result as it moves through the pipeline.

    Version history:
    - 1.0: Initial version with expected data fields.
    """

    metadata: StressAnalysisMetadata

    # Raw data
    grid: Optional[pv.UnstructuredGrid] = None

    # Processed data
    bands: list[StressBand] = field(default_factory=list)
    regions: list[RegionMesh] = field(default_factory=list)
    volume_fractions: Optional[VolumeFractionTable] = None
