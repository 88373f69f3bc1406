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

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import pyvista as pv

from .cell_geometry import cell_mean_values, supported_cell_mask
from .schemas import RegionMesh, StressBand
from .stress_field import StressFieldPreparer
from .thresholds import build_bands


@dataclass
class BandSurface:
    """Surface extracted for one band, before a mesh id is assigned."""

    band: StressBand
    vertices: np.ndarray
    triangles: np.ndarray
    num_cells: int


def polydata_triangles(surface: pv.PolyData) -> np.ndarray:
    """(n, 3) triangle indices of a triangulated surface."""
    faces = np.asarray(surface.faces, dtype=np.int64)
    if faces.size == 0:
        return np.zeros((0, 3), dtype=np.int64)
    return faces.reshape(-1, 4)[:, 1:].copy()


class ThresholdPartitioner:
    """Split a volumetric grid into one surface mesh per stress band.

    Each band selects its cells from the full grid on its own, using the mean
    node stress of each cell. Only cells with a supported volumetric type are
    selectable. Mesh ids are handed out afterwards in ascending band order and
    only to bands whose surface has at least one triangle.
    """

    def __init__(
        self,
        preparer: Optional[StressFieldPreparer] = None,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self.preparer = preparer or StressFieldPreparer()
        self.max_workers = max_workers
        self.logger = logging.getLogger(self.__class__.__name__)

    def extract_band(
        self,
        grid: pv.UnstructuredGrid,
        band: StressBand,
        cell_values: np.ndarray,
        selectable: np.ndarray,
    ) -> Optional[BandSurface]:
        """Boundary surface of the cells in ``band``; None when the band is empty."""
        cell_ids = np.flatnonzero(band.contains(cell_values) & selectable)
        if cell_ids.size == 0:
            return None

        subset = grid.extract_cells(cell_ids)
        surface = subset.extract_surface().triangulate().clean()

        triangles = polydata_triangles(surface)
        if triangles.shape[0] == 0:
            return None

        return BandSurface(
            band=band,
            vertices=np.array(surface.points, dtype=np.float64, copy=True),
            triangles=triangles,
            num_cells=int(cell_ids.size),
        )

    def _extract_or_skip(
        self,
        grid: pv.UnstructuredGrid,
        band: StressBand,
        cell_values: np.ndarray,
        selectable: np.ndarray,
    ) -> Optional[BandSurface]:
        try:
            return self.extract_band(grid, band, cell_values, selectable)
        except Exception as e:
            self.logger.error(
                f"Extraction failed for band {band.index} "
                f"[{band.lower}, {band.upper}]: {e}. Skipping."
            )
            return None

    def partition(
        self,
        grid: pv.UnstructuredGrid,
        thresholds: Iterable[float],
        stress_label: Optional[str] = None,
    ) -> list[RegionMesh]:
        """Partition ``grid`` into region meshes, one per non-empty band.

        Args:
            grid: Volumetric grid carrying the stress field; never modified
            thresholds: Stress thresholds; deduplicated and sorted here
            stress_label: Field to use; detected on the grid when None

        Returns:
            Region meshes in ascending band order with mesh ids 0..k-1

        Raises:
            InvalidConfiguration: Fewer than two distinct thresholds
            DataUnavailable: The grid or its stress field is unusable
        """
        bands = build_bands(thresholds)

        if stress_label is not None:
            preparer = StressFieldPreparer(stress_label=stress_label)
        else:
            preparer = self.preparer
        field = preparer.prepare(grid)

        cell_values = cell_mean_values(grid, field.values)
        selectable = supported_cell_mask(grid)
        unsupported = int((~selectable).sum())
        if unsupported:
            self.logger.info(
                f"{unsupported} of {grid.n_cells} cells have an unsupported type "
                "and are not assigned to any band"
            )

        if self.max_workers > 1 and len(bands) > 1:
            # VTK filters attach pipeline state to their input, so every task
            # reads its own shallow copy. Copies are made before submission.
            views = [grid.copy(deep=False) for _ in bands]
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                surfaces = list(
                    executor.map(
                        lambda view, band: self._extract_or_skip(
                            view, band, cell_values, selectable
                        ),
                        views,
                        bands,
                    )
                )
        else:
            surfaces = [
                self._extract_or_skip(grid, band, cell_values, selectable)
                for band in bands
            ]

        return self.assign_mesh_ids(surfaces)

    def assign_mesh_ids(
        self, surfaces: list[Optional[BandSurface]]
    ) -> list[RegionMesh]:
        """Number the non-empty surfaces densely in ascending band order."""
        regions = []
        for surface in sorted(
            (s for s in surfaces if s is not None), key=lambda s: s.band.index
        ):
            regions.append(
                RegionMesh(
                    mesh_id=len(regions),
                    band=surface.band,
                    vertices=surface.vertices,
                    triangles=surface.triangles,
                    num_cells=surface.num_cells,
                )
            )
            self.logger.info(
                f"Region {regions[-1].mesh_id}: band {surface.band.index} "
                f"[{surface.band.lower}, {surface.band.upper}"
                f"{']' if surface.band.closed else ')'}: "
                f"{surface.num_cells} cells, {surface.triangles.shape[0]} triangles"
            )

        skipped = len(surfaces) - len(regions)
        if skipped:
            self.logger.info(f"{skipped} of {len(surfaces)} bands are empty")
        return regions
