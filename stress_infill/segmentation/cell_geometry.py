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

"""Per-cell geometry and field helpers for volumetric grids."""

import numpy as np
import pyvista as pv
from vtk.util import numpy_support

TETRA_CELL_TYPES = (int(pv.CellType.TETRA), int(pv.CellType.QUADRATIC_TETRA))
HEXAHEDRON_CELL_TYPES = (
    int(pv.CellType.HEXAHEDRON),
    int(pv.CellType.QUADRATIC_HEXAHEDRON),
)
SUPPORTED_CELL_TYPES = TETRA_CELL_TYPES + HEXAHEDRON_CELL_TYPES

# Corner indices (VTK hexahedron ordering) of the five tetrahedra a hexahedron
# is split into for volume computation.
HEXAHEDRON_TO_TETRA = (
    (0, 1, 3, 4),
    (1, 2, 3, 6),
    (1, 4, 5, 6),
    (3, 4, 6, 7),
    (1, 3, 4, 6),
)

CELL_TYPE_NAMES = {
    int(pv.CellType.TETRA): "TETRA",
    int(pv.CellType.QUADRATIC_TETRA): "QUADRATIC_TETRA",
    int(pv.CellType.HEXAHEDRON): "HEXAHEDRON",
    int(pv.CellType.QUADRATIC_HEXAHEDRON): "QUADRATIC_HEXAHEDRON",
}


def cell_type_name(cell_type: int) -> str:
    return CELL_TYPE_NAMES.get(int(cell_type), "unsupported")


def supported_cell_mask(grid: pv.UnstructuredGrid) -> np.ndarray:
    """Boolean mask of cells whose type has a defined volume."""
    return np.isin(np.asarray(grid.celltypes), SUPPORTED_CELL_TYPES)


def cell_type_counts(grid: pv.UnstructuredGrid) -> dict[int, int]:
    types, counts = np.unique(np.asarray(grid.celltypes), return_counts=True)
    return {int(t): int(c) for t, c in zip(types, counts)}


def _connectivity(grid: pv.UnstructuredGrid) -> tuple[np.ndarray, np.ndarray]:
    """Return (offsets, connectivity) in the VTK >= 9 layout."""
    cells = grid.GetCells()
    if cells is None:
        return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)
    offsets = numpy_support.vtk_to_numpy(cells.GetOffsetsArray())
    connectivity = numpy_support.vtk_to_numpy(cells.GetConnectivityArray())
    return offsets.astype(np.int64), connectivity.astype(np.int64)


def max_node_index(grid: pv.UnstructuredGrid) -> int:
    """Largest node index referenced by any cell, -1 for a grid without cells."""
    _, connectivity = _connectivity(grid)
    if connectivity.size == 0:
        return -1
    return int(connectivity.max())


def cell_mean_values(grid: pv.UnstructuredGrid, values: np.ndarray) -> np.ndarray:
    """Arithmetic mean of the node values of every cell.

    All nodes of a cell take part, including the mid-edge nodes of quadratic
    elements.

    Args:
        grid: Volumetric grid
        values: One scalar per grid point

    Returns:
        (n_cells,) float64 array
    """
    offsets, connectivity = _connectivity(grid)
    n_cells = offsets.shape[0] - 1
    if n_cells <= 0:
        return np.zeros(0, dtype=np.float64)

    values = np.asarray(values, dtype=np.float64).reshape(-1)
    counts = np.diff(offsets)
    sums = np.zeros(n_cells, dtype=np.float64)
    # Cells without nodes (e.g. EMPTY_CELL) are left out of reduceat; each
    # remaining segment then runs up to the next non-empty start.
    non_empty = counts > 0
    if non_empty.any():
        sums[non_empty] = np.add.reduceat(
            values[connectivity], offsets[:-1][non_empty]
        )
    return sums / np.maximum(counts, 1)


def tetra_volumes(
    p0: np.ndarray, p1: np.ndarray, p2: np.ndarray, p3: np.ndarray
) -> np.ndarray:
    """Unsigned volumes of tetrahedra given their corner coordinates (k, 3)."""
    signed = np.einsum("ij,ij->i", p1 - p0, np.cross(p2 - p0, p3 - p0)) / 6.0
    return np.abs(signed)


def _corner_points(
    points: np.ndarray,
    offsets: np.ndarray,
    connectivity: np.ndarray,
    cell_ids: np.ndarray,
    num_corners: int,
) -> np.ndarray:
    """Coordinates of the first ``num_corners`` nodes of each selected cell."""
    starts = offsets[cell_ids]
    node_ids = connectivity[starts[:, None] + np.arange(num_corners)[None, :]]
    return points[node_ids]  # (k, num_corners, 3)


def cell_volumes(grid: pv.UnstructuredGrid) -> np.ndarray:
    """Volume of every cell; unsupported cell types get 0.

    Tetrahedra use their 4 corner nodes. Hexahedra use their 8 corner nodes
    split into five tetrahedra. Mid-edge nodes of quadratic elements are
    ignored.
    """
    offsets, connectivity = _connectivity(grid)
    n_cells = offsets.shape[0] - 1
    volumes = np.zeros(max(n_cells, 0), dtype=np.float64)
    if n_cells <= 0:
        return volumes

    points = np.asarray(grid.points, dtype=np.float64)
    celltypes = np.asarray(grid.celltypes)

    tet_ids = np.flatnonzero(np.isin(celltypes, TETRA_CELL_TYPES))
    if tet_ids.size:
        corners = _corner_points(points, offsets, connectivity, tet_ids, 4)
        volumes[tet_ids] = tetra_volumes(
            corners[:, 0], corners[:, 1], corners[:, 2], corners[:, 3]
        )

    hex_ids = np.flatnonzero(np.isin(celltypes, HEXAHEDRON_CELL_TYPES))
    if hex_ids.size:
        corners = _corner_points(points, offsets, connectivity, hex_ids, 8)
        hex_volume = np.zeros(hex_ids.size, dtype=np.float64)
        for a, b, c, d in HEXAHEDRON_TO_TETRA:
            hex_volume += tetra_volumes(
                corners[:, a], corners[:, b], corners[:, c], corners[:, d]
            )
        volumes[hex_ids] = hex_volume

    return volumes
