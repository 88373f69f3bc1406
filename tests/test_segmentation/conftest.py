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

"""Small hand-built grids for the segmentation tests.

Cells are placed side by side along x without sharing nodes, so every cell
carries its own node values and extracts to its own closed surface.
"""

import numpy as np
import pytest
import pyvista as pv

HEX_CORNERS = np.array(
    [
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [1.0, 1.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
        [1.0, 0.0, 1.0],
        [1.0, 1.0, 1.0],
        [0.0, 1.0, 1.0],
    ]
)
TET_CORNERS = np.array(
    [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
)
WEDGE_CORNERS = np.array(
    [
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
        [1.0, 0.0, 1.0],
        [0.0, 1.0, 1.0],
    ]
)
TRIANGLE_CORNERS = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])

# VTK edge order of the mid-edge nodes of quadratic cells
TET_EDGES = ((0, 1), (1, 2), (2, 0), (0, 3), (1, 3), (2, 3))
HEX_EDGES = (
    (0, 1), (1, 2), (2, 3), (3, 0),
    (4, 5), (5, 6), (6, 7), (7, 4),
    (0, 4), (1, 5), (2, 6), (3, 7),
)  # fmt: skip


def with_mid_edge_nodes(corners: np.ndarray, edges) -> np.ndarray:
    mids = np.array([(corners[a] + corners[b]) / 2.0 for a, b in edges])
    return np.vstack([corners, mids])


QUADRATIC_TET_NODES = with_mid_edge_nodes(TET_CORNERS, TET_EDGES)
QUADRATIC_HEX_NODES = with_mid_edge_nodes(HEX_CORNERS, HEX_EDGES)

CELL_NODES = {
    pv.CellType.TETRA: TET_CORNERS,
    pv.CellType.QUADRATIC_TETRA: QUADRATIC_TET_NODES,
    pv.CellType.HEXAHEDRON: HEX_CORNERS,
    pv.CellType.QUADRATIC_HEXAHEDRON: QUADRATIC_HEX_NODES,
    pv.CellType.WEDGE: WEDGE_CORNERS,
    pv.CellType.TRIANGLE: TRIANGLE_CORNERS,
    pv.CellType.EMPTY_CELL: np.zeros((0, 3)),
}


def build_grid(cells, label: str = "von_mises", spacing: float = 2.0):
    """Build a grid from ``(cell_type, node_values)`` pairs.

    ``node_values`` is either one stress for every node of the cell or a
    sequence with one stress per node. A third tuple item may replace the
    default node coordinates of the cell type.
    """
    points, connectivity, celltypes, values = [], [], [], []
    n_points = 0
    for i, cell in enumerate(cells):
        cell_type, node_values = cell[0], cell[1]
        nodes = cell[2] if len(cell) > 2 else CELL_NODES[cell_type]
        nodes = np.asarray(nodes, dtype=np.float64) + [spacing * i, 0.0, 0.0]
        k = nodes.shape[0]

        points.append(nodes)
        connectivity.extend([k, *range(n_points, n_points + k)])
        celltypes.append(cell_type)
        values.append(np.broadcast_to(np.asarray(node_values, dtype=np.float64), k))
        n_points += k

    grid = pv.UnstructuredGrid(
        np.asarray(connectivity, dtype=np.int64),
        np.asarray(celltypes, dtype=np.uint8),
        np.vstack(points),
    )
    if label is not None:
        grid.point_data[label] = np.concatenate(values)
    return grid


@pytest.fixture
def hex_grid():
    """Factory for a row of unit cubes, one uniform stress per cube."""

    def factory(stresses, label: str = "von_mises"):
        return build_grid([(pv.CellType.HEXAHEDRON, s) for s in stresses], label)

    return factory


@pytest.fixture
def tet_grid():
    """Factory for a row of unit corner tetrahedra (volume 1/6 each)."""

    def factory(stresses, label: str = "von_mises"):
        return build_grid([(pv.CellType.TETRA, s) for s in stresses], label)

    return factory


@pytest.fixture
def unsupported_grid():
    """Wedges and triangles only; none of them has a defined volume."""
    return build_grid(
        [
            (pv.CellType.WEDGE, 5.0),
            (pv.CellType.TRIANGLE, 15.0),
            (pv.CellType.WEDGE, 25.0),
        ]
    )


@pytest.fixture
def grid_builder():
    return build_grid
