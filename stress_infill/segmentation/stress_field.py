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
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pyvista as pv

from .cell_geometry import max_node_index
from .errors import DataUnavailable

# Exact (case-insensitive) names preferred when several arrays exist.
KNOWN_STRESS_LABELS = (
    "von mises stress",
    "von_mises_stress",
    "vonmises",
    "von_mises",
    "mises",
    "s_mises",
    "seqv",
    "equivalent stress",
    "stress",
)

# Substrings tried when no exact name matches.
STRESS_KEYWORDS = ("mises", "stress", "seqv")


@dataclass(frozen=True)
class PreparedStressField:
    """The stress array chosen on a grid, with its finite range."""

    label: str
    values: np.ndarray
    stress_min: float
    stress_max: float
    used_fallback: bool = False


def load_grid(path: Path | str) -> pv.UnstructuredGrid:
    """Read a volumetric result file into an unstructured grid.

    Raises:
        DataUnavailable: The file is missing or cannot be read as a grid.
    """
    path = Path(path)
    if not path.exists():
        raise DataUnavailable(f"Result file not found: {path}")
    try:
        mesh = pv.read(str(path))
    except Exception as e:
        raise DataUnavailable(f"Could not read result file {path}: {e}") from e

    if isinstance(mesh, pv.MultiBlock):
        mesh = mesh.combine()
    if not isinstance(mesh, pv.UnstructuredGrid):
        mesh = mesh.cast_to_unstructured_grid()
    return mesh


def point_scalar_labels(grid: pv.UnstructuredGrid) -> list[str]:
    """Names of the numeric single-component point arrays, in storage order."""
    labels = []
    for name in grid.point_data.keys():
        array = np.asarray(grid.point_data[name])
        if not np.issubdtype(array.dtype, np.number):
            continue
        if array.ndim == 1 or (array.ndim == 2 and array.shape[1] == 1):
            labels.append(name)
    return labels


def detect_stress_label(labels: Sequence[str]) -> tuple[Optional[str], bool]:
    """Pick the stress array among ``labels``.

    Returns:
        (label, used_fallback). ``label`` is None when ``labels`` is empty.
    """
    if not labels:
        return None, False

    lowered = {label.lower().strip(): label for label in reversed(labels)}
    for known in KNOWN_STRESS_LABELS:
        if known in lowered:
            return lowered[known], False

    for keyword in STRESS_KEYWORDS:
        for label in labels:
            if keyword in label.lower():
                return label, False

    return labels[0], True


class StressFieldPreparer:
    """Validate a volumetric grid and resolve its stress field."""

    def __init__(self, stress_label: Optional[str] = None):
        self.stress_label = stress_label
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate_grid(self, grid: pv.UnstructuredGrid) -> None:
        """Check the structural invariants of ``grid``.

        Raises:
            DataUnavailable: The grid is empty or its cells reference missing nodes.
        """
        if grid is None:
            raise DataUnavailable("No grid available")
        if grid.n_points == 0 or grid.n_cells == 0:
            raise DataUnavailable(
                f"Grid is empty ({grid.n_points} points, {grid.n_cells} cells)"
            )
        highest = max_node_index(grid)
        if highest >= grid.n_points:
            raise DataUnavailable(
                f"Cells reference node {highest} but the grid has only "
                f"{grid.n_points} points"
            )

    def resolve_label(self, grid: pv.UnstructuredGrid) -> tuple[str, bool]:
        """Return the stress label to use and whether it was a fallback choice."""
        labels = point_scalar_labels(grid)
        if not labels:
            raise DataUnavailable("Grid has no point-scalar arrays")

        if self.stress_label is not None:
            if self.stress_label not in labels:
                raise DataUnavailable(
                    f"Stress field '{self.stress_label}' not found; "
                    f"available point scalars: {labels}"
                )
            return self.stress_label, False

        label, used_fallback = detect_stress_label(labels)
        if used_fallback:
            self.logger.warning(
                f"No stress-like field among {labels}; falling back to '{label}'"
            )
        elif len(labels) > 1:
            self.logger.info(f"Detected stress field '{label}' among {labels}")
        return label, used_fallback

    def prepare(self, grid: pv.UnstructuredGrid) -> PreparedStressField:
        """Validate ``grid`` and return the chosen stress field with its range.

        Raises:
            DataUnavailable: Any precondition on the grid or its field fails.
        """
        self.validate_grid(grid)
        label, used_fallback = self.resolve_label(grid)

        values = np.asarray(grid.point_data[label], dtype=np.float64).reshape(-1)
        if values.shape[0] != grid.n_points:
            raise DataUnavailable(
                f"Field '{label}' has {values.shape[0]} values for "
                f"{grid.n_points} points"
            )

        finite = values[np.isfinite(values)]
        if finite.size == 0:
            raise DataUnavailable(f"Field '{label}' has no finite values")
        if finite.size != values.size:
            self.logger.warning(
                f"Field '{label}' has {values.size - finite.size} non-finite values"
            )

        prepared = PreparedStressField(
            label=label,
            values=values,
            stress_min=float(finite.min()),
            stress_max=float(finite.max()),
            used_fallback=used_fallback,
        )
        self.logger.info(
            f"Stress field '{label}': range [{prepared.stress_min}, "
            f"{prepared.stress_max}] over {grid.n_points} points, "
            f"{grid.n_cells} cells"
        )
        return prepared
