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

import numpy as np
import pyvista as pv

from .cell_geometry import (
    cell_mean_values,
    cell_type_counts,
    cell_type_name,
    cell_volumes,
    supported_cell_mask,
)
from .errors import DataUnavailable, InvalidConfiguration
from .schemas import VolumeFractionTable
from .stress_field import point_scalar_labels

DEFAULT_NUM_DIVISIONS = 20


def bin_indices(
    stresses: np.ndarray, stress_min: float, stress_max: float, num_divisions: int
) -> np.ndarray:
    """Equal-width bin of each stress, clamped to ``[0, num_divisions - 1]``."""
    step = (stress_max - stress_min) / num_divisions
    indices = np.floor((stresses - stress_min) / step)
    return np.clip(indices, 0, num_divisions - 1).astype(np.int64)


class VolumeFractionCalculator:
    """Share of the part volume whose cells fall into each stress bin.

    The stress range is split into ``num_divisions`` equal-width bins. Every
    cell is classified by the mean stress of its nodes and contributes its
    volume to that bin. Cells of an unsupported type have no volume and are
    only counted.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate_input(
        self,
        grid: pv.UnstructuredGrid,
        stress_label: str,
        stress_min: float,
        stress_max: float,
        num_divisions: int,
    ) -> None:
        """Check the preconditions of ``compute``.

        Raises:
            InvalidConfiguration: Empty range or non-positive bin count
            DataUnavailable: Missing grid or stress field
        """
        if not np.isfinite(stress_min) or not np.isfinite(stress_max):
            raise InvalidConfiguration(
                f"Stress range must be finite, got [{stress_min}, {stress_max}]"
            )
        if stress_min >= stress_max:
            raise InvalidConfiguration(
                f"Invalid stress range (min >= max): [{stress_min}, {stress_max}]"
            )
        if num_divisions < 1:
            raise InvalidConfiguration(
                f"num_divisions must be positive, got {num_divisions}"
            )
        if grid is None:
            raise DataUnavailable("No grid available")
        if not stress_label:
            raise DataUnavailable("Stress label is empty")

        labels = point_scalar_labels(grid)
        if stress_label not in labels:
            raise DataUnavailable(
                f"Could not get stress data for label '{stress_label}'; "
                f"available point scalars: {labels}"
            )

    def compute(
        self,
        grid: pv.UnstructuredGrid,
        stress_label: str,
        stress_min: float,
        stress_max: float,
        num_divisions: int = DEFAULT_NUM_DIVISIONS,
    ) -> VolumeFractionTable:
        """Compute the volume fraction table.

        Args:
            grid: Volumetric grid; never modified
            stress_label: Point-scalar array holding the stress
            stress_min: Lower edge of the first bin
            stress_max: Upper edge of the last bin
            num_divisions: Number of equal-width bins

        Returns:
            A fresh table. When no cell has volume, every fraction is 0.
        """
        self.validate_input(grid, stress_label, stress_min, stress_max, num_divisions)
        self.logger.info(
            f"Computing volume fractions of '{stress_label}' over "
            f"[{stress_min}, {stress_max}] in {num_divisions} bins"
        )

        stresses = np.asarray(grid.point_data[stress_label], dtype=np.float64)
        cell_stress = cell_mean_values(grid, stresses.reshape(-1))
        volumes = cell_volumes(grid)
        supported = supported_cell_mask(grid)

        has_volume = supported & (volumes > 0.0) & np.isfinite(cell_stress)
        skipped = int((~supported).sum())
        degenerate = int((supported & ~has_volume).sum())

        bins = np.zeros(num_divisions, dtype=np.float64)
        indices = bin_indices(
            cell_stress[has_volume], stress_min, stress_max, num_divisions
        )
        # Sequential accumulation keeps results identical across calls.
        np.add.at(bins, indices, volumes[has_volume])
        total_volume = float(volumes[has_volume].sum())

        counts = cell_type_counts(grid)
        for cell_type, count in counts.items():
            self.logger.info(
                f"  CellType {cell_type}: {count} cells ({cell_type_name(cell_type)})"
            )
        self.logger.info(
            f"Processed cells: {int(has_volume.sum())}, skipped (unsupported): "
            f"{skipped}, degenerate: {degenerate}, total volume: {total_volume}"
        )
        self.logger.debug(f"Volume per bin (before normalization): {bins.tolist()}")

        if total_volume > 0.0:
            fractions = bins / total_volume
        else:
            self.logger.warning("Total volume is 0; all volume fractions are 0")
            fractions = np.zeros(num_divisions, dtype=np.float64)

        self.logger.info(f"Sum of fractions: {float(fractions.sum())}")

        return VolumeFractionTable(
            stress_label=stress_label,
            stress_min=float(stress_min),
            stress_max=float(stress_max),
            fractions=fractions,
            total_volume=total_volume,
            processed_cells=int(has_volume.sum()),
            skipped_cells=skipped,
            degenerate_cells=degenerate,
            cell_type_counts=counts,
        )
