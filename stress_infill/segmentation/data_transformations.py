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
from typing import Optional

from stress_infill.etl.data_transformations import DataTransformation
from stress_infill.etl.processing_config import ProcessingConfig, SegmentationConfig

from .partitioner import ThresholdPartitioner
from .schemas import StressAnalysisData, StressBand
from .stress_field import StressFieldPreparer
from .thresholds import build_bands, equal_width_thresholds
from .volume_fraction import VolumeFractionCalculator


class StressSegmentationTransformation(DataTransformation):
    """Split an analysis result into stress-band region meshes.

    Steps:
    1. Resolve the stress field and its range
    2. Derive the thresholds (configured, or evenly spread over the range)
    3. Compute the volume fraction table over the field range, or over the
       threshold span when the field is uniform
    4. Partition the grid into region meshes
    """

    def __init__(
        self,
        cfg: ProcessingConfig,
        thresholds: Optional[list[float]] = None,
        num_bands: Optional[int] = None,
        num_divisions: int = 20,
        stress_label: Optional[str] = None,
        max_workers: int = 1,
    ):
        super().__init__(cfg)
        self.logger = logging.getLogger(__name__)
        self.segmentation = SegmentationConfig(
            thresholds=list(thresholds) if thresholds is not None else None,
            num_bands=num_bands,
            num_divisions=num_divisions,
            stress_label=stress_label,
            max_workers=max_workers,
        )
        self.calculator = VolumeFractionCalculator()

    def resolve_thresholds(self, stress_min: float, stress_max: float) -> list[float]:
        if self.segmentation.thresholds is not None:
            return self.segmentation.thresholds
        return equal_width_thresholds(
            stress_min, stress_max, self.segmentation.num_bands
        )

    def table_range(
        self, stress_min: float, stress_max: float, bands: list[StressBand]
    ) -> tuple[float, float]:
        """Stress range of the volume fraction table.

        The field range is used when it is not empty. A uniform field with
        explicit thresholds falls back to the span of the bands; with
        ``num_bands`` there is no span to fall back to.
        """
        if stress_min < stress_max or self.segmentation.thresholds is None:
            return stress_min, stress_max
        self.logger.warning(
            f"Stress field is uniform at {stress_min}; computing volume fractions "
            f"over the threshold span [{bands[0].lower}, {bands[-1].upper}]"
        )
        return bands[0].lower, bands[-1].upper

    def transform(self, data: StressAnalysisData) -> StressAnalysisData:
        """Segment ``data.grid``; fatal errors propagate and nothing is returned."""
        self.logger.info(f"Transforming {data.metadata.filename}")
        grid = data.grid

        field = StressFieldPreparer(self.segmentation.stress_label).prepare(grid)
        thresholds = self.resolve_thresholds(field.stress_min, field.stress_max)
        bands = build_bands(thresholds)

        table_min, table_max = self.table_range(
            field.stress_min, field.stress_max, bands
        )
        volume_fractions = self.calculator.compute(
            grid,
            field.label,
            table_min,
            table_max,
            num_divisions=self.segmentation.num_divisions,
        )

        partitioner = ThresholdPartitioner(
            preparer=StressFieldPreparer(field.label),
            max_workers=self.segmentation.max_workers,
        )
        regions = partitioner.partition(grid, thresholds)

        self.logger.info(
            f"Processed {data.metadata.filename}: {len(regions)} regions from "
            f"{len(bands)} bands, total volume {volume_fractions.total_volume}"
        )

        data.metadata.stress_label = field.label
        data.metadata.stress_min = field.stress_min
        data.metadata.stress_max = field.stress_max
        data.metadata.used_fallback_label = field.used_fallback
        data.metadata.num_points = int(grid.n_points)
        data.metadata.num_cells = int(grid.n_cells)

        data.bands = bands
        data.regions = regions
        data.volume_fractions = volume_fractions
        # Release the grid; the regions own their buffers.
        data.grid = None
        return data
