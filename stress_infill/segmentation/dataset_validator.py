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

"""Validation of the analysis results fed to the segmentation pipeline."""

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

import vtk

from stress_infill.etl.dataset_validators import (
    DatasetValidator,
    ValidationError,
    ValidationLevel,
)
from stress_infill.etl.processing_config import ProcessingConfig

from .errors import DataUnavailable
from .stress_field import StressFieldPreparer, load_grid

RESULT_EXTENSIONS = (".vtu", ".vtk")


def is_readable_result(path: Path) -> bool:
    """Check the file header without loading the grid."""
    if path.suffix.lower() == ".vtu":
        return bool(vtk.vtkXMLUnstructuredGridReader().CanReadFile(str(path)))

    reader = vtk.vtkDataSetReader()
    reader.SetFileName(str(path))
    return any(
        check()
        for check in (
            reader.IsFileUnstructuredGrid,
            reader.IsFilePolyData,
            reader.IsFileStructuredGrid,
            reader.IsFileStructuredPoints,
            reader.IsFileRectilinearGrid,
        )
    )


class StressGridValidator(DatasetValidator):
    """Validator for a directory of volumetric stress results."""

    def __init__(
        self,
        cfg: ProcessingConfig,
        validation_level: Optional[str] = "structure",
        input_dir: Optional[Path] = None,
        stress_label: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(cfg, **kwargs)
        self.input_dir = Path(input_dir) if input_dir else None
        self.stress_label = stress_label
        self.validation_level = ValidationLevel(validation_level)
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self) -> list[ValidationError]:
        """Validate every result file in the input directory.

        Returns:
            List of validation errors. Empty list means validation passed.
        """
        self.logger.info(
            f"Starting stress result validation (level: {self.validation_level.value})"
        )

        if self.input_dir is None or not self.input_dir.exists():
            return [
                ValidationError(
                    self.input_dir,
                    "Input directory does not exist",
                    ValidationLevel.STRUCTURE,
                )
            ]

        result_files = sorted(
            p
            for p in self.input_dir.iterdir()
            if p.is_file() and p.suffix.lower() in RESULT_EXTENSIONS
        )
        if not result_files:
            return [
                ValidationError(
                    self.input_dir,
                    "No result files (.vtu, .vtk) found",
                    ValidationLevel.STRUCTURE,
                )
            ]

        self.logger.info(f"Found {len(result_files)} result files to validate")

        all_errors = []
        if self.num_processes == 1:
            for path in result_files:
                all_errors.extend(self.validate_single_item(path))
        else:
            with ProcessPoolExecutor(max_workers=self.num_processes) as executor:
                future_to_path = {
                    executor.submit(self.validate_single_item, path): path
                    for path in result_files
                }
                for future in as_completed(future_to_path):
                    path = future_to_path[future]
                    try:
                        all_errors.extend(future.result())
                    except Exception as e:
                        self.logger.error(f"Error validating {path}: {str(e)}")
                        all_errors.append(
                            ValidationError(
                                path,
                                f"Validation failed: {str(e)}",
                                ValidationLevel.STRUCTURE,
                            )
                        )

        if all_errors:
            self.logger.warning(f"Validation found {len(all_errors)} errors")
        else:
            self.logger.info("Validation completed successfully")

        return all_errors

    def validate_single_item(self, path: Path) -> list[ValidationError]:
        """Validate a single result file.

        STRUCTURE only inspects the file header. FIELDS loads the grid and
        resolves its stress field. This method may run in a separate process.
        """
        if not path.exists():
            return [
                ValidationError(
                    path, "Result file not found", ValidationLevel.STRUCTURE
                )
            ]
        if not is_readable_result(path):
            return [
                ValidationError(
                    path,
                    "Not a readable VTK dataset",
                    ValidationLevel.STRUCTURE,
                )
            ]

        if self.validation_level != ValidationLevel.FIELDS:
            return []

        try:
            StressFieldPreparer(self.stress_label).prepare(load_grid(path))
        except DataUnavailable as e:
            return [ValidationError(path, str(e), ValidationLevel.FIELDS)]
        return []
