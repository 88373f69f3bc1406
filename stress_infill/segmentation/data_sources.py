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

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from stress_infill.etl.data_sources import DataSource
from stress_infill.etl.processing_config import ProcessingConfig

from .density import DensityConfig, StressDensityMapping, assign_densities
from .registry import RegionMeshRegistry
from .schemas import StressAnalysisData, StressAnalysisMetadata
from .stress_field import load_grid

RESULT_EXTENSIONS = (".vtu", ".vtk")


class StressGridDataSource(DataSource):
    """Data source for reading volumetric analysis results (.vtu / .vtk)."""

    def __init__(
        self,
        cfg: ProcessingConfig,
        input_dir: str,
        extensions: Optional[list[str]] = None,
    ):
        super().__init__(cfg)
        self.input_dir = Path(input_dir)
        self.extensions = tuple(
            e.lower() for e in (extensions if extensions else RESULT_EXTENSIONS)
        )

        if not self.input_dir.exists():
            self.logger.error(f"Input directory does not exist: {self.input_dir}")
            raise FileNotFoundError(f"Input directory does not exist: {self.input_dir}")

    def get_file_list(self) -> list[str]:
        """Result files in the input directory, sorted by name."""
        files = sorted(
            p.name
            for p in self.input_dir.iterdir()
            if p.is_file() and p.suffix.lower() in self.extensions
        )
        self.logger.info(f"Found {len(files)} analysis results to process")
        return files

    def read_file(self, filename: str) -> StressAnalysisData:
        """Load one result file as a grid.

        Raises:
            DataUnavailable: The file cannot be read.
        """
        path = self.input_dir / filename
        self.logger.info(f"Reading {path}")
        grid = load_grid(path)
        return StressAnalysisData(
            metadata=StressAnalysisMetadata(
                filename=filename,
                num_points=int(grid.n_points),
                num_cells=int(grid.n_cells),
            ),
            grid=grid,
        )

    def _get_output_path(self, filename: str) -> Path:
        """Not implemented - this source only reads."""
        raise NotImplementedError("StressGridDataSource only supports reading")

    def _write_impl_temp_file(self, data: Any, output_path: Path) -> None:
        """Not implemented - this source only reads."""
        raise NotImplementedError("StressGridDataSource only supports reading")

    def should_skip(self, filename: str) -> bool:
        """Never skip for reading."""
        return False

    def write(self, data: Any, filename: str) -> None:
        """Not implemented - this source only reads."""
        raise NotImplementedError("StressGridDataSource only supports reading")


class RegionMeshDataSource(DataSource):
    """Sink writing the region meshes and reports of each analysis result.

    Every result gets its own working directory ``<output_dir>/<result stem>/``
    holding ``modifierMesh{id}.stl`` files, the ``mesh_index.json`` side-table
    and ``volume_fractions.json``. The directory is regenerated on every write.
    """

    REPORT_FILENAME = "volume_fractions.json"

    def __init__(
        self,
        cfg: ProcessingConfig,
        output_dir: str,
        overwrite_existing: bool = True,
        binary_stl: bool = True,
        density_mappings: Optional[list[dict[str, float]]] = None,
        default_density: float = 20.0,
        min_density: float = 0.0,
        max_density: float = 100.0,
    ):
        """Initialize the region mesh sink.

        Args:
            cfg: Processing configuration
            output_dir: Root directory of the per-result working directories
            overwrite_existing: Whether to regenerate results that already exist
            binary_stl: Write binary rather than ASCII STL
            density_mappings: Optional ``{stress_min, stress_max, density}`` rows
                used to attach an infill density to each mesh in the report
            default_density: Density for meshes no mapping covers
            min_density: Lower clamp for assigned densities
            max_density: Upper clamp for assigned densities
        """
        super().__init__(cfg)
        self.output_dir = Path(output_dir)
        self.overwrite_existing = overwrite_existing
        self.binary_stl = binary_stl
        self.density_mappings = [
            StressDensityMapping(**dict(m)) for m in (density_mappings or [])
        ]
        self.density_config = DensityConfig(
            default_density=default_density,
            min_density=min_density,
            max_density=max_density,
        )

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def get_file_list(self) -> list[str]:
        """Not implemented - this sink only writes."""
        raise NotImplementedError("RegionMeshDataSource only supports writing")

    def read_file(self, filename: str) -> Any:
        """Not implemented - this sink only writes."""
        raise NotImplementedError("RegionMeshDataSource only supports writing")

    def run_dir(self, filename: str) -> Path:
        return self.output_dir / Path(filename).stem

    def get_registry(self, filename: str) -> RegionMeshRegistry:
        return RegionMeshRegistry(self.run_dir(filename), binary=self.binary_stl)

    def _get_output_path(self, filename: str) -> Path:
        return self.run_dir(filename) / self.REPORT_FILENAME

    def write(self, data: StressAnalysisData, filename: str) -> None:
        """Regenerate the working directory of ``filename`` from ``data``.

        The report is written last, so its presence marks a complete result.
        """
        self._get_output_path(filename).unlink(missing_ok=True)

        registry = self.get_registry(filename)
        registry.clear()
        mesh_infos = registry.register_all(data.regions)
        registry.write_index()

        densities = {}
        if self.density_mappings:
            densities = assign_densities(
                mesh_infos, self.density_mappings, self.density_config
            )

        report = {
            "metadata": asdict(data.metadata),
            "bands": [asdict(band) for band in data.bands],
            "meshes": [asdict(info) for info in mesh_infos],
            "densities": {str(k): float(v) for k, v in densities.items()},
            "volume_fractions": (
                data.volume_fractions.to_json()
                if data.volume_fractions is not None
                else None
            ),
        }
        super().write(report, filename)
        self.logger.info(
            f"Wrote {len(mesh_infos)} region meshes to {registry.root}"
        )

    def _write_impl_temp_file(self, data: dict[str, Any], output_path: Path) -> None:
        """Write the JSON report for one result.

        Receives a TEMPORARY path from the base class; the base class renames it.
        """
        with open(output_path, "w") as f:
            json.dump(data, f, indent=2)

    def should_skip(self, filename: str) -> bool:
        """Skip results that already have a report unless overwriting."""
        if self.overwrite_existing:
            return False

        output_path = self._get_output_path(filename)
        if output_path.exists():
            self.logger.info(f"Skipping {filename} - Report already exists")
            return True
        return False

    def cleanup_temp_files(self) -> None:
        """Remove temp files left in any working directory by interrupted runs."""
        if not self.output_dir.exists():
            return

        for run_dir in self.output_dir.iterdir():
            if run_dir.is_dir():
                RegionMeshRegistry(run_dir).cleanup_temp_files()
