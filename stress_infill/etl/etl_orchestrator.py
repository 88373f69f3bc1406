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
import time
from collections.abc import Mapping
from typing import Optional

from stress_infill.etl.data_processors import ParallelProcessor
from stress_infill.etl.data_sources import DataSource
from stress_infill.etl.data_transformations import DataTransformation
from stress_infill.etl.dataset_validators import DatasetValidator
from stress_infill.etl.processing_config import ProcessingConfig
from stress_infill.utils import utils as infill_utils


class ETLOrchestrator:
    """Run the segmentation pipeline from already-instantiated components.

    Handles logging setup, optional input validation, processing and the
    final summary. Subclass and override the individual steps to customize.
    """

    def __init__(
        self,
        source: DataSource,
        sink: DataSource,
        transformations: Mapping[str, DataTransformation],
        processing_config: ProcessingConfig,
        validator: Optional[DatasetValidator] = None,
    ):
        """Initialize the orchestrator with instantiated components.

        Args:
            source: Reader of analysis results
            sink: Writer of region meshes and reports
            transformations: Transformation objects, applied in order
            processing_config: Processing configuration with settings like num_processes
            validator: Optional validator run before processing
        """
        self.source = source
        self.sink = sink
        self.transformations = transformations
        self.processing_config = processing_config
        self.validator = validator
        self.logger = None
        self.processor = None

    def setup_logging(self) -> logging.Logger:
        return infill_utils.setup_logger()

    def run_validation(self) -> None:
        """Run input validation if a validator is configured.

        Raises:
            ValueError: If validation fails
        """
        if self.validator is not None:
            errors = self.validator.validate()
            if errors:
                for error in errors:
                    self.logger.error(f"{error.path}: {error.message}")
                raise ValueError("Dataset validation failed")

    def create_processor(self) -> ParallelProcessor:
        return ParallelProcessor(
            source=self.source,
            transformations=self.transformations,
            sink=self.sink,
            config=self.processing_config,
        )

    def log_summary(self, wall_clock_time: float) -> None:
        self.logger.info("\nProcessing Summary:")
        self.logger.info(f"Number of processes: {self.processing_config.num_processes}")
        self.logger.info(f"Results processed: {self.processor.total_files}")
        self.logger.info(f"Results failed: {self.processor.num_failures}")
        self.logger.info(f"Total wall clock time: {wall_clock_time:.2f} seconds")

    def run(self) -> None:
        """Execute the pipeline: logging, validation, processing, summary.

        Raises:
            ValueError: If validation fails
            Exception: If processing fails
        """
        self.logger = self.setup_logging()
        self.logger.info("Starting stress segmentation pipeline")

        self.run_validation()

        self.processor = self.create_processor()

        wall_clock_start = time.time()

        try:
            self.processor.run()

            wall_clock_time = time.time() - wall_clock_start
            self.log_summary(wall_clock_time)

        except Exception as e:
            self.logger.error(f"Processing failed: {e}")
            raise
