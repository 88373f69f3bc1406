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
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .processing_config import ProcessingConfig


class DataSource(ABC):
    """Abstract base class for the readers and writers of a pipeline."""

    @abstractmethod
    def __init__(self, cfg: ProcessingConfig):
        self.config = cfg
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_file_list(self) -> list[str]:
        """Names of the analysis results to process."""
        pass

    @abstractmethod
    def read_file(self, filename: str) -> Any:
        """Read one analysis result."""
        pass

    @abstractmethod
    def _get_output_path(self, filename: str) -> Path:
        """Final output location for the result named ``filename``."""
        pass

    @abstractmethod
    def _write_impl_temp_file(self, data: Any, output_path: Path) -> None:
        """Serialize ``data`` to ``output_path``, which may be a temporary path."""
        pass

    def write(self, data: Any, filename: str) -> None:
        """Write data with temp-then-rename so outputs are complete or absent.

        Subclasses implement ``_write_impl_temp_file`` for the serialization.

        Args:
            data: Transformed data to write
            filename: Name of the result being processed
        """
        final_path = self._get_output_path(filename)
        temp_path = self._get_temporary_output_path(final_path)
        temp_path.parent.mkdir(parents=True, exist_ok=True)

        self._write_impl_temp_file(data, temp_path)

        # rename() does not replace non-empty directories
        if final_path.exists():
            if final_path.is_dir():
                shutil.rmtree(final_path)
            else:
                final_path.unlink()

        temp_path.rename(final_path)
        self.logger.debug(f"Successfully wrote {final_path}")

    def _get_temporary_output_path(self, final_path: Path) -> Path:
        """Temporary path with a ``_temp`` suffix after the file name."""
        return final_path.with_name(f"{final_path.name}_temp")

    def should_skip(self, filename: str) -> bool:
        """Skip results whose output already exists.

        Subclasses can override for custom skip logic (e.g. overwrite flags).
        """
        return self._get_output_path(filename).exists()

    def cleanup_temp_files(self) -> None:
        """Remove temporary files left by interrupted runs.

        Called once before processing starts. The default does nothing.
        """
        pass
