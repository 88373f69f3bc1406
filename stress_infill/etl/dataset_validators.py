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

"""Base classes for input validation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from stress_infill.etl.processing_config import ProcessingConfig


class ValidationLevel(Enum):
    """Level of validation to perform."""

    STRUCTURE = "structure"  # Input files exist and can be read
    FIELDS = "fields"  # Also check that a usable stress field is present


@dataclass
class ValidationError:
    """Validation error details."""

    path: Path
    message: str
    level: ValidationLevel


class DatasetValidator(ABC):
    """Base class for validators run before processing starts."""

    def __init__(self, cfg: ProcessingConfig, **kwargs):
        self.config = cfg
        self.num_processes = cfg.num_processes
        self.kwargs = kwargs

    def validate(self) -> list[ValidationError]:
        """Validate every input item.

        Returns:
            List of validation errors. Empty list means validation passed.
        """
        raise NotImplementedError("Validation must be implemented by subclass")

    @abstractmethod
    def validate_single_item(self, item: Path) -> list[ValidationError]:
        """Validate a single input file."""
        pass
