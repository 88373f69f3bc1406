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

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ProcessingConfig:
    """Configuration shared by every stage of a pipeline run."""

    num_processes: int
    args: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.num_processes < 1:
            raise ValueError(
                f"num_processes must be positive, got {self.num_processes}"
            )


@dataclass
class SegmentationConfig:
    """Parameters of the stress segmentation of one analysis result.

    Either ``thresholds`` or ``num_bands`` defines the bands. With
    ``num_bands`` the thresholds are spread evenly over the stress range of
    each result.
    """

    thresholds: Optional[list[float]] = None
    num_bands: Optional[int] = None
    num_divisions: int = 20
    stress_label: Optional[str] = None
    max_workers: int = 1

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.thresholds is None and self.num_bands is None:
            raise ValueError("Either thresholds or num_bands must be set")
        if self.thresholds is not None and self.num_bands is not None:
            raise ValueError("Only one of thresholds or num_bands may be set")
        if self.thresholds is not None:
            self.thresholds = [float(t) for t in self.thresholds]
        if self.num_bands is not None and self.num_bands < 1:
            raise ValueError(f"num_bands must be positive, got {self.num_bands}")
        if self.num_divisions < 1:
            raise ValueError(
                f"num_divisions must be positive, got {self.num_divisions}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
