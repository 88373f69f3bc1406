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

"""Exceptions raised by the stress segmentation pipeline."""


class SegmentationError(Exception):
    """Base class for fatal segmentation failures."""


class DataUnavailable(SegmentationError):
    """The grid or the requested scalar field cannot be used.

    Raised when the grid is empty, has no point-scalar arrays, references
    nodes that do not exist, or lacks the requested stress label.
    """


class InvalidConfiguration(SegmentationError):
    """The caller-supplied parameters cannot define a valid run.

    Raised before any extraction work, e.g. fewer than two distinct
    thresholds, a non-positive stress range or a non-positive bin count.
    """
