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

import pytest

from stress_infill.etl.dataset_validators import ValidationLevel
from stress_infill.etl.processing_config import ProcessingConfig
from stress_infill.segmentation.dataset_validator import StressGridValidator


@pytest.fixture
def config():
    return ProcessingConfig(num_processes=1)


@pytest.fixture
def results_dir(tmp_path, hex_grid):
    path = tmp_path / "results"
    path.mkdir()
    hex_grid([5.0, 15.0]).save(path / "bracket.vtu")
    hex_grid([1.0], label=None).save(path / "no_field.vtu")
    return path


def test_missing_input_directory(config, tmp_path):
    validator = StressGridValidator(config, input_dir=tmp_path / "missing")

    errors = validator.validate()

    assert len(errors) == 1
    assert errors[0].message == "Input directory does not exist"


def test_no_input_directory(config):
    errors = StressGridValidator(config).validate()
    assert len(errors) == 1


def test_directory_without_results(config, tmp_path):
    (tmp_path / "notes.txt").write_text("nothing to see")

    errors = StressGridValidator(config, input_dir=tmp_path).validate()

    assert len(errors) == 1
    assert "No result files" in errors[0].message


def test_structure_level_accepts_grid_without_field(config, results_dir):
    validator = StressGridValidator(
        config, validation_level="structure", input_dir=results_dir
    )
    assert validator.validate() == []


def test_fields_level_requires_stress_field(config, results_dir):
    validator = StressGridValidator(
        config, validation_level="fields", input_dir=results_dir
    )

    errors = validator.validate()

    assert len(errors) == 1
    assert errors[0].path == results_dir / "no_field.vtu"
    assert errors[0].level == ValidationLevel.FIELDS


def test_fields_level_with_explicit_label(config, results_dir):
    (results_dir / "no_field.vtu").unlink()
    validator = StressGridValidator(
        config,
        validation_level="fields",
        input_dir=results_dir,
        stress_label="seqv",
    )

    errors = validator.validate()

    assert len(errors) == 1
    assert "'seqv' not found" in errors[0].message


def test_unreadable_file(config, results_dir):
    validator = StressGridValidator(config, input_dir=results_dir)

    errors = validator.validate_single_item(results_dir / "missing.vtu")

    assert len(errors) == 1
    assert errors[0].level == ValidationLevel.STRUCTURE


def test_source_settings_are_accepted(config, results_dir):
    """Extra source settings passed alongside input_dir end up in kwargs."""
    validator = StressGridValidator(
        config, input_dir=str(results_dir), extensions=[".vtu"]
    )

    assert validator.input_dir == results_dir
    assert validator.kwargs == {"extensions": [".vtu"]}


def test_parallel_validation(results_dir):
    validator = StressGridValidator(
        ProcessingConfig(num_processes=2),
        validation_level="fields",
        input_dir=results_dir,
    )

    errors = validator.validate()

    assert [e.path.name for e in errors] == ["no_field.vtu"]


def test_corrupt_file_fails_structure_check(config, results_dir):
    (results_dir / "corrupt.vtu").write_text("solver crashed before writing")
    (results_dir / "corrupt_legacy.vtk").write_text("not a vtk header")
    validator = StressGridValidator(
        config, validation_level="structure", input_dir=results_dir
    )

    errors = validator.validate()

    assert sorted(e.path.name for e in errors) == ["corrupt.vtu", "corrupt_legacy.vtk"]
    assert all(e.level == ValidationLevel.STRUCTURE for e in errors)


def test_legacy_result_passes(config, tmp_path, tet_grid):
    tet_grid([1.0, 2.0]).save(tmp_path / "hinge.vtk")
    validator = StressGridValidator(
        config, validation_level="fields", input_dir=tmp_path
    )

    assert validator.validate() == []
