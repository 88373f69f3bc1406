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

from pathlib import Path
from unittest.mock import patch

from hydra import compose, initialize
from hydra.utils import instantiate

from stress_infill.etl.processing_config import ProcessingConfig
from stress_infill.segmentation import (
    data_sources,
    data_transformations,
    dataset_validator,
)


def get_config_path() -> Path:
    """Get the path to the config directory."""
    # Hydra requires a relative path.
    return Path("../../stress_infill/config")


def compose_config(overrides=()):
    with initialize(version_base="1.3", config_path=str(get_config_path())):
        return compose(
            config_name="stress_infill_etl",
            overrides=[
                "etl.source.input_dir=/path/to/results",
                "etl.sink.output_dir=/path/to/regions",
                *overrides,
            ],
        )


def test_stress_infill_etl_config():
    cfg = compose_config()

    assert cfg.etl.processing.num_processes == 1
    assert cfg.etl.processing.args == {}

    assert cfg.etl.validator.validation_level == "fields"
    assert cfg.etl.validator.stress_label is None
    with patch.object(
        dataset_validator.StressGridValidator, "__init__", return_value=None
    ) as m:
        instantiate(cfg.etl.validator)
        assert m.call_count == 1

    assert cfg.etl.source.input_dir == "/path/to/results"
    with patch.object(
        data_sources.StressGridDataSource, "__init__", return_value=None
    ) as m:
        instantiate(cfg.etl.source)
        assert m.call_count == 1

    segmentation = cfg.etl.transformations.segmentation
    assert segmentation.thresholds is None
    assert segmentation.num_bands == 4
    assert segmentation.num_divisions == 20
    assert segmentation.max_workers == 1
    with patch.object(
        data_transformations.StressSegmentationTransformation,
        "__init__",
        return_value=None,
    ) as m:
        instantiate(segmentation)
        assert m.call_count == 1

    assert cfg.etl.sink.output_dir == "/path/to/regions"
    assert cfg.etl.sink.overwrite_existing is True
    assert cfg.etl.sink.binary_stl is True
    assert list(cfg.etl.sink.density_mappings) == []
    with patch.object(
        data_sources.RegionMeshDataSource, "__init__", return_value=None
    ) as m:
        instantiate(cfg.etl.sink)
        assert m.call_count == 1


def test_stress_label_override_reaches_validator():
    cfg = compose_config(["etl.transformations.segmentation.stress_label=seqv"])
    assert cfg.etl.validator.stress_label == "seqv"


def test_instantiate_transformation_with_thresholds():
    cfg = compose_config(
        [
            "etl.transformations.segmentation.thresholds=[0,10,20,30]",
            "etl.transformations.segmentation.num_bands=null",
        ]
    )
    processing_config = ProcessingConfig(**cfg.etl.processing)

    transformations = instantiate(
        cfg.etl.transformations, segmentation={"_args_": [processing_config]}
    )

    transform = transformations["segmentation"]
    assert transform.config == processing_config
    assert transform.segmentation.thresholds == [0.0, 10.0, 20.0, 30.0]
    assert isinstance(transform.segmentation.thresholds, list)


def test_instantiate_sink_with_density_mappings(tmp_path):
    cfg = compose_config(
        [
            f"etl.sink.output_dir={tmp_path}",
            "etl.sink.density_mappings=[{stress_min:0,stress_max:10,density:15}]",
        ]
    )

    sink = instantiate(cfg.etl.sink, ProcessingConfig(num_processes=1))

    assert sink.output_dir == tmp_path
    assert sink.density_mappings[0].density == 15
