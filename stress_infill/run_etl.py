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

import multiprocessing

import hydra
from hydra.utils import instantiate
from omegaconf import DictConfig, OmegaConf

from stress_infill.etl.etl_orchestrator import ETLOrchestrator
from stress_infill.etl.processing_config import ProcessingConfig
from stress_infill.utils import utils as infill_utils


@hydra.main(version_base="1.3", config_path="config", config_name="stress_infill_etl")
def main(cfg: DictConfig) -> None:
    """Stress segmentation pipeline execution.

    Runs with the bundled config by default:
    python -m stress_infill.run_etl etl.source.input_dir=/in etl.sink.output_dir=/out

    Any config parameter can be overridden on the command line, for example:
    python -m stress_infill.run_etl ... etl.transformations.segmentation.num_bands=6
    """

    try:
        multiprocessing.set_start_method("spawn")
    except RuntimeError:
        # Start method has already been set, skip.
        pass

    logger = infill_utils.setup_logger()

    if not cfg:  # Check for None or empty config
        logger.error("No configuration provided or empty configuration")
        logger.error("Please run with --config-dir and --config-name")
        return

    logger.info(f"Config summary:\n{OmegaConf.to_yaml(cfg, sort_keys=True)}")

    processing_config = ProcessingConfig(**cfg.etl.processing)

    validator = None
    if "validator" in cfg.etl:
        validator = instantiate(
            cfg.etl.validator,
            processing_config,
            **{k: v for k, v in cfg.etl.source.items() if not k.startswith("_")},
        )

    source = instantiate(cfg.etl.source, processing_config)
    sink = instantiate(cfg.etl.sink, processing_config)
    # Need to pass processing_config to each transformation, see:
    # https://hydra.cc/docs/advanced/instantiate_objects/overview/#recursive-instantiation
    cfgs = {k: {"_args_": [processing_config]} for k in cfg.etl.transformations.keys()}
    transformations = instantiate(cfg.etl.transformations, **cfgs)

    orchestrator = ETLOrchestrator(
        source=source,
        sink=sink,
        transformations=transformations,
        processing_config=processing_config,
        validator=validator,
    )
    orchestrator.run()


if __name__ == "__main__":
    main()
