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
import logging
import re
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Iterable

from .schemas import MeshInfo, RegionMesh

MESH_FILE_PATTERN = re.compile(r"^modifierMesh(\d+)\.stl$")


class RegionMeshRegistry:
    """Persist region meshes and keep the index of what was written.

    Files are named only by mesh id (``modifierMesh{id}.stl``); the stress
    bounds live in the ``MeshInfo`` records and in the ``mesh_index.json``
    side-table. All mutations and reads go through one lock: an entry is
    appended only after its file is in place, and ``clear`` drops the entries
    before removing the files, so a reader never sees an entry whose file is
    missing.
    """

    INDEX_FILENAME = "mesh_index.json"

    def __init__(self, root: Path | str, binary: bool = True):
        self.root = Path(root)
        self.binary = binary
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.RLock()
        self._entries: dict[int, MeshInfo] = {}

    @staticmethod
    def mesh_filename(mesh_id: int) -> str:
        return f"modifierMesh{int(mesh_id)}.stl"

    def path_for(self, mesh_id: int) -> Path:
        return self.root / self.mesh_filename(mesh_id)

    @property
    def index_path(self) -> Path:
        return self.root / self.INDEX_FILENAME

    def _get_temporary_output_path(self, final_path: Path) -> Path:
        """Temporary sibling that keeps the real extension for writer lookup."""
        return final_path.with_name(f"{final_path.name}_temp{final_path.suffix}")

    @property
    def entries(self) -> list[MeshInfo]:
        """Snapshot of the registered entries in mesh id order."""
        with self._lock:
            return [self._entries[k] for k in sorted(self._entries)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def lookup(self, mesh_id: int) -> MeshInfo:
        """Exact mesh id lookup.

        Raises:
            KeyError: No mesh with this id is registered.
        """
        with self._lock:
            return self._entries[int(mesh_id)]

    def register(self, region: RegionMesh) -> MeshInfo:
        """Write ``region`` to disk and record its entry.

        Raises:
            ValueError: The mesh id is already registered
        """
        with self._lock:
            if region.mesh_id in self._entries:
                raise ValueError(f"Mesh id {region.mesh_id} is already registered")

            self.root.mkdir(parents=True, exist_ok=True)
            final_path = self.path_for(region.mesh_id)
            temp_path = self._get_temporary_output_path(final_path)

            region.to_polydata().save(str(temp_path), binary=self.binary)
            temp_path.replace(final_path)

            info = MeshInfo(
                mesh_id=region.mesh_id,
                stress_min=float(region.stress_min),
                stress_max=float(region.stress_max),
                file_path=str(final_path),
            )
            self._entries[info.mesh_id] = info
            self.logger.debug(f"Registered mesh {info.mesh_id} at {final_path}")
            return info

    def register_all(self, regions: Iterable[RegionMesh]) -> list[MeshInfo]:
        """Register a batch of regions; on failure the whole batch is rolled back."""
        with self._lock:
            registered: list[MeshInfo] = []
            current = None
            try:
                for region in regions:
                    current = region
                    registered.append(self.register(region))
            except Exception:
                self.logger.error(
                    f"Registration failed after {len(registered)} meshes; rolling back"
                )
                for info in registered:
                    self._entries.pop(info.mesh_id, None)
                    Path(info.file_path).unlink(missing_ok=True)
                if current is not None:
                    # A save that failed midway can leave its temp file behind
                    self._get_temporary_output_path(
                        self.path_for(current.mesh_id)
                    ).unlink(missing_ok=True)
                raise
            self.logger.info(f"Registered {len(registered)} meshes in {self.root}")
            return registered

    def write_index(self) -> Path:
        """Write the entries as a JSON side-table, atomically."""
        with self._lock:
            self.root.mkdir(parents=True, exist_ok=True)
            temp_path = self._get_temporary_output_path(self.index_path)
            payload = {"meshes": [asdict(info) for info in self.entries]}
            with open(temp_path, "w") as f:
                json.dump(payload, f, indent=2)
            temp_path.replace(self.index_path)
            return self.index_path

    @classmethod
    def read_index(cls, root: Path | str) -> list[MeshInfo]:
        """Load the ``MeshInfo`` records written by ``write_index``."""
        with open(Path(root) / cls.INDEX_FILENAME, "r") as f:
            payload = json.load(f)
        return [MeshInfo(**record) for record in payload.get("meshes", [])]

    def clear(self) -> None:
        """Forget every entry and remove the artifacts of any previous run."""
        with self._lock:
            self._entries = {}
            if not self.root.exists():
                return

            removed = 0
            self.index_path.unlink(missing_ok=True)
            for path in self.root.iterdir():
                if path.is_file() and (
                    MESH_FILE_PATTERN.match(path.name) or "_temp" in path.name
                ):
                    path.unlink()
                    removed += 1
            if removed:
                self.logger.info(f"Removed {removed} stale files from {self.root}")

    def cleanup_temp_files(self) -> None:
        """Remove temporary files left by an interrupted write."""
        with self._lock:
            if not self.root.exists():
                return
            for temp_file in self.root.glob("*_temp*"):
                self.logger.warning(f"Removing orphaned temp file: {temp_file}")
                temp_file.unlink()
