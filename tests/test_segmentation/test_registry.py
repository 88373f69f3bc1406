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
import threading
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
import pyvista as pv

from stress_infill.segmentation.registry import RegionMeshRegistry
from stress_infill.segmentation.schemas import MeshInfo, RegionMesh, StressBand


def make_region(mesh_id: int, lower: float, upper: float) -> RegionMesh:
    """Closed tetrahedral surface shifted along x by its mesh id."""
    vertices = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    ) + [2.0 * mesh_id, 0.0, 0.0]
    triangles = np.array([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]])
    return RegionMesh(
        mesh_id=mesh_id,
        band=StressBand(index=mesh_id, lower=lower, upper=upper),
        vertices=vertices,
        triangles=triangles,
        num_cells=1,
    )


@pytest.fixture
def regions():
    return [make_region(0, 0.0, 10.0), make_region(1, 10.0, 20.0)]


def test_mesh_filename_is_keyed_by_id():
    assert RegionMeshRegistry.mesh_filename(3) == "modifierMesh3.stl"


def test_register_writes_mesh(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path / "run")

    info = registry.register(regions[0])

    assert info == MeshInfo(
        mesh_id=0,
        stress_min=0.0,
        stress_max=10.0,
        file_path=str(tmp_path / "run" / "modifierMesh0.stl"),
    )
    surface = pv.read(info.file_path)
    assert surface.n_cells == 4
    assert len(registry) == 1
    assert registry.lookup(0) is info


@pytest.mark.parametrize("binary", [True, False])
def test_stl_encoding(tmp_path, regions, binary):
    registry = RegionMeshRegistry(tmp_path, binary=binary)
    info = registry.register(regions[0])

    with open(info.file_path, "rb") as f:
        header = f.read(5)
    assert (header == b"solid") != binary
    np.testing.assert_allclose(pv.read(info.file_path).bounds, (0, 1, 0, 1, 0, 1))


def test_no_temp_file_left_behind(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    registry.register_all(regions)
    registry.write_index()

    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "mesh_index.json",
        "modifierMesh0.stl",
        "modifierMesh1.stl",
    ]


def test_duplicate_mesh_id(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    registry.register(regions[0])

    with pytest.raises(ValueError, match="already registered"):
        registry.register(make_region(0, 5.0, 6.0))
    assert registry.lookup(0).stress_max == 10.0


def test_lookup_unknown_id(tmp_path):
    with pytest.raises(KeyError):
        RegionMeshRegistry(tmp_path).lookup(4)


def test_entries_in_id_order(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    registry.register(regions[1])
    registry.register(regions[0])

    assert [info.mesh_id for info in registry.entries] == [0, 1]


def test_index_side_table(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    infos = registry.register_all(regions)

    index_path = registry.write_index()

    payload = json.loads(index_path.read_text())
    assert [m["mesh_id"] for m in payload["meshes"]] == [0, 1]
    assert RegionMeshRegistry.read_index(tmp_path) == infos


def test_failed_batch_is_rolled_back(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    original = RegionMesh.to_polydata
    calls = []

    def fail_on_second(region):
        calls.append(region.mesh_id)
        if len(calls) == 2:
            raise OSError("disk full")
        return original(region)

    with patch.object(RegionMesh, "to_polydata", fail_on_second):
        with pytest.raises(OSError, match="disk full"):
            registry.register_all(regions)

    assert len(registry) == 0
    assert not registry.path_for(0).exists()
    assert not registry.path_for(1).exists()


def test_rollback_removes_partial_temp_file(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    original = RegionMesh.to_polydata

    class PartialWrite:
        def save(self, path, binary=True):
            Path(path).write_bytes(b"solid partial")
            raise OSError("disk full")

    def fail_on_second(region):
        if region.mesh_id == 1:
            return PartialWrite()
        return original(region)

    with patch.object(RegionMesh, "to_polydata", fail_on_second):
        with pytest.raises(OSError, match="disk full"):
            registry.register_all(regions)

    assert len(registry) == 0
    assert list(tmp_path.iterdir()) == []


def test_clear_removes_entries_and_files(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    registry.register_all(regions)
    registry.write_index()

    registry.clear()

    assert registry.entries == []
    assert list(tmp_path.iterdir()) == []


def test_clear_removes_stale_meshes_only(tmp_path):
    (tmp_path / "modifierMesh7.stl").write_text("stale")
    (tmp_path / "modifierMesh0.stl_temp.stl").write_text("partial")
    (tmp_path / "notes.txt").write_text("keep")

    RegionMeshRegistry(tmp_path).clear()

    assert [p.name for p in tmp_path.iterdir()] == ["notes.txt"]


def test_clear_missing_directory(tmp_path):
    registry = RegionMeshRegistry(tmp_path / "never_written")
    registry.clear()
    assert not registry.root.exists()


def test_cleanup_temp_files(tmp_path, regions):
    registry = RegionMeshRegistry(tmp_path)
    registry.register(regions[0])
    (tmp_path / "modifierMesh1.stl_temp.stl").write_text("partial")
    (tmp_path / "mesh_index.json_temp.json").write_text("{")

    registry.cleanup_temp_files()

    assert [p.name for p in tmp_path.iterdir()] == ["modifierMesh0.stl"]


def test_concurrent_registration(tmp_path):
    registry = RegionMeshRegistry(tmp_path)
    regions = [make_region(i, float(i), float(i + 1)) for i in range(8)]

    threads = [threading.Thread(target=registry.register, args=(r,)) for r in regions]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert [info.mesh_id for info in registry.entries] == list(range(8))
    for info in registry.entries:
        assert pv.read(info.file_path).n_cells == 4


def test_entries_always_have_files(tmp_path):
    """Readers racing with register and clear never see a dangling entry."""
    registry = RegionMeshRegistry(tmp_path)
    missing = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            with registry._lock:
                for info in registry.entries:
                    if not Path(info.file_path).exists():
                        missing.append(info.mesh_id)

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for _ in range(3):
            registry.register_all([make_region(i, i, i + 1.0) for i in range(3)])
            registry.clear()
    finally:
        stop.set()
        thread.join()

    assert missing == []
