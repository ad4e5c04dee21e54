import json
import sys
import tempfile
import unittest
from pathlib import Path

import numpy as np

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

import _fixtures as fx
from skinclean.errors import MeshFormatError
from skinclean.mesh_data import BlendShape
from skinclean.mesh_io import (save_skinned_mesh, load_skinned_mesh, to_trimesh, derive_output_path,
                               unique_path, write_report)
from skinclean.pipeline import clean_orphaned_weights
from skinclean.skeleton import BoneTable


class NpzTests(unittest.TestCase):
    def test_save_and_load_keep_structure(self) -> None:
        uvs = [None] * 8
        uvs[2] = np.full((6, 2), 0.5, dtype=np.float32)
        shapes = [fx.wave_shape(6, "smile", frames=2, with_normals=True), BlendShape("empty")]
        mesh = fx.make_mesh(fx.STRIP_PATTERN, [fx.STRIP_TRIANGLES[:2], fx.STRIP_TRIANGLES[2:]],
                            materials=["skin", None], blend_shapes=shapes, uvs=tuple(uvs))
        bones = BoneTable.from_names(["root", None])

        with tempfile.TemporaryDirectory() as temp_dir:
            path = save_skinned_mesh(mesh, bones, Path(temp_dir) / "body.npz")
            loaded, loaded_bones = load_skinned_mesh(path)

        self.assertEqual(loaded.name, "body")
        self.assertEqual(loaded_bones.names(), ["root", None])
        self.assertEqual(loaded.materials, ["skin", None])
        self.assertIsNone(loaded.attributes.tangents)
        self.assertIsNone(loaded.attributes.uvs[0])
        np.testing.assert_array_equal(loaded.attributes.uvs[2], uvs[2])
        np.testing.assert_array_equal(loaded.submeshes[1].triangles, fx.STRIP_TRIANGLES[2:])
        self.assertEqual([s.name for s in loaded.blend_shapes], ["smile", "empty"])
        self.assertEqual(loaded.blend_shapes[0].frames[1].weight, 100.0)
        self.assertIsNotNone(loaded.blend_shapes[0].frames[0].delta_normals)
        self.assertIsNone(loaded.blend_shapes[0].frames[0].delta_tangents)
        np.testing.assert_array_equal(loaded.bind_poses, mesh.bind_poses)

    def test_missing_file_raises_format_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(MeshFormatError):
                load_skinned_mesh(Path(temp_dir) / "nope.npz")

    def test_missing_required_array(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "broken.npz"
            with open(path, 'wb') as f:
                np.savez(f, meta=np.array(json.dumps({"name": "broken"})))
            with self.assertRaises(MeshFormatError):
                load_skinned_mesh(path)

    def test_malformed_meta_raises_format_error(self) -> None:
        arrays = {
            "positions": np.zeros((3, 3)),
            "bone_indices": np.zeros((3, 4), dtype=np.int64),
            "bone_weights": np.zeros((3, 4)),
        }
        metas = [
            "{not json",
            json.dumps([1, 2, 3]),
            json.dumps({"blend_shapes": [{"frames": []}]}),            # 缺 name
            json.dumps({"blend_shapes": [{"name": "s", "frames": [{}]}]}),  # 缺 weight
            json.dumps({"submesh_count": "many"}),
        ]
        with tempfile.TemporaryDirectory() as temp_dir:
            for i, meta in enumerate(metas):
                path = Path(temp_dir) / f"meta_{i}.npz"
                with open(path, 'wb') as f:
                    np.savez(f, meta=np.array(meta), bs0_f0_positions=np.zeros((3, 3)), **arrays)
                with self.subTest(meta=meta):
                    with self.assertRaises(MeshFormatError):
                        load_skinned_mesh(path)


class PathTests(unittest.TestCase):
    def test_derive_output_path(self) -> None:
        self.assertEqual(derive_output_path(Path("/tmp/assets/body.npz"), "body_cleaned"),
                         Path("/tmp/assets/body_cleaned.npz"))
        self.assertEqual(derive_output_path(None, "body_cleaned"), Path("body_cleaned.npz"))

    def test_unique_path(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "body_cleaned.npz"
            self.assertEqual(unique_path(path), path)
            path.write_bytes(b"")
            self.assertEqual(unique_path(path).name, "body_cleaned 1.npz")
            (Path(temp_dir) / "body_cleaned 1.npz").write_bytes(b"")
            self.assertEqual(unique_path(path).name, "body_cleaned 2.npz")


class ExportTests(unittest.TestCase):
    def test_to_trimesh_uses_all_submeshes(self) -> None:
        mesh = fx.make_mesh([True] * 6, [fx.STRIP_TRIANGLES[:2], fx.STRIP_TRIANGLES[2:]])
        tm = to_trimesh(mesh)
        self.assertEqual(len(tm.vertices), 6)
        self.assertEqual(len(tm.faces), 4)

    def test_write_report(self) -> None:
        result = clean_orphaned_weights(fx.strip_mesh(), fx.one_bone())
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_report(Path(temp_dir) / "report.json", result, source=Path("body.npz"))
            payload = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(payload["summary"]["vertices_removed"], 2)
        self.assertEqual(payload["summary"]["triangles_removed"], 2)
        self.assertEqual(payload["source"], "body.npz")
        self.assertEqual(len(payload["offenders"]), 2)


if __name__ == "__main__":
    unittest.main()
