import sys
import unittest
from pathlib import Path

import numpy as np

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

import _fixtures as fx
from skinclean.errors import InputIntegrityError
from skinclean.events import EventRecorder, WARNING
from skinclean.mesh_data import (BoneWeights, Bounds, Submesh, check_integrity, pair_submeshes,
                                 index_dtype_for)
from skinclean.skeleton import BoneTable, Bone


class IntegrityTests(unittest.TestCase):
    def test_valid_mesh_returns_vertex_count(self) -> None:
        self.assertEqual(check_integrity(fx.strip_mesh()), 6)

    def test_bone_weights_need_four_slots(self) -> None:
        mesh = fx.strip_mesh()
        bw = mesh.attributes.bone_weights
        mesh.attributes.bone_weights = BoneWeights(bw.indices[:, :3], bw.weights[:, :3])
        with self.assertRaises(InputIntegrityError):
            check_integrity(mesh)

    def test_triangle_stride_must_be_three(self) -> None:
        mesh = fx.strip_mesh()
        mesh.submeshes.append(Submesh(np.array([0, 1, 2, 3]), None))
        with self.assertRaises(InputIntegrityError):
            check_integrity(mesh)

    def test_negative_triangle_index(self) -> None:
        mesh = fx.strip_mesh()
        mesh.submeshes.append(Submesh(np.array([(0, -1, 2)]), None))
        with self.assertRaises(InputIntegrityError):
            check_integrity(mesh)

    def test_uv_channel_length_is_checked(self) -> None:
        uvs = [None] * 8
        uvs[5] = np.zeros((2, 2), dtype=np.float32)
        mesh = fx.strip_mesh(uvs=tuple(uvs))
        with self.assertRaises(InputIntegrityError) as ctx:
            check_integrity(mesh)
        self.assertIn("uv5", str(ctx.exception))


class PairingTests(unittest.TestCase):
    def test_missing_materials_pair_with_none(self) -> None:
        subs = pair_submeshes([[0, 1, 2], [(1, 2, 3)]], ["skin"])
        self.assertEqual([s.material for s in subs], ["skin", None])
        self.assertEqual(subs[0].triangles.shape, (1, 3))

    def test_surplus_materials_are_reported(self) -> None:
        recorder = EventRecorder()
        subs = pair_submeshes([[0, 1, 2]], ["skin", "extra"], observer=recorder)
        self.assertEqual(len(subs), 1)
        self.assertEqual(recorder.events[0].level, WARNING)
        self.assertEqual(recorder.events[0].data["surplus"], ["extra"])


class MiscTests(unittest.TestCase):
    def test_bounds(self) -> None:
        b = Bounds.from_positions(np.array([[0, 0, 0], [2, 4, -2]], dtype=np.float32))
        np.testing.assert_array_equal(b.center, [1, 2, -1])
        np.testing.assert_array_equal(b.extents, [1, 2, 1])
        empty = Bounds.from_positions(np.zeros((0, 3), dtype=np.float32))
        np.testing.assert_array_equal(empty.min, [0, 0, 0])

    def test_index_dtype(self) -> None:
        self.assertEqual(index_dtype_for(65535), np.uint16)
        self.assertEqual(index_dtype_for(65536), np.uint32)

    def test_bone_table(self) -> None:
        table = BoneTable.from_names(["root", None, "spine"])
        np.testing.assert_array_equal(table.present_mask(), [True, False, True])
        self.assertEqual(table.missing_indices(), [1])
        table.add_bone(Bone("head", parent=2))
        self.assertEqual(len(table), 4)
        self.assertEqual(table.names(), ["root", None, "spine", "head"])


if __name__ == "__main__":
    unittest.main()
