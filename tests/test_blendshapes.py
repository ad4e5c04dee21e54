import sys
import unittest
from pathlib import Path

import numpy as np

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

import _fixtures as fx
from skinclean.blendshapes import remap_blend_shapes
from skinclean.mesh_data import BlendShape


class BlendShapeRemapperTests(unittest.TestCase):
    def test_deltas_follow_keep_order(self) -> None:
        n = 10
        keep = np.array([0, 3, 4, 8])
        shapes = [fx.wave_shape(n, "smile", frames=2, with_normals=True), fx.wave_shape(n, "blink", frames=1)]
        out = remap_blend_shapes(shapes, keep)

        self.assertEqual([s.name for s in out], ["smile", "blink"])
        for src, dst in zip(shapes, out):
            self.assertEqual([f.weight for f in dst.frames], [f.weight for f in src.frames])
            for f_src, f_dst in zip(src.frames, dst.frames):
                self.assertEqual(f_dst.delta_positions.shape[0], keep.size)
                for i, old in enumerate(keep):
                    np.testing.assert_array_equal(f_dst.delta_positions[i], f_src.delta_positions[old])

        self.assertIsNotNone(out[0].frames[0].delta_normals)
        self.assertIsNone(out[1].frames[0].delta_normals)
        self.assertIsNone(out[1].frames[0].delta_tangents)

    def test_shape_without_frames_is_kept(self) -> None:
        shapes = [BlendShape("empty"), fx.wave_shape(4, "jaw", frames=1)]
        out = remap_blend_shapes(shapes, np.array([1, 2]))
        self.assertEqual([s.name for s in out], ["empty", "jaw"])
        self.assertEqual(out[0].frames, [])

    def test_source_frames_are_untouched(self) -> None:
        shape = fx.wave_shape(5, frames=1)
        before = shape.frames[0].delta_positions.copy()
        remap_blend_shapes([shape], np.array([4]))
        np.testing.assert_array_equal(shape.frames[0].delta_positions, before)


if __name__ == "__main__":
    unittest.main()
