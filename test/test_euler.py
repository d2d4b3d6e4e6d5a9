import math
import unittest

from common.math import Quaternion
from fused.errors import InvalidOrientation
from fused.euler import EPSILON, euler_degrees_from_quaternion, euler_from_quaternion
from scipy.spatial.transform import Rotation as SciRot


def _scalar_first(rotation):
    x, y, z, w = rotation.as_quat()
    return w, x, y, z


class TestEulerDecomposition(unittest.TestCase):
    def test_identity_is_zero(self):
        e = euler_from_quaternion(1.0, 0.0, 0.0, 0.0)
        self.assertEqual(e.as_tuple(), (0.0, 0.0, 0.0))

    def test_single_axis_rotations(self):
        a = 0.6
        c, s = math.cos(a / 2), math.sin(a / 2)
        self.assertAlmostEqual(euler_from_quaternion(c, s, 0.0, 0.0).pitch, a)
        self.assertAlmostEqual(euler_from_quaternion(c, 0.0, s, 0.0).roll, a)
        self.assertAlmostEqual(euler_from_quaternion(c, 0.0, 0.0, s).yaw, a)

    def test_matches_scipy_zxy(self):
        for roll, pitch, yaw in [
            (0.1, 0.2, 0.3),
            (-1.2, 0.7, 2.9),
            (2.5, -1.3, -0.4),
            (0.0, 1.5, 0.0),
        ]:
            with self.subTest(angles=(roll, pitch, yaw)):
                q = _scalar_first(SciRot.from_euler('ZXY', [yaw, pitch, roll]))
                e = euler_from_quaternion(*q)
                self.assertAlmostEqual(e.roll, roll, places=9)
                self.assertAlmostEqual(e.pitch, pitch, places=9)
                self.assertAlmostEqual(e.yaw, yaw, places=9)

    def test_inverts_quaternion_from_euler(self):
        q = Quaternion.from_euler(0.4, -0.3, -2.0)
        e = euler_from_quaternion(*q.components)
        self.assertAlmostEqual(e.roll, 0.4, places=9)
        self.assertAlmostEqual(e.pitch, -0.3, places=9)
        self.assertAlmostEqual(e.yaw, -2.0, places=9)

    def test_scale_invariant_pitch(self):
        q = Quaternion.from_euler(0.0, 0.5, 0.0).components
        scaled = tuple(3.0 * v for v in q)
        self.assertAlmostEqual(euler_from_quaternion(*scaled).pitch, 0.5, places=9)

    def test_north_pole_branch(self):
        # Pitch of +90 degrees plus some yaw: abcd / unit_length == 0.5
        q = Quaternion.from_euler(0.0, math.pi / 2, 0.8).components
        e = euler_from_quaternion(*q)
        self.assertEqual(e.roll, 0.0)
        # Poles report pitch as pi, not pi/2
        self.assertEqual(e.pitch, math.pi)
        self.assertAlmostEqual(e.yaw, 2.0 * math.atan2(q[2], q[0]))

    def test_north_pole_within_tolerance(self):
        half = math.sqrt(0.5)
        q = (half, half - 1e-9, 0.0, 0.0)
        unit_length = sum(v * v for v in q)
        abcd = q[0] * q[1]
        self.assertGreater(abcd, (0.5 - EPSILON) * unit_length)
        e = euler_from_quaternion(*q)
        self.assertEqual(e.pitch, math.pi)
        self.assertEqual(e.roll, 0.0)
        self.assertEqual(e.yaw, 0.0)

    def test_south_pole_branch(self):
        q = Quaternion.from_euler(0.0, -math.pi / 2, 0.5).components
        e = euler_from_quaternion(*q)
        self.assertEqual(e.roll, 0.0)
        self.assertEqual(e.pitch, -math.pi)
        self.assertAlmostEqual(e.yaw, -2.0 * math.atan2(q[2], q[0]))

    def test_just_outside_tolerance_uses_general_case(self):
        a = math.pi / 2 - 1e-3
        q = (math.cos(a / 2), math.sin(a / 2), 0.0, 0.0)
        e = euler_from_quaternion(*q)
        self.assertAlmostEqual(e.pitch, a, places=9)
        self.assertLess(e.pitch, math.pi / 2)

    def test_non_unit_quaternion_near_pole_is_finite(self):
        e = euler_from_quaternion(1.0 + 1e-12, 1.0, 1e-9, -1e-9)
        for v in e.as_tuple():
            self.assertTrue(math.isfinite(v))

    def test_zero_quaternion_raises(self):
        with self.assertRaises(InvalidOrientation):
            euler_from_quaternion(0.0, 0.0, 0.0, 0.0)

    def test_non_finite_quaternion_raises(self):
        with self.assertRaises(InvalidOrientation):
            euler_from_quaternion(float('nan'), 0.0, 0.0, 0.0)

    def test_invalid_orientation_is_value_error(self):
        with self.assertRaises(ValueError):
            euler_from_quaternion(0.0, 0.0, 0.0, 0.0)

    def test_degrees_helper(self):
        q = Quaternion.from_euler(0.0, 0.0, math.pi / 2).components
        e = euler_degrees_from_quaternion(*q)
        self.assertAlmostEqual(e.yaw, 90.0)
        self.assertAlmostEqual(e.roll, 0.0)
        self.assertAlmostEqual(e.pitch, 0.0)


if __name__ == '__main__':
    unittest.main()
