import math
import unittest

import numpy as np
from common.math import Quaternion, degrees_from_radians, radians_from_degrees, wrap_angle
from scipy.spatial.transform import Rotation as SciRot


class TestMath(unittest.TestCase):
    def test_degrees_radians_round_trip(self):
        for x in [0.0, 1e-9, -0.5, math.pi, -7.25, 123456.789, 1e12]:
            with self.subTest(x=x):
                self.assertAlmostEqual(radians_from_degrees(degrees_from_radians(x)), x, delta=abs(x) * 1e-15 + 1e-15)
                self.assertAlmostEqual(degrees_from_radians(radians_from_degrees(x)), x, delta=abs(x) * 1e-15 + 1e-15)

    def test_known_conversions(self):
        self.assertAlmostEqual(degrees_from_radians(math.pi), 180.0)
        self.assertAlmostEqual(degrees_from_radians(-math.pi / 2), -90.0)
        self.assertAlmostEqual(radians_from_degrees(45.0), math.pi / 4)
        np.testing.assert_allclose(degrees_from_radians(np.array([0.0, math.pi])), [0.0, 180.0])

    def test_wrap_angle(self):
        self.assertAlmostEqual(wrap_angle(3 * math.pi / 2), -math.pi / 2)
        self.assertAlmostEqual(wrap_angle(-3 * math.pi / 2), math.pi / 2)
        self.assertAlmostEqual(wrap_angle(0.25), 0.25)

    def test_quaternion_from_euler_matches_scipy(self):
        for angles in [
            (0.1, 0.2, 0.3),
            (1.0, 0.0, 0.0),
            (0.0, 1.2, 0.0),
            (-0.7, 0.4, 2.5),
        ]:
            with self.subTest(angles=angles):
                roll, pitch, yaw = angles
                q = Quaternion.from_euler(roll, pitch, yaw)
                r = SciRot.from_euler('ZXY', [yaw, pitch, roll], degrees=False)
                np.testing.assert_allclose(q.as_rotation_matrix(), r.as_matrix(), atol=1e-9)

    def test_quaternion_rotate_vector_matches_scipy(self):
        axis = np.array([0, 0, 1])
        angle = np.pi / 4
        q = Quaternion.from_axis_angle(axis, angle)
        v = np.array([1.0, 0.0, 0.0])
        expected = SciRot.from_rotvec(axis * angle).apply(v)
        np.testing.assert_allclose(q.rotate(v), expected, atol=1e-9)

    def test_conjugate_undoes_rotation(self):
        q = Quaternion.from_euler(0.3, -0.2, 1.1)
        v = np.array([0.2, -0.5, 0.9])
        np.testing.assert_allclose(q.conjugate().rotate(q.rotate(v)), v, atol=1e-12)

    def test_normalize(self):
        q = Quaternion(2.0, 0.0, 0.0, 0.0)
        q.normalize()
        self.assertAlmostEqual(q.norm(), 1.0)
        self.assertEqual(q.components, (1.0, 0.0, 0.0, 0.0))


if __name__ == '__main__':
    unittest.main()
