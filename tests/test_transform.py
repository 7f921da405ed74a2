#!/usr/bin/env python3
"""
Tests for sensor/body/world rigid transforms
"""

import os
import sys
import unittest

import numpy as np
from scipy.spatial.transform import Rotation

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from las_georef.transform import (
    RigidTransform, apply_transform, build_sensor_to_body,
)
from las_georef.types import PoseSample


class TestSensorToBody(unittest.TestCase):
    """Test the fixed LiDAR-to-IMU transform"""

    def test_identity(self):
        T = build_sensor_to_body(0.0, 0.0, 0.0, [0.0, 0.0, 0.0])
        np.testing.assert_allclose(T.rotation, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(T.translation, np.zeros(3))

    def test_single_axes(self):
        yaw = build_sensor_to_body(90.0, 0.0, 0.0, [0, 0, 0])
        np.testing.assert_allclose(yaw.apply([1, 0, 0]), [0, 1, 0], atol=1e-12)

        pitch = build_sensor_to_body(0.0, 90.0, 0.0, [0, 0, 0])
        np.testing.assert_allclose(pitch.apply([0, 0, 1]), [1, 0, 0], atol=1e-12)

        roll = build_sensor_to_body(0.0, 0.0, 90.0, [0, 0, 0])
        np.testing.assert_allclose(roll.apply([0, 1, 0]), [0, 0, 1], atol=1e-12)

    def test_composition_order(self):
        """R = Rx(roll) * Ry(pitch) * Rz(yaw): yaw acts on the point first"""
        T = build_sensor_to_body(90.0, 0.0, 90.0, [0, 0, 0])
        np.testing.assert_allclose(T.apply([1, 0, 0]), [0, 0, 1], atol=1e-12)

        expected = (Rotation.from_euler('x', 90, degrees=True).as_matrix()
                    @ Rotation.from_euler('z', 90, degrees=True).as_matrix())
        np.testing.assert_allclose(T.rotation, expected, atol=1e-12)

    def test_default_mounting(self):
        """Default config mounting: yaw 180, roll 90"""
        T = build_sensor_to_body(180.0, 0.0, 90.0, [0.047, 0.1209, 0.02571])
        np.testing.assert_allclose(T.apply([0, 0, 0]), [0.047, 0.1209, 0.02571])
        np.testing.assert_allclose(
            T.apply([1, 0, 0]) - T.translation, [-1, 0, 0], atol=1e-12)
        np.testing.assert_allclose(
            T.apply([0, 1, 0]) - T.translation, [0, 0, -1], atol=1e-12)


class TestApplyTransform(unittest.TestCase):
    """Test sensor -> world point mapping"""

    def test_identity_pose_translates(self):
        pose = PoseSample(timestamp=0, position=np.array([0.5, 0.0, 0.0]))
        T = build_sensor_to_body(0.0, 0.0, 0.0, [0, 0, 0])
        np.testing.assert_allclose(
            apply_transform(np.array([0.0, 0.0, 2.0]), pose, T), [0.5, 0.0, 2.0])

    def test_lever_arm_is_rotated_by_body(self):
        pose = PoseSample(
            timestamp=0,
            position=np.array([10.0, 0.0, 0.0]),
            orientation=Rotation.from_euler('z', 90, degrees=True).as_quat(),
        )
        T = build_sensor_to_body(0.0, 0.0, 0.0, [1.0, 0.0, 0.0])
        world = apply_transform(np.array([1.0, 0.0, 0.0]), pose, T)
        np.testing.assert_allclose(world, [10.0, 2.0, 0.0], atol=1e-12)

    def test_compose_matches_sequential_apply(self):
        a = RigidTransform(Rotation.from_euler('xyz', [10, 20, 30], degrees=True).as_matrix(),
                           np.array([1.0, 2.0, 3.0]))
        b = RigidTransform(Rotation.from_euler('xyz', [-5, 40, 0], degrees=True).as_matrix(),
                           np.array([-0.5, 0.25, 4.0]))
        p = np.array([3.0, -1.0, 0.5])
        np.testing.assert_allclose(a.compose(b).apply(p), a.apply(b.apply(p)))

    def test_from_pose(self):
        pose = PoseSample(timestamp=0, position=np.array([1.0, 2.0, 3.0]))
        T = RigidTransform.from_pose(pose)
        np.testing.assert_allclose(T.rotation, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(T.translation, [1.0, 2.0, 3.0])


if __name__ == '__main__':
    unittest.main()
