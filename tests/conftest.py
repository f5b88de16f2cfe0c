"""
공용 테스트 픽스처 - 합성 2D-3D 대응점 장면
"""

import numpy as np
import pytest
from dataclasses import dataclass

from ransac_pose.measurement.pose_converter import Pose
from ransac_pose.pose.pnp_solver import CalibrationModel, CorrespondenceSet, PnPSolver


@dataclass
class SyntheticScene:
    """합성 장면 (정답 자세 + 대응점 + outlier 마스크)"""
    correspondences: CorrespondenceSet
    camera_from_world: Pose
    outlier_mask: np.ndarray

    @property
    def world_from_camera(self) -> Pose:
        return self.camera_from_world.inverse()


@pytest.fixture
def calibration():
    """왜곡 없는 640x480 핀홀 카메라"""
    return CalibrationModel.from_intrinsics(fx=500.0, fy=500.0, cx=320.0, cy=240.0)


@pytest.fixture
def ground_truth_pose():
    """정답 camera_from_world 자세"""
    return Pose.from_rvec_tvec(np.array([0.1, -0.2, 0.05]), np.array([0.1, -0.1, 0.5]))


@pytest.fixture
def make_scene(calibration, ground_truth_pose):
    """
    합성 장면 생성기

    inlier: 재투영 오차 <= 1 픽셀
    outlier: 60 ~ 150 픽셀 이동
    """
    def _make_scene(num_points=600, outlier_ratio=0.3, seed=0):
        rng = np.random.default_rng(seed)

        world_points = np.column_stack([
            rng.uniform(-1.5, 1.5, num_points),
            rng.uniform(-1.5, 1.5, num_points),
            rng.uniform(4.0, 6.0, num_points)
        ])
        image_points = PnPSolver.project(world_points, ground_truth_pose, calibration)

        # 좌표별 ±0.7 픽셀 -> 오차 norm <= 1 픽셀
        image_points = image_points + rng.uniform(-0.7, 0.7, (num_points, 2))

        num_outliers = int(round(num_points * outlier_ratio))
        outlier_idx = rng.choice(num_points, size=num_outliers, replace=False)
        angles = rng.uniform(0, 2 * np.pi, num_outliers)
        magnitudes = rng.uniform(60.0, 150.0, num_outliers)
        image_points[outlier_idx] += np.column_stack([np.cos(angles), np.sin(angles)]) * magnitudes[:, None]

        outlier_mask = np.zeros(num_points, dtype=bool)
        outlier_mask[outlier_idx] = True

        return SyntheticScene(
            correspondences=CorrespondenceSet(image_points, world_points),
            camera_from_world=ground_truth_pose,
            outlier_mask=outlier_mask
        )

    return _make_scene
