"""
pnp_solver.py - PnP 기하 솔버 (OpenCV 래퍼)

2D-3D 대응점으로부터 카메라 자세를 계산하는 OpenCV 함수들을
RANSAC 추정기가 사용하는 인터페이스로 감쌉니다.

제공 기능:
1. 최소 해 (P3P): 정확히 3개 대응점 -> 최대 4개의 후보 자세
2. 반복 정제 (Iterative PnP): 이전 자세에서 시작하여 inlier 로 정제
3. 투영: 3D 점 -> 2D 픽셀 좌표 (렌즈 왜곡 포함)

모든 자세는 camera_from_world 방향입니다 (OpenCV rvec/tvec 와 동일).
솔버 실패는 예외가 아니라 빈 리스트 / None 으로 반환됩니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
import cv2
from typing import List, Optional, Sequence
from dataclasses import dataclass, field
import logging

from ..measurement.pose_converter import Pose

logger = logging.getLogger(__name__)

MIN_PNP_POINTS = 4
DEGENERACY_TOLERANCE = 1e-6


@dataclass
class CalibrationModel:
    """
    카메라 보정 모델

    Attributes:
        camera_matrix: 3x3 내부 파라미터 행렬 K
        dist_coeffs: 렌즈 왜곡 계수 (비어 있으면 왜곡 없음)
    """
    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self):
        self.camera_matrix = np.asarray(self.camera_matrix, dtype=np.float64)
        if self.camera_matrix.shape != (3, 3):
            raise ValueError(f"Expected 3x3 camera matrix, got {self.camera_matrix.shape}")
        self.dist_coeffs = np.asarray(self.dist_coeffs, dtype=np.float64).reshape(-1)

    @property
    def distortion(self) -> Optional[np.ndarray]:
        """OpenCV 에 전달할 왜곡 계수 (없으면 None)"""
        if self.dist_coeffs.size == 0:
            return None
        return self.dist_coeffs

    @classmethod
    def from_intrinsics(
        cls,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        dist_coeffs: Optional[Sequence[float]] = None
    ) -> 'CalibrationModel':
        """fx, fy, cx, cy 에서 생성"""
        K = np.array([
            [fx, 0.0, cx],
            [0.0, fy, cy],
            [0.0, 0.0, 1.0]
        ])
        return cls(K, np.asarray(dist_coeffs if dist_coeffs is not None else [], dtype=np.float64))


@dataclass
class CorrespondenceSet:
    """
    2D-3D 대응점 집합 (인덱스 정렬)

    Attributes:
        image_points: (N, 2) 픽셀 좌표
        world_points: (N, 3) 월드 좌표
    """
    image_points: np.ndarray
    world_points: np.ndarray

    def __post_init__(self):
        self.image_points = np.asarray(self.image_points, dtype=np.float64).reshape(-1, 2)
        self.world_points = np.asarray(self.world_points, dtype=np.float64).reshape(-1, 3)
        if len(self.image_points) != len(self.world_points):
            raise ValueError(
                f"Point count mismatch: {len(self.image_points)} image points, "
                f"{len(self.world_points)} world points"
            )

    def __len__(self) -> int:
        return len(self.image_points)

    def subset(self, indices: Sequence[int]) -> 'CorrespondenceSet':
        """인덱스로 부분집합 생성 (중복 인덱스 허용)"""
        indices = np.asarray(indices, dtype=np.int64)
        return CorrespondenceSet(self.image_points[indices], self.world_points[indices])


def is_degenerate(world_points: np.ndarray, tol: float = DEGENERACY_TOLERANCE) -> bool:
    """
    월드 점들이 한 점 또는 한 직선 위에 있는지 확인

    중심화한 점들의 두 번째 특이값이 첫 번째에 비해 매우 작으면
    자세가 유일하게 결정되지 않습니다.
    """
    points = np.asarray(world_points, dtype=np.float64).reshape(-1, 3)
    if len(points) < 3:
        return True

    centered = points - points.mean(axis=0)
    singular_values = np.linalg.svd(centered, compute_uv=False)
    if singular_values[0] < tol:
        return True
    return singular_values[1] / singular_values[0] < tol


class PnPSolver:
    """
    OpenCV 기반 PnP 솔버

    Example:
        >>> solver = PnPSolver()
        >>> candidates = solver.solve_minimal(img3, wld3, calibration)
        >>> refined = solver.refine(img_in, wld_in, calibration, candidates[0])
    """

    def __init__(
        self,
        minimal_method: int = cv2.SOLVEPNP_AP3P,
        refine_method: int = cv2.SOLVEPNP_ITERATIVE
    ):
        """
        Args:
            minimal_method: 3점 최소 해 알고리즘 (SOLVEPNP_P3P 또는 SOLVEPNP_AP3P)
            refine_method: 정제 알고리즘 (초기값을 사용하는 방법이어야 함)
        """
        self.minimal_method = minimal_method
        self.refine_method = refine_method

    def solve_minimal(
        self,
        image_points: np.ndarray,
        world_points: np.ndarray,
        calibration: CalibrationModel
    ) -> List[Pose]:
        """
        3점 최소 해

        Args:
            image_points: (3, 2) 픽셀 좌표
            world_points: (3, 3) 월드 좌표
            calibration: 카메라 보정 모델

        Returns:
            후보 자세 리스트 (camera_from_world). 실패 시 빈 리스트.
        """
        img = np.ascontiguousarray(image_points, dtype=np.float64).reshape(-1, 1, 2)
        wld = np.ascontiguousarray(world_points, dtype=np.float64).reshape(-1, 1, 3)
        if len(img) != 3 or len(wld) != 3:
            raise ValueError(f"Minimal solve needs exactly 3 points, got {len(img)}/{len(wld)}")

        if is_degenerate(wld):
            return []

        try:
            num_solutions, rvecs, tvecs = cv2.solveP3P(
                wld, img,
                calibration.camera_matrix,
                calibration.distortion,
                flags=self.minimal_method
            )
        except cv2.error as e:
            logger.debug(f"solveP3P failed: {e}")
            return []

        candidates = []
        for i in range(int(num_solutions)):
            rvec = np.asarray(rvecs[i], dtype=np.float64)
            tvec = np.asarray(tvecs[i], dtype=np.float64)
            if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
                continue
            candidates.append(Pose.from_rvec_tvec(rvec, tvec))

        return candidates

    def refine(
        self,
        image_points: np.ndarray,
        world_points: np.ndarray,
        calibration: CalibrationModel,
        initial_pose: Pose
    ) -> Optional[Pose]:
        """
        이전 자세에서 시작하는 반복 PnP 정제

        Args:
            image_points: (N, 2) inlier 픽셀 좌표
            world_points: (N, 3) inlier 월드 좌표
            calibration: 카메라 보정 모델
            initial_pose: 초기 자세 (camera_from_world)

        Returns:
            정제된 자세, 실패 시 None
        """
        img = np.ascontiguousarray(image_points, dtype=np.float64).reshape(-1, 1, 2)
        wld = np.ascontiguousarray(world_points, dtype=np.float64).reshape(-1, 1, 3)
        if len(img) < MIN_PNP_POINTS or is_degenerate(wld):
            return None

        rvec, tvec = initial_pose.to_rvec_tvec()

        try:
            is_solved, rvec, tvec = cv2.solvePnP(
                wld, img,
                calibration.camera_matrix,
                calibration.distortion,
                rvec=rvec,
                tvec=tvec,
                useExtrinsicGuess=True,
                flags=self.refine_method
            )
        except cv2.error as e:
            logger.debug(f"solvePnP refinement failed: {e}")
            return None

        if not is_solved or not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
            return None

        return Pose.from_rvec_tvec(rvec, tvec)

    def solve_ransac(
        self,
        image_points: np.ndarray,
        world_points: np.ndarray,
        calibration: CalibrationModel,
        max_iterations: int = 1000,
        reprojection_error: float = 8.0,
        confidence: float = 0.99
    ) -> Optional[Pose]:
        """
        OpenCV solvePnPRansac 단일 호출

        Returns:
            자세 (camera_from_world), 실패 시 None
        """
        img = np.ascontiguousarray(image_points, dtype=np.float64).reshape(-1, 1, 2)
        wld = np.ascontiguousarray(world_points, dtype=np.float64).reshape(-1, 1, 3)

        try:
            is_solved, rvec, tvec, _ = cv2.solvePnPRansac(
                wld, img,
                calibration.camera_matrix,
                calibration.distortion,
                iterationsCount=max_iterations,
                reprojectionError=reprojection_error,
                confidence=confidence
            )
        except cv2.error as e:
            logger.warning(f"solvePnPRansac raised: {e}")
            return None

        if not is_solved or rvec is None or tvec is None:
            return None
        if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
            return None

        return Pose.from_rvec_tvec(rvec, tvec)

    @staticmethod
    def project(
        world_points: np.ndarray,
        pose: Pose,
        calibration: CalibrationModel
    ) -> np.ndarray:
        """
        3D 점을 이미지 평면으로 투영

        Returns:
            (N, 2) 픽셀 좌표
        """
        wld = np.ascontiguousarray(world_points, dtype=np.float64).reshape(-1, 1, 3)
        if len(wld) == 0:
            return np.zeros((0, 2))

        rvec, tvec = pose.to_rvec_tvec()
        projected, _ = cv2.projectPoints(
            wld, rvec, tvec,
            calibration.camera_matrix,
            calibration.distortion
        )
        return projected.reshape(-1, 2)

    def reprojection_errors(
        self,
        image_points: np.ndarray,
        world_points: np.ndarray,
        pose: Pose,
        calibration: CalibrationModel
    ) -> np.ndarray:
        """점별 재투영 오차 (픽셀)"""
        projected = self.project(world_points, pose, calibration)
        observed = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
        return np.linalg.norm(projected - observed, axis=1)
