"""
single_shot_estimator.py - 단일 호출 강건 자세 추정

OpenCV solvePnPRansac 한 번으로 자세를 추정하고,
전체 대응점의 재투영 오차로 진단 정보를 계산합니다.
진단 값은 보고용이며 성공/실패 판단에는 사용하지 않습니다.
"""

import numpy as np
from typing import Optional
import time
import logging

from ..config.system_config import SingleShotConfig
from .pnp_solver import PnPSolver, CalibrationModel, CorrespondenceSet, is_degenerate, MIN_PNP_POINTS
from .estimation_result import PoseEstimate, EstimationStatus

logger = logging.getLogger(__name__)


class SingleShotEstimator:
    """
    solvePnPRansac 기반 단일 호출 추정기

    Example:
        >>> estimator = SingleShotEstimator()
        >>> estimate = estimator.estimate(correspondences, calibration)
        >>> print(estimate.bad_reprojection_ratio)
    """

    def __init__(
        self,
        config: Optional[SingleShotConfig] = None,
        solver: Optional[PnPSolver] = None
    ):
        self.config = config or SingleShotConfig()
        self.solver = solver or PnPSolver()

    def estimate(
        self,
        correspondences: CorrespondenceSet,
        calibration: CalibrationModel
    ) -> PoseEstimate:
        """
        카메라 자세 추정

        Returns:
            PoseEstimate: world_from_camera 자세 + 재투영 진단, 또는 실패 상태
        """
        start_time = time.time()

        if len(correspondences) < MIN_PNP_POINTS:
            logger.warning(
                f"solve PnP failed: need at least {MIN_PNP_POINTS} correspondences, "
                f"got {len(correspondences)}"
            )
            return PoseEstimate.failure(EstimationStatus.INSUFFICIENT_CORRESPONDENCES)

        if is_degenerate(correspondences.world_points):
            logger.warning("solve PnP failed: world points are collinear or coincident")
            return PoseEstimate.failure(EstimationStatus.DEGENERATE_CONFIGURATION)

        camera_from_world = self.solver.solve_ransac(
            correspondences.image_points,
            correspondences.world_points,
            calibration,
            max_iterations=self.config.max_iterations,
            reprojection_error=self.config.reprojection_error,
            confidence=self.config.confidence
        )
        if camera_from_world is None:
            logger.warning("solve PnP failed.")
            return PoseEstimate.failure(
                EstimationStatus.SOLVER_FAILURE,
                processing_time_ms=(time.time() - start_time) * 1000
            )

        errors = self.solver.reprojection_errors(
            correspondences.image_points,
            correspondences.world_points,
            camera_from_world,
            calibration
        )
        bad_count = int(np.count_nonzero(~(errors <= self.config.diagnostic_error)))
        bad_ratio = bad_count / len(errors)
        logger.info(
            f"bad projection (reprojection error > {self.config.diagnostic_error:g}) "
            f"number is {bad_count}, percentage {bad_ratio:.4f}"
        )

        return PoseEstimate(
            status=EstimationStatus.SUCCESS,
            world_from_camera=camera_from_world.inverse(),
            camera_from_world=camera_from_world,
            num_inliers=int(len(errors) - bad_count),
            bad_reprojection_count=bad_count,
            bad_reprojection_ratio=bad_ratio,
            processing_time_ms=(time.time() - start_time) * 1000
        )


def estimate_camera_pose(
    calibration: CalibrationModel,
    image_points: np.ndarray,
    world_points: np.ndarray,
    config: Optional[SingleShotConfig] = None
) -> PoseEstimate:
    """
    단일 호출 추정 편의 함수

    Args:
        calibration: 카메라 보정 모델
        image_points: (N, 2) 픽셀 좌표
        world_points: (N, 3) 월드 좌표
        config: 단일 호출 추정 파라미터

    Returns:
        PoseEstimate
    """
    estimator = SingleShotEstimator(config=config)
    return estimator.estimate(CorrespondenceSet(image_points, world_points), calibration)
