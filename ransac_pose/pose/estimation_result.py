"""
estimation_result.py - 자세 추정 결과 타입

추정 실패는 예외가 아니라 상태 값으로 보고됩니다.
"""

import numpy as np
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

from ..measurement.pose_converter import Pose


class EstimationStatus(Enum):
    """추정 결과 상태"""
    SUCCESS = "success"
    SOLVER_FAILURE = "solver_failure"                         # 솔버가 자세를 찾지 못함
    EMPTY_HYPOTHESIS_POOL = "empty_hypothesis_pool"           # 초기 가설 0개
    INSUFFICIENT_CORRESPONDENCES = "insufficient_correspondences"
    DEGENERATE_CONFIGURATION = "degenerate_configuration"     # 공선/동일 점


@dataclass
class PoseEstimate:
    """
    자세 추정 결과

    Attributes:
        status: 결과 상태
        world_from_camera: 카메라 -> 월드 변환 (하위 파이프라인 규약)
        camera_from_world: 솔버 출력 (월드 -> 카메라)
        num_hypotheses: 초기 가설 수 (preemptive)
        num_rounds: 토너먼트 라운드 수 (preemptive)
        final_loss: 최종 가설의 누적 outlier 수 (preemptive)
        num_inliers: 마지막 라운드 inlier 수 (preemptive)
        bad_reprojection_count: 진단용 재투영 오차 초과 점 수 (single-shot)
        bad_reprojection_ratio: 위 값의 비율 (single-shot)
        processing_time_ms: 처리 시간 (밀리초)
    """
    status: EstimationStatus
    world_from_camera: Optional[Pose] = None
    camera_from_world: Optional[Pose] = None
    num_hypotheses: int = 0
    num_rounds: int = 0
    final_loss: Optional[float] = None
    num_inliers: Optional[int] = None
    bad_reprojection_count: Optional[int] = None
    bad_reprojection_ratio: Optional[float] = None
    processing_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == EstimationStatus.SUCCESS

    @property
    def pose_matrix(self) -> Optional[np.ndarray]:
        """world_from_camera 4x4 행렬"""
        if self.world_from_camera is None:
            return None
        return self.world_from_camera.matrix

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            'status': self.status.value,
            'world_from_camera': self.pose_matrix.tolist() if self.success else None,
            'num_hypotheses': self.num_hypotheses,
            'num_rounds': self.num_rounds,
            'final_loss': self.final_loss,
            'num_inliers': self.num_inliers,
            'bad_reprojection_count': self.bad_reprojection_count,
            'bad_reprojection_ratio': self.bad_reprojection_ratio,
            'processing_time_ms': self.processing_time_ms
        }

    @classmethod
    def failure(cls, status: EstimationStatus, **kwargs) -> 'PoseEstimate':
        return cls(status=status, **kwargs)
