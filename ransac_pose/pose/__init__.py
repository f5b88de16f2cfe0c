"""
pose 모듈 - 2D-3D 대응점 기반 카메라 자세 추정

주요 기능:
- OpenCV PnP 솔버 래퍼 (P3P 최소 해, 반복 정제, 투영)
- 가설 풀 관리
- Preemptive RANSAC 추정
- solvePnPRansac 단일 호출 추정 + 재투영 진단
"""

from .pnp_solver import (
    PnPSolver,
    CalibrationModel,
    CorrespondenceSet,
    is_degenerate
)

from .estimation_result import (
    PoseEstimate,
    EstimationStatus
)

from .hypothesis import (
    Hypothesis,
    HypothesisPool
)

from .preemptive_ransac import (
    PreemptiveRansacEstimator,
    RoundSummary,
    preemptive_ransac
)

from .single_shot_estimator import (
    SingleShotEstimator,
    estimate_camera_pose
)

__all__ = [
    'PnPSolver',
    'CalibrationModel',
    'CorrespondenceSet',
    'is_degenerate',
    'PoseEstimate',
    'EstimationStatus',
    'Hypothesis',
    'HypothesisPool',
    'PreemptiveRansacEstimator',
    'RoundSummary',
    'preemptive_ransac',
    'SingleShotEstimator',
    'estimate_camera_pose',
]
