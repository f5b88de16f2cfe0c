"""
ransac_pose - 2D-3D 대응점 기반 카메라 자세 추정

주요 특징:
- Preemptive RANSAC (가설 토너먼트 + inlier 정제)
- solvePnPRansac 단일 호출 추정 + 재투영 진단
- 회전 표현 변환 (쿼터니언, 오일러) 및 자세 간 거리

Version: 1.0
Author: FurSys AI Team
"""

__version__ = "1.0.0"
__author__ = "FurSys AI Team"

from .measurement.pose_converter import (
    Pose,
    PoseConverter,
    PoseComponents,
    EulerAngles,
    Quaternion,
    rotation_to_quaternion,
    quaternion_to_rotation_matrix,
    rotation_to_euler_angles,
    pose_distance
)

from .pose.pnp_solver import (
    PnPSolver,
    CalibrationModel,
    CorrespondenceSet
)

from .pose.estimation_result import (
    PoseEstimate,
    EstimationStatus
)

from .pose.preemptive_ransac import (
    PreemptiveRansacEstimator,
    preemptive_ransac
)

from .pose.single_shot_estimator import (
    SingleShotEstimator,
    estimate_camera_pose
)

from .config.system_config import (
    SystemConfig,
    RansacConfig,
    SingleShotConfig,
    load_config
)

__all__ = [
    # Pose Representation
    'Pose',
    'PoseConverter',
    'PoseComponents',
    'EulerAngles',
    'Quaternion',
    'rotation_to_quaternion',
    'quaternion_to_rotation_matrix',
    'rotation_to_euler_angles',
    'pose_distance',
    # Geometry Solver
    'PnPSolver',
    'CalibrationModel',
    'CorrespondenceSet',
    # Estimation
    'PoseEstimate',
    'EstimationStatus',
    'PreemptiveRansacEstimator',
    'preemptive_ransac',
    'SingleShotEstimator',
    'estimate_camera_pose',
    # Config
    'SystemConfig',
    'RansacConfig',
    'SingleShotConfig',
    'load_config',
]
