"""
measurement 모듈 - 자세 표현 변환

주요 기능:
- 회전 행렬 <-> 쿼터니언, 회전 행렬 -> 오일러 각도
- 강체 변환 구성 / 역변환 / 합성
- 자세 간 거리 (회전 각도, 이동 거리)
- 짐벌 락 감지 및 경고
"""

from .pose_converter import (
    Pose,
    PoseConverter,
    PoseComponents,
    EulerAngles,
    Quaternion,
    is_rotation_matrix,
    rotation_to_quaternion,
    quaternion_to_rotation_matrix,
    rotation_to_euler_angles,
    pose_distance
)

__all__ = [
    'Pose',
    'PoseConverter',
    'PoseComponents',
    'EulerAngles',
    'Quaternion',
    'is_rotation_matrix',
    'rotation_to_quaternion',
    'quaternion_to_rotation_matrix',
    'rotation_to_euler_angles',
    'pose_distance',
]
