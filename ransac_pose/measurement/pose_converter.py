"""
pose_converter.py - 자세 표현 변환 모듈

강체 변환(회전 + 이동)을 다양한 표현으로 변환합니다:
- 회전 행렬 (3x3) <-> 쿼터니언 (w, x, y, z)
- 회전 행렬 -> 오일러 각도 (도)
- 4x4 동차 변환 행렬 구성 / 역변환 / 합성
- 두 자세 사이 거리 (회전 각도, 이동 거리)

설계 원칙:
1. 회전 행렬은 항상 정규직교 (det = +1) 를 유지
2. 쿼터니언 변환은 수치적으로 안정한 피벗 선택 사용
3. 자세 비교는 쿼터니언 이중 피복을 고려 (q 와 -q 는 같은 회전)

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
import cv2
from scipy.spatial.transform import Rotation
from typing import Tuple, Dict, Any, Union
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

ORTHONORMAL_TOLERANCE = 1e-6


def is_rotation_matrix(R: np.ndarray, tol: float = ORTHONORMAL_TOLERANCE) -> bool:
    """정규직교 + det(R) = +1 여부"""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        return False
    should_be_identity = R.T @ R
    if not np.allclose(should_be_identity, np.eye(3), atol=tol):
        return False
    return abs(np.linalg.det(R) - 1.0) < tol


def _as_rotation(R: np.ndarray) -> np.ndarray:
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 rotation matrix, got {R.shape}")
    return R


def _sign(value: float) -> float:
    return 1.0 if value >= 0.0 else -1.0


@dataclass
class EulerAngles:
    """
    오일러 각도 (도)

    Attributes:
        roll: X축 회전 (theta1)
        pitch: Y축 회전 (theta2)
        yaw: Z축 회전 (theta3)
    """
    roll: float
    pitch: float
    yaw: float

    def to_radians(self) -> 'EulerAngles':
        """라디안으로 변환"""
        return EulerAngles(
            roll=np.deg2rad(self.roll),
            pitch=np.deg2rad(self.pitch),
            yaw=np.deg2rad(self.yaw)
        )

    def to_array(self) -> np.ndarray:
        """numpy 배열로 변환 [roll, pitch, yaw]"""
        return np.array([self.roll, self.pitch, self.yaw])

    def __repr__(self) -> str:
        return f"EulerAngles(R={self.roll:.2f}, P={self.pitch:.2f}, Y={self.yaw:.2f})"


@dataclass
class Quaternion:
    """
    단위 쿼터니언 q = w + xi + yj + zk

    q 와 -q 는 같은 회전을 나타냅니다 (이중 피복).
    """
    x: float
    y: float
    z: float
    w: float

    def to_array(self) -> np.ndarray:
        """[x, y, z, w] 형식 (scipy 표준)"""
        return np.array([self.x, self.y, self.z, self.w])

    def to_array_wxyz(self) -> np.ndarray:
        """[w, x, y, z] 형식"""
        return np.array([self.w, self.x, self.y, self.z])

    @property
    def norm(self) -> float:
        """쿼터니언 크기"""
        return float(np.linalg.norm(self.to_array()))

    @property
    def is_unit(self) -> bool:
        """단위 쿼터니언 여부"""
        return abs(self.norm - 1.0) < 1e-6

    def dot(self, other: 'Quaternion') -> float:
        """내적"""
        return float(np.dot(self.to_array(), other.to_array()))

    def angle_to(self, other: 'Quaternion') -> float:
        """
        다른 쿼터니언까지의 회전 각도 (도)

        |q1·q2| 를 사용하므로 결과는 [0, 180] 범위입니다.
        """
        dot = np.clip(abs(self.dot(other)), -1.0, 1.0)
        return float(np.rad2deg(2.0 * np.arccos(dot)))

    def __repr__(self) -> str:
        return f"Quaternion(w={self.w:.4f}, x={self.x:.4f}, y={self.y:.4f}, z={self.z:.4f})"

    @classmethod
    def identity(cls) -> 'Quaternion':
        """단위 쿼터니언 (회전 없음)"""
        return cls(x=0.0, y=0.0, z=0.0, w=1.0)

    @classmethod
    def from_axis_angle(cls, axis: np.ndarray, angle_deg: float) -> 'Quaternion':
        """축-각도에서 생성"""
        axis = np.asarray(axis, dtype=np.float64)
        axis = axis / np.linalg.norm(axis)
        half = np.deg2rad(angle_deg) / 2
        sin_a = np.sin(half)
        return cls(
            x=float(axis[0] * sin_a),
            y=float(axis[1] * sin_a),
            z=float(axis[2] * sin_a),
            w=float(np.cos(half))
        )


class Pose:
    """
    강체 변환 T = [R | t; 0 0 0 1]

    회전은 생성 시 정규직교성을 검사합니다.
    변환 방향은 호출자가 정합니다 (예: camera_from_world, world_from_camera).

    Example:
        >>> T = Pose(np.eye(3), [0.0, 0.0, 1.0])
        >>> T.inverse().translation
        array([ 0.,  0., -1.])
    """

    def __init__(self, rotation: np.ndarray, translation: np.ndarray):
        rotation = np.asarray(rotation, dtype=np.float64)
        translation = np.asarray(translation, dtype=np.float64).reshape(-1)

        if rotation.shape != (3, 3):
            raise ValueError(f"Expected 3x3 rotation, got {rotation.shape}")
        if translation.shape != (3,):
            raise ValueError(f"Expected 3-vector translation, got {translation.shape}")
        if not is_rotation_matrix(rotation):
            raise ValueError("Rotation matrix is not orthonormal with determinant +1")

        self.rotation = rotation
        self.translation = translation

    @property
    def matrix(self) -> np.ndarray:
        """4x4 동차 변환 행렬"""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def inverse(self) -> 'Pose':
        """역변환 [R^T | -R^T t]"""
        R_inv = self.rotation.T
        return Pose(R_inv, -R_inv @ self.translation)

    def compose(self, other: 'Pose') -> 'Pose':
        """self * other (other 를 먼저 적용)"""
        return Pose(
            self.rotation @ other.rotation,
            self.rotation @ other.translation + self.translation
        )

    def __matmul__(self, other: 'Pose') -> 'Pose':
        return self.compose(other)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """(N, 3) 점들에 변환 적용"""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return points @ self.rotation.T + self.translation

    def to_rvec_tvec(self) -> Tuple[np.ndarray, np.ndarray]:
        """OpenCV 형식 (Rodrigues 벡터, 이동 벡터) 각각 (3, 1)"""
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec.reshape(3, 1), self.translation.reshape(3, 1).copy()

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            'rotation': self.rotation.tolist(),
            'translation': self.translation.tolist()
        }

    def __repr__(self) -> str:
        t = self.translation
        return f"Pose(t=[{t[0]:.4f}, {t[1]:.4f}, {t[2]:.4f}])"

    @classmethod
    def identity(cls) -> 'Pose':
        return cls(np.eye(3), np.zeros(3))

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> 'Pose':
        """4x4 행렬에서 생성 (마지막 행은 [0, 0, 0, 1] 이어야 함)"""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected 4x4 matrix, got {matrix.shape}")
        if not np.allclose(matrix[3], [0.0, 0.0, 0.0, 1.0]):
            raise ValueError(f"Bottom row must be [0, 0, 0, 1], got {matrix[3]}")
        return cls(matrix[:3, :3], matrix[:3, 3])

    @classmethod
    def from_rvec_tvec(cls, rvec: np.ndarray, tvec: np.ndarray) -> 'Pose':
        """OpenCV Rodrigues 벡터 + 이동 벡터에서 생성"""
        R, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).reshape(3, 1))
        return cls(R, np.asarray(tvec, dtype=np.float64).reshape(3))


PoseLike = Union[Pose, np.ndarray]


def _as_pose(pose: PoseLike) -> Pose:
    if isinstance(pose, Pose):
        return pose
    return Pose.from_matrix(pose)


def rotation_to_quaternion(R: np.ndarray) -> Quaternion:
    """
    회전 행렬에서 단위 쿼터니언으로 변환

    대각 성분으로 네 후보 |w|, |x|, |y|, |z| 를 계산하고 (음수는 0 으로 클램프),
    가장 큰 성분을 피벗으로 선택한 뒤 나머지 성분의 부호를
    비대각 성분의 차/합으로 결정합니다. argmax 로 피벗을 고르므로
    항상 하나의 분기가 선택됩니다.

    Args:
        R: 3x3 정규직교 회전 행렬

    Returns:
        Quaternion: 단위 쿼터니언
    """
    R = _as_rotation(R)
    r11, r12, r13 = R[0]
    r21, r22, r23 = R[1]
    r31, r32, r33 = R[2]

    candidates = np.array([
        ( r11 + r22 + r33 + 1.0) / 4.0,
        ( r11 - r22 - r33 + 1.0) / 4.0,
        (-r11 + r22 - r33 + 1.0) / 4.0,
        (-r11 - r22 + r33 + 1.0) / 4.0,
    ])
    q = np.sqrt(np.maximum(candidates, 0.0))

    pivot = int(np.argmax(q))
    if pivot == 0:
        signs = (1.0, _sign(r32 - r23), _sign(r13 - r31), _sign(r21 - r12))
    elif pivot == 1:
        signs = (_sign(r32 - r23), 1.0, _sign(r21 + r12), _sign(r13 + r31))
    elif pivot == 2:
        signs = (_sign(r13 - r31), _sign(r21 + r12), 1.0, _sign(r32 + r23))
    else:
        signs = (_sign(r21 - r12), _sign(r31 + r13), _sign(r32 + r23), 1.0)

    q = q * np.array(signs)
    q = q / np.linalg.norm(q)

    return Quaternion(w=float(q[0]), x=float(q[1]), y=float(q[2]), z=float(q[3]))


def quaternion_to_rotation_matrix(quat: Quaternion) -> np.ndarray:
    """쿼터니언에서 회전 행렬로 변환"""
    return Rotation.from_quat(quat.to_array()).as_matrix()


def rotation_to_euler_angles(R: np.ndarray) -> EulerAngles:
    """
    회전 행렬에서 오일러 각도 (도) 추출

    theta1 = atan2(R12, R22)
    theta2 = atan2(-R02, hypot(R00, R01))
    theta3 = atan2(s1*R20 - c1*R10, c1*R11 - s1*R21)

    R^T 가 외재적 x-y-z 순서 회전 (theta1, theta2, theta3) 에 해당합니다.
    예: Z축 +90도 회전 행렬은 yaw = -90 을 반환합니다.

    Note:
        hypot(R00, R01) ~ 0 (pitch ±90도, 짐벌 락) 인 경우
        별도 처리 없이 atan2 결과를 그대로 반환합니다.
    """
    R = _as_rotation(R)

    theta1 = np.arctan2(R[1, 2], R[2, 2])
    c2 = np.hypot(R[0, 0], R[0, 1])
    theta2 = np.arctan2(-R[0, 2], c2)
    s1 = np.sin(theta1)
    c1 = np.cos(theta1)
    theta3 = np.arctan2(s1 * R[2, 0] - c1 * R[1, 0], c1 * R[1, 1] - s1 * R[2, 1])

    return EulerAngles(
        roll=float(np.rad2deg(theta1)),
        pitch=float(np.rad2deg(theta2)),
        yaw=float(np.rad2deg(theta3))
    )


def pose_distance(src_pose: PoseLike, dst_pose: PoseLike) -> Tuple[float, float]:
    """
    두 자세 사이 거리

    Args:
        src_pose: Pose 또는 4x4 행렬
        dst_pose: Pose 또는 4x4 행렬

    Returns:
        (angle_distance, euclidean_distance)
        angle_distance: 2 * acos(|q1·q2|), 도 단위 [0, 180]
        euclidean_distance: 이동 벡터 차이의 L2 norm
    """
    src = _as_pose(src_pose)
    dst = _as_pose(dst_pose)

    q1 = rotation_to_quaternion(src.rotation)
    q2 = rotation_to_quaternion(dst.rotation)
    angle_distance = q1.angle_to(q2)

    euclidean_distance = float(np.linalg.norm(src.translation - dst.translation))

    return angle_distance, euclidean_distance


@dataclass
class PoseComponents:
    """
    자세 구성요소 통합

    하나의 자세를 여러 표현으로 동시에 제공합니다 (보고/로깅용).
    """
    translation: np.ndarray      # [x, y, z]
    euler: EulerAngles           # theta1, theta2, theta3 (도)
    quaternion: Quaternion       # (w, x, y, z)
    rotation_matrix: np.ndarray  # 3x3
    gimbal_lock_warning: bool

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            'translation': self.translation.tolist(),
            'euler': {
                'roll': self.euler.roll,
                'pitch': self.euler.pitch,
                'yaw': self.euler.yaw
            },
            'quaternion': {
                'w': self.quaternion.w,
                'x': self.quaternion.x,
                'y': self.quaternion.y,
                'z': self.quaternion.z
            },
            'rotation_matrix': self.rotation_matrix.tolist(),
            'gimbal_lock_warning': self.gimbal_lock_warning
        }


class PoseConverter:
    """
    자세 보고용 변환 클래스

    Example:
        >>> converter = PoseConverter()
        >>> components = converter.pose_to_components(estimate.world_from_camera)
        >>> print(f"Yaw: {components.euler.yaw:.2f}")
    """

    GIMBAL_LOCK_THRESHOLD = 85.0  # 도 (±90°에서 ±5° 이내)

    def __init__(self, warn_gimbal_lock: bool = True):
        """
        Args:
            warn_gimbal_lock: 짐벌 락 경고 활성화
        """
        self.warn_gimbal_lock = warn_gimbal_lock

    def pose_to_components(self, pose: PoseLike) -> PoseComponents:
        """
        자세에서 모든 구성요소 추출

        Args:
            pose: Pose 또는 4x4 변환 행렬 [R|t; 0 1]

        Returns:
            PoseComponents: 이동, 오일러, 쿼터니언, 회전 행렬
        """
        pose = _as_pose(pose)

        euler = rotation_to_euler_angles(pose.rotation)
        quaternion = rotation_to_quaternion(pose.rotation)

        return PoseComponents(
            translation=pose.translation.copy(),
            euler=euler,
            quaternion=quaternion,
            rotation_matrix=pose.rotation.copy(),
            gimbal_lock_warning=self._check_gimbal_lock(euler.pitch)
        )

    def _check_gimbal_lock(self, pitch: float) -> bool:
        """
        짐벌 락 근접 여부 확인

        Pitch 가 ±90° 에 근접하면 roll 과 yaw 가 분리되지 않습니다.
        """
        if not self.warn_gimbal_lock:
            return False

        if abs(abs(pitch) - 90) < (90 - self.GIMBAL_LOCK_THRESHOLD):
            logger.warning(f"Approaching gimbal lock (pitch={pitch:.1f})")
            return True

        return False
