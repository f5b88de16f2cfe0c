"""
system_config.py - 카메라 위치 추정 설정

카메라 내부 파라미터, Preemptive RANSAC, 단일 호출 추정, 출력 설정을
YAML 파일 하나로 관리합니다.

Version: 1.0
Author: FurSys AI Team
"""

import yaml
import numpy as np
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional, List
import logging

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """카메라 설정"""
    # RealSense D455 기본 파라미터
    fx: float = 383.883
    fy: float = 383.883
    cx: float = 320.499
    cy: float = 237.913

    # 렌즈 왜곡 (k1, k2, p1, p2[, k3]); 비어 있으면 왜곡 없음
    dist_coeffs: List[float] = field(default_factory=list)

    @property
    def camera_matrix(self) -> np.ndarray:
        """3x3 내부 파라미터 행렬 K"""
        return np.array([
            [self.fx, 0.0, self.cx],
            [0.0, self.fy, self.cy],
            [0.0, 0.0, 1.0]
        ])


@dataclass
class RansacConfig:
    """Preemptive RANSAC 설정"""
    inlier_threshold: float = 8.0       # 재투영 inlier 임계값 (픽셀)
    block_size: int = 500               # 라운드당 채점 블록 크기 B
    num_hypotheses: int = 1024          # 초기 가설 목표 수 K
    max_sampling_iterations: int = 2048 # 초기화 샘플링 최대 시도 횟수
    min_refine_inliers: int = 4         # inlier 가 이보다 많아야 정제
    min_correspondences: int = 500      # 권장 최소 대응점 수 (미만이면 경고만)
    seed: Optional[int] = None          # 난수 seed (None 이면 비결정적)

    def __post_init__(self):
        if self.num_hypotheses < 1:
            raise ValueError(f"num_hypotheses must be >= 1, got {self.num_hypotheses}")
        if self.block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {self.block_size}")
        if self.max_sampling_iterations < 1:
            raise ValueError(f"max_sampling_iterations must be >= 1, got {self.max_sampling_iterations}")
        if self.inlier_threshold <= 0:
            raise ValueError(f"inlier_threshold must be positive, got {self.inlier_threshold}")


@dataclass
class SingleShotConfig:
    """단일 호출 강건 추정 설정"""
    max_iterations: int = 1000      # solvePnPRansac 반복 횟수
    reprojection_error: float = 8.0 # solvePnPRansac inlier 임계값 (픽셀)
    confidence: float = 0.99
    diagnostic_error: float = 10.0  # 진단용 재투영 오차 기준 (픽셀)


ESTIMATION_METHODS = ('preemptive', 'single_shot')
OUTPUT_FORMATS = ('yaml', 'json')


@dataclass
class OutputConfig:
    """결과 저장 및 로그 설정"""
    output_format: str = "yaml"     # OUTPUT_FORMATS 중 하나
    log_level: str = "INFO"

    def __post_init__(self):
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {self.output_format}")


@dataclass
class SystemConfig:
    """카메라 위치 추정 전체 설정"""
    camera: CameraConfig = field(default_factory=CameraConfig)
    ransac: RansacConfig = field(default_factory=RansacConfig)
    single_shot: SingleShotConfig = field(default_factory=SingleShotConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # ESTIMATION_METHODS 중 하나
    method: str = "preemptive"

    def to_dict(self) -> Dict[str, Any]:
        """섹션별 딕셔너리 (YAML 저장 형식)"""
        return asdict(self)

    def save(self, filepath: str):
        """YAML 로 저장"""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.info(f"Saved configuration to {path}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'SystemConfig':
        """
        섹션별 딕셔너리에서 생성

        없는 섹션/키는 기본값을 사용합니다.
        알 수 없는 키는 dataclass 생성자에서 TypeError 가 됩니다.
        """
        method = d.get('method', 'preemptive')
        if method not in ESTIMATION_METHODS:
            raise ValueError(f"Unknown estimation method: {method}")

        sections = {
            'camera': CameraConfig,
            'ransac': RansacConfig,
            'single_shot': SingleShotConfig,
            'output': OutputConfig,
        }
        kwargs = {name: section_cls(**(d.get(name) or {})) for name, section_cls in sections.items()}
        return cls(method=method, **kwargs)


def load_config(filepath: str) -> SystemConfig:
    """
    YAML 설정 로드

    파일이 없거나 비어 있으면 기본 설정을 반환합니다.
    """
    path = Path(filepath)
    if not path.is_file():
        logger.warning(f"No configuration at {path}, falling back to defaults")
        return SystemConfig()

    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    if not data:
        logger.info(f"Configuration file {path} is empty, using defaults")
        return SystemConfig()

    return SystemConfig.from_dict(data)


def create_default_config(save_path: Optional[str] = None) -> SystemConfig:
    """기본 설정 생성 (save_path 가 있으면 YAML 로 함께 저장)"""
    config = SystemConfig()
    if save_path:
        config.save(save_path)
    return config
