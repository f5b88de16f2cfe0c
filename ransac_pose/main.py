"""
main.py - ransac_pose 통합 카메라 위치 추정

설정에 따라 Preemptive RANSAC 또는 단일 호출 추정기로
2D-3D 대응점에서 카메라 자세 (world_from_camera) 를 추정하고,
결과를 오일러/쿼터니언 등으로 변환하여 보고합니다.

사용법:
    ransac_pose --correspondences query.csv --config config.yaml --output result.yaml

Version: 1.0
Author: FurSys AI Team
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple
from dataclasses import dataclass

import numpy as np
import yaml

from .config.system_config import SystemConfig, ESTIMATION_METHODS, load_config
from .input.correspondence_loader import CorrespondenceLoader
from .measurement.pose_converter import PoseConverter, PoseComponents, PoseLike, pose_distance
from .pose.pnp_solver import PnPSolver, CalibrationModel, CorrespondenceSet
from .pose.estimation_result import PoseEstimate
from .pose.preemptive_ransac import PreemptiveRansacEstimator
from .pose.single_shot_estimator import SingleShotEstimator

logger = logging.getLogger(__name__)


@dataclass
class LocalizationResult:
    """
    위치 추정 결과

    Attributes:
        method: 사용한 추정 방식
        estimate: 추정 결과 (상태 + 자세 + 진단)
        components: world_from_camera 자세 구성요소 (실패 시 None)
        num_correspondences: 입력 대응점 수
    """
    method: str
    estimate: PoseEstimate
    components: Optional[PoseComponents]
    num_correspondences: int

    @property
    def success(self) -> bool:
        return self.estimate.success

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            'method': self.method,
            'num_correspondences': self.num_correspondences,
            'estimate': self.estimate.to_dict(),
            'pose': self.components.to_dict() if self.components is not None else None
        }


class CameraLocalizer:
    """
    통합 카메라 위치 추정기

    Example:
        >>> config = load_config("config/system_config.yaml")
        >>> localizer = CameraLocalizer.from_config(config)
        >>> result = localizer.localize(correspondences)
        >>> print(f"Yaw: {result.components.euler.yaw:.2f}")
    """

    METHODS = ESTIMATION_METHODS

    def __init__(
        self,
        calibration: CalibrationModel,
        config: Optional[SystemConfig] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Args:
            calibration: 카메라 보정 모델
            config: 시스템 설정 (None 이면 기본값)
            rng: Preemptive RANSAC 난수 생성기 (None 이면 config.ransac.seed 사용)
        """
        self.config = config or SystemConfig()
        self.calibration = calibration

        if self.config.method not in self.METHODS:
            raise ValueError(f"Unknown estimation method: {self.config.method}")

        solver = PnPSolver()
        self._preemptive = PreemptiveRansacEstimator(self.config.ransac, solver=solver, rng=rng)
        self._single_shot = SingleShotEstimator(self.config.single_shot, solver=solver)
        self._pose_converter = PoseConverter()

        logger.info(f"CameraLocalizer initialized: method={self.config.method}")

    def localize(
        self,
        correspondences: CorrespondenceSet,
        method: Optional[str] = None
    ) -> LocalizationResult:
        """
        대응점 집합 하나에 대해 카메라 자세 추정

        Args:
            correspondences: 2D-3D 대응점
            method: 추정 방식 (None 이면 설정값)

        Returns:
            LocalizationResult
        """
        method = method or self.config.method
        if method == 'preemptive':
            estimate = self._preemptive.estimate(correspondences, self.calibration)
        elif method == 'single_shot':
            estimate = self._single_shot.estimate(correspondences, self.calibration)
        else:
            raise ValueError(f"Unknown estimation method: {method}")

        components = None
        if estimate.success:
            components = self._pose_converter.pose_to_components(estimate.world_from_camera)
        else:
            logger.warning(f"Localization failed: {estimate.status.value}")

        return LocalizationResult(
            method=method,
            estimate=estimate,
            components=components,
            num_correspondences=len(correspondences)
        )

    def localize_sequence(
        self,
        sequence: List[CorrespondenceSet]
    ) -> List[LocalizationResult]:
        """대응점 집합 시퀀스 처리"""
        return [self.localize(correspondences) for correspondences in sequence]

    @staticmethod
    def compare(result: LocalizationResult, reference_pose: PoseLike) -> Optional[Tuple[float, float]]:
        """
        추정 결과와 기준 자세 비교

        Returns:
            (angle_distance_deg, euclidean_distance), 실패한 결과면 None
        """
        if not result.success:
            return None
        return pose_distance(result.estimate.world_from_camera, reference_pose)

    @property
    def rounds(self):
        """마지막 Preemptive RANSAC 실행의 라운드 요약"""
        return self._preemptive.rounds

    @classmethod
    def from_config(
        cls,
        config: SystemConfig,
        rng: Optional[np.random.Generator] = None
    ) -> 'CameraLocalizer':
        """
        설정에서 추정기 생성

        Args:
            config: SystemConfig

        Returns:
            CameraLocalizer
        """
        calibration = CalibrationModel(
            config.camera.camera_matrix,
            np.asarray(config.camera.dist_coeffs, dtype=np.float64)
        )
        return cls(calibration, config=config, rng=rng)


def run_localization(
    image_points: np.ndarray,
    world_points: np.ndarray,
    config: Optional[SystemConfig] = None
) -> LocalizationResult:
    """
    단일 대응점 집합 위치 추정 (편의 함수)

    Args:
        image_points: (N, 2) 픽셀 좌표
        world_points: (N, 3) 월드 좌표
        config: 시스템 설정

    Returns:
        LocalizationResult
    """
    if config is None:
        config = SystemConfig()

    localizer = CameraLocalizer.from_config(config)
    return localizer.localize(CorrespondenceSet(image_points, world_points))


def save_results(results: List[LocalizationResult], filepath: str, output_format: str = "yaml"):
    """결과를 YAML 또는 JSON 으로 저장"""
    data = [result.to_dict() for result in results]
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if output_format == "json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Results saved to {filepath}")


def main(argv: Optional[List[str]] = None):
    """메인 실행"""
    parser = argparse.ArgumentParser(
        description='ransac_pose: 2D-3D 대응점 기반 카메라 자세 추정'
    )
    parser.add_argument('--correspondences', type=str, required=True,
                        help='대응점 CSV 파일 또는 폴더 (열: u, v, x, y, z)')
    parser.add_argument('--config', type=str, default=None,
                        help='설정 파일 경로 (YAML)')
    parser.add_argument('--method', type=str, default=None,
                        choices=list(CameraLocalizer.METHODS),
                        help='추정 방식 (설정값 덮어쓰기)')
    parser.add_argument('--seed', type=int, default=None,
                        help='난수 seed (설정값 덮어쓰기)')
    parser.add_argument('--output', type=str, default=None,
                        help='결과 파일 경로')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='상세 로그 출력')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_config(args.config) if args.config else SystemConfig()
    if args.method:
        config.method = args.method
    if args.seed is not None:
        config.ransac.seed = args.seed

    if not args.verbose:
        logging.getLogger().setLevel(getattr(logging, config.output.log_level.upper(), logging.INFO))

    loader = CorrespondenceLoader(args.correspondences)
    localizer = CameraLocalizer.from_config(config)

    results = []
    for idx, correspondences in enumerate(loader):
        result = localizer.localize(correspondences)
        results.append(result)

        if result.success:
            t = result.components.translation
            e = result.components.euler
            logger.info(
                f"Query {idx}: "
                f"pos=[{t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}], "
                f"euler=[{e.roll:.1f}, {e.pitch:.1f}, {e.yaw:.1f}]"
            )

    if args.output:
        save_results(results, args.output, config.output.output_format)

    num_success = sum(1 for r in results if r.success)
    logger.info(f"Localized {num_success}/{len(results)} queries")

    return 0 if num_success == len(results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
