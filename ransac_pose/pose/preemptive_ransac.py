"""
preemptive_ransac.py - Preemptive RANSAC 카메라 자세 추정

다수의 자세 가설을 한 번에 생성한 뒤, 매 라운드 새로 뽑은
대응점 블록으로 모든 가설을 채점하고 손실이 큰 절반을 제거합니다.
가설이 하나 남을 때까지 반복합니다.

파이프라인:
┌──────────────────────────────────────────────────────────┐
│  3점 샘플 x K  ->  P3P  ->  가설 풀 (손실 0)              │
│                        ↓                                  │
│  [라운드] 블록 B개 샘플 -> 채점 -> 정렬/절반 제거 -> 정제   │
│                        ↓ (풀 크기 1)                      │
│  camera_from_world -> 역변환 -> world_from_camera         │
└──────────────────────────────────────────────────────────┘

전체 대응점 대신 블록으로 채점하므로 라운드 비용은
(풀 크기 x B) 에 비례합니다. 제거는 가설 간 상대 순위만 사용합니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional, List
from dataclasses import dataclass
import time
import logging

from ..config.system_config import RansacConfig
from .pnp_solver import PnPSolver, CalibrationModel, CorrespondenceSet
from .hypothesis import HypothesisPool
from .estimation_result import PoseEstimate, EstimationStatus

logger = logging.getLogger(__name__)

MINIMAL_SAMPLE_SIZE = 3


@dataclass
class RoundSummary:
    """토너먼트 라운드 요약"""
    round_idx: int
    pool_size_before: int
    pool_size_after: int
    best_loss: float
    worst_kept_loss: float
    num_refined: int


class PreemptiveRansacEstimator:
    """
    Preemptive RANSAC 자세 추정기

    난수 생성기는 명시적으로 주입하거나 config.seed 로 생성합니다.
    같은 seed 와 입력이면 같은 결과를 반환합니다.

    Example:
        >>> estimator = PreemptiveRansacEstimator(RansacConfig(seed=0))
        >>> estimate = estimator.estimate(correspondences, calibration)
        >>> if estimate.success:
        ...     print(estimate.world_from_camera.matrix)
    """

    def __init__(
        self,
        config: Optional[RansacConfig] = None,
        solver: Optional[PnPSolver] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Args:
            config: RANSAC 파라미터
            solver: PnP 솔버 (None 이면 기본 OpenCV 솔버)
            rng: 난수 생성기 (None 이면 config.seed 로 생성)
        """
        self.config = config or RansacConfig()
        self.solver = solver or PnPSolver()
        self._rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.rounds: List[RoundSummary] = []

    def estimate(
        self,
        correspondences: CorrespondenceSet,
        calibration: CalibrationModel
    ) -> PoseEstimate:
        """
        카메라 자세 추정

        Args:
            correspondences: 2D-3D 대응점
            calibration: 카메라 보정 모델

        Returns:
            PoseEstimate: world_from_camera 자세 또는 실패 상태
        """
        start_time = time.time()
        self.rounds = []

        num_points = len(correspondences)
        if num_points < MINIMAL_SAMPLE_SIZE:
            logger.error(f"Need at least {MINIMAL_SAMPLE_SIZE} correspondences, got {num_points}")
            return PoseEstimate.failure(EstimationStatus.INSUFFICIENT_CORRESPONDENCES)

        if num_points <= self.config.min_correspondences:
            logger.warning(
                f"Only {num_points} correspondences "
                f"(preemptive RANSAC is tuned for more than {self.config.min_correspondences})"
            )

        pool = self.generate_hypotheses(correspondences, calibration)
        num_hypotheses = len(pool)

        if num_hypotheses == 0:
            logger.error("Hypothesis initialization produced no candidates")
            return PoseEstimate.failure(
                EstimationStatus.EMPTY_HYPOTHESIS_POOL,
                processing_time_ms=(time.time() - start_time) * 1000
            )

        while len(pool) > 1:
            self.run_round(pool, correspondences, calibration)

        survivor = pool.best
        camera_from_world = survivor.pose
        world_from_camera = camera_from_world.inverse()

        processing_time = (time.time() - start_time) * 1000
        t = world_from_camera.translation
        logger.info(
            f"Preemptive RANSAC: {num_hypotheses} hypotheses, {len(self.rounds)} rounds, "
            f"loss={survivor.loss:.0f}, camera position=[{t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}], "
            f"{processing_time:.1f} ms"
        )

        return PoseEstimate(
            status=EstimationStatus.SUCCESS,
            world_from_camera=world_from_camera,
            camera_from_world=camera_from_world,
            num_hypotheses=num_hypotheses,
            num_rounds=len(self.rounds),
            final_loss=survivor.loss,
            num_inliers=survivor.num_inliers,
            processing_time_ms=processing_time
        )

    def generate_hypotheses(
        self,
        correspondences: CorrespondenceSet,
        calibration: CalibrationModel
    ) -> HypothesisPool:
        """
        무작위 3점 샘플로 초기 가설 풀 생성

        샘플은 비복원 추출이므로 인덱스가 중복되지 않습니다.
        성공한 샘플 하나당 가설 하나만 추가합니다. P3P 해가 여러 개이면
        솔버가 반환한 첫 번째 해를 사용하고 나머지는 버립니다.
        풀 크기가 num_hypotheses 에 도달하거나
        max_sampling_iterations 회 시도하면 종료합니다.
        """
        pool = HypothesisPool()
        num_points = len(correspondences)
        target = self.config.num_hypotheses

        for attempt in range(self.config.max_sampling_iterations):
            indices = self._rng.choice(num_points, size=MINIMAL_SAMPLE_SIZE, replace=False)
            candidates = self.solver.solve_minimal(
                correspondences.image_points[indices],
                correspondences.world_points[indices],
                calibration
            )

            if candidates:
                pool.add(candidates[0])

            if len(pool) >= target:
                logger.debug(f"Initialization repeated {attempt + 1} times")
                break

        logger.info(f"Initial hypothesis count: {len(pool)}")
        return pool

    def run_round(
        self,
        pool: HypothesisPool,
        correspondences: CorrespondenceSet,
        calibration: CalibrationModel
    ) -> RoundSummary:
        """
        토너먼트 1 라운드

        1. 복원 추출로 블록 B 개 샘플 (라운드마다 한 번, 모든 가설이 공유)
        2. 모든 가설 채점
        3. 손실 오름차순 정렬 후 절반 제거
        4. 남은 가설 중 inlier 가 충분한 것만 정제
        """
        block_indices = self._rng.integers(0, len(correspondences), size=self.config.block_size)
        block = correspondences.subset(block_indices)

        pool_size_before = len(pool)

        pool.score(
            block.image_points,
            block.world_points,
            self.solver,
            calibration,
            self.config.inlier_threshold
        )
        pool.prune()

        losses = pool.losses
        logger.debug(f"Round {len(self.rounds)}: losses after pruning {losses.tolist()}")

        num_refined = pool.refine(
            block.image_points,
            block.world_points,
            self.solver,
            calibration,
            self.config.min_refine_inliers
        )

        summary = RoundSummary(
            round_idx=len(self.rounds),
            pool_size_before=pool_size_before,
            pool_size_after=len(pool),
            best_loss=float(losses.min()) if len(losses) else float('nan'),
            worst_kept_loss=float(losses.max()) if len(losses) else float('nan'),
            num_refined=num_refined
        )
        self.rounds.append(summary)
        return summary


def preemptive_ransac(
    image_points: np.ndarray,
    world_points: np.ndarray,
    calibration: CalibrationModel,
    config: Optional[RansacConfig] = None,
    rng: Optional[np.random.Generator] = None
) -> PoseEstimate:
    """
    Preemptive RANSAC 편의 함수

    Args:
        image_points: (N, 2) 픽셀 좌표
        world_points: (N, 3) 월드 좌표
        calibration: 카메라 보정 모델
        config: RANSAC 파라미터
        rng: 난수 생성기

    Returns:
        PoseEstimate
    """
    estimator = PreemptiveRansacEstimator(config=config, rng=rng)
    return estimator.estimate(CorrespondenceSet(image_points, world_points), calibration)
