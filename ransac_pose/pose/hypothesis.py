"""
hypothesis.py - RANSAC 가설 풀

후보 자세(가설) 집합과 가설별 누적 손실, 최근 라운드 inlier 를 관리합니다.

가설 수명:
    생성 (샘플링) -> 채점 (손실 누적, inlier 기록) -> 정제 (자세 교체) -> 제거 (가지치기)
"""

import numpy as np
from typing import List, Optional
from dataclasses import dataclass, field
import logging

from ..measurement.pose_converter import Pose
from .pnp_solver import PnPSolver, CalibrationModel

logger = logging.getLogger(__name__)


@dataclass
class Hypothesis:
    """
    단일 자세 가설

    Attributes:
        pose: 후보 자세 (camera_from_world)
        loss: 누적 outlier 수 (라운드마다 단조 증가)
        inlier_indices: 최근 라운드 블록 내 inlier 인덱스
    """
    pose: Pose
    loss: float = 0.0
    inlier_indices: List[int] = field(default_factory=list)

    @property
    def num_inliers(self) -> int:
        return len(self.inlier_indices)


class HypothesisPool:
    """
    가설 풀

    정렬 가능한 리스트에 가설을 저장합니다.
    prune() 은 손실 오름차순 정렬 후 floor(n / 2) 개만 남깁니다.

    Example:
        >>> pool = HypothesisPool()
        >>> pool.add(pose)
        >>> pool.score(block_img, block_wld, solver, calibration, threshold=8.0)
        >>> pool.prune()
    """

    def __init__(self, hypotheses: Optional[List[Hypothesis]] = None):
        self._hypotheses: List[Hypothesis] = list(hypotheses) if hypotheses else []

    def __len__(self) -> int:
        return len(self._hypotheses)

    def __iter__(self):
        return iter(self._hypotheses)

    def add(self, pose: Pose) -> Hypothesis:
        """손실 0 인 가설 추가"""
        hypothesis = Hypothesis(pose=pose)
        self._hypotheses.append(hypothesis)
        return hypothesis

    @property
    def losses(self) -> np.ndarray:
        return np.array([h.loss for h in self._hypotheses])

    @property
    def best(self) -> Optional[Hypothesis]:
        """손실이 가장 작은 가설"""
        if not self._hypotheses:
            return None
        return min(self._hypotheses, key=lambda h: h.loss)

    def score(
        self,
        block_image_points: np.ndarray,
        block_world_points: np.ndarray,
        solver: PnPSolver,
        calibration: CalibrationModel,
        threshold: float
    ):
        """
        모든 가설을 동일한 블록으로 채점

        재투영 오차가 threshold 를 넘는 점마다 손실 +1,
        그렇지 않은 점의 블록 인덱스는 이번 라운드 inlier 로 기록합니다.
        inlier 는 라운드마다 새로 계산됩니다.
        """
        for hypothesis in self._hypotheses:
            errors = solver.reprojection_errors(
                block_image_points, block_world_points, hypothesis.pose, calibration
            )
            is_outlier = ~(errors <= threshold)
            hypothesis.loss += float(np.count_nonzero(is_outlier))
            hypothesis.inlier_indices = np.flatnonzero(~is_outlier).tolist()

    def prune(self) -> int:
        """
        손실 오름차순 정렬 후 하위 절반 제거

        Returns:
            남은 가설 수
        """
        self._hypotheses.sort(key=lambda h: h.loss)
        del self._hypotheses[len(self._hypotheses) // 2:]
        return len(self._hypotheses)

    def refine(
        self,
        block_image_points: np.ndarray,
        block_world_points: np.ndarray,
        solver: PnPSolver,
        calibration: CalibrationModel,
        min_inliers: int
    ) -> int:
        """
        inlier 가 min_inliers 보다 많은 가설을 inlier 만으로 재추정

        실패한 가설은 이전 자세를 유지합니다.

        Returns:
            정제에 성공한 가설 수
        """
        num_refined = 0
        for hypothesis in self._hypotheses:
            if hypothesis.num_inliers <= min_inliers:
                continue

            indices = np.asarray(hypothesis.inlier_indices, dtype=np.int64)
            refined = solver.refine(
                block_image_points[indices],
                block_world_points[indices],
                calibration,
                hypothesis.pose
            )
            if refined is None:
                logger.debug(
                    f"Refinement failed (loss={hypothesis.loss:.0f}, "
                    f"inliers={hypothesis.num_inliers}), keeping previous pose"
                )
                continue

            hypothesis.pose = refined
            num_refined += 1

        return num_refined
