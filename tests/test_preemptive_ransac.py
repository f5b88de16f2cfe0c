"""
Preemptive RANSAC 단위/통합 테스트
"""

import math

import numpy as np
import pytest

from ransac_pose.config.system_config import RansacConfig
from ransac_pose.measurement.pose_converter import Pose, pose_distance
from ransac_pose.pose.pnp_solver import CorrespondenceSet
from ransac_pose.pose.estimation_result import EstimationStatus
from ransac_pose.pose.preemptive_ransac import PreemptiveRansacEstimator, preemptive_ransac


class FakeSolver:
    """
    가짜 솔버

    solve_minimal 은 항등 자세를 solutions_per_sample 개 반환하고,
    reprojection_errors 는 난수 오차를 반환합니다. 정제는 항상 실패합니다.
    """

    def __init__(self, solutions_per_sample=1, seed=0):
        self.solutions_per_sample = solutions_per_sample
        self.rng = np.random.default_rng(seed)
        self.minimal_samples = []
        self.scored_blocks = []

    def solve_minimal(self, image_points, world_points, calibration):
        self.minimal_samples.append(image_points.copy())
        return [Pose.identity() for _ in range(self.solutions_per_sample)]

    def reprojection_errors(self, image_points, world_points, pose, calibration):
        self.scored_blocks.append(image_points.copy())
        return self.rng.uniform(0.0, 16.0, len(image_points))

    def refine(self, image_points, world_points, calibration, initial_pose):
        return None


class FailingSolver(FakeSolver):
    """모든 최소 해가 실패하는 솔버"""

    def solve_minimal(self, image_points, world_points, calibration):
        self.minimal_samples.append(image_points.copy())
        return []


def _indexed_correspondences(num_points=40):
    """image_points[i] == (i, i) 인 대응점"""
    idx = np.arange(num_points, dtype=float)
    return CorrespondenceSet(np.column_stack([idx, idx]), np.column_stack([idx, idx, idx]))


def _small_config(**kwargs):
    params = dict(num_hypotheses=16, block_size=20, min_correspondences=0, seed=0)
    params.update(kwargs)
    return RansacConfig(**params)


class TestHypothesisGeneration:
    """초기 가설 생성 테스트"""

    def test_minimal_samples_are_distinct(self):
        solver = FakeSolver()
        estimator = PreemptiveRansacEstimator(_small_config(num_hypotheses=200), solver=solver)

        estimator.generate_hypotheses(_indexed_correspondences(5), calibration=None)

        assert len(solver.minimal_samples) == 200
        for sample in solver.minimal_samples:
            assert len(sample) == 3
            assert len(set(sample[:, 0].tolist())) == 3

    def test_one_hypothesis_per_sample(self):
        solver = FakeSolver(solutions_per_sample=4)
        estimator = PreemptiveRansacEstimator(_small_config(num_hypotheses=10), solver=solver)

        pool = estimator.generate_hypotheses(_indexed_correspondences(), calibration=None)

        assert len(pool) == 10
        assert len(solver.minimal_samples) == 10

    def test_first_candidate_is_kept(self):
        first = Pose(np.eye(3), [1.0, 0.0, 0.0])
        second = Pose(np.eye(3), [2.0, 0.0, 0.0])

        class TwoSolutionSolver(FakeSolver):
            def solve_minimal(self, image_points, world_points, calibration):
                return [first, second]

        estimator = PreemptiveRansacEstimator(_small_config(num_hypotheses=6), solver=TwoSolutionSolver())

        pool = estimator.generate_hypotheses(_indexed_correspondences(), calibration=None)

        assert len(pool) == 6
        assert all(h.pose is first for h in pool)

    def test_stops_at_sampling_cap(self):
        solver = FailingSolver()
        estimator = PreemptiveRansacEstimator(
            _small_config(num_hypotheses=10, max_sampling_iterations=37), solver=solver
        )

        pool = estimator.generate_hypotheses(_indexed_correspondences(), calibration=None)

        assert len(pool) == 0
        assert len(solver.minimal_samples) == 37


class TestTournament:
    """토너먼트 라운드 테스트"""

    @pytest.mark.parametrize("num_hypotheses", [1, 2, 3, 5, 17, 100, 1024])
    def test_terminates_with_single_hypothesis(self, num_hypotheses):
        estimator = PreemptiveRansacEstimator(
            _small_config(num_hypotheses=num_hypotheses), solver=FakeSolver()
        )

        estimate = estimator.estimate(_indexed_correspondences(), calibration=None)

        assert estimate.success
        assert estimate.num_hypotheses == num_hypotheses
        assert estimate.num_rounds <= math.ceil(math.log2(num_hypotheses))
        if estimator.rounds:
            assert estimator.rounds[-1].pool_size_after == 1

    def test_pool_halves_each_round(self):
        estimator = PreemptiveRansacEstimator(_small_config(num_hypotheses=13), solver=FakeSolver())
        estimator.estimate(_indexed_correspondences(), calibration=None)

        sizes = [(r.pool_size_before, r.pool_size_after) for r in estimator.rounds]
        assert sizes == [(13, 6), (6, 3), (3, 1)]

    def test_block_shared_within_round(self):
        solver = FakeSolver()
        estimator = PreemptiveRansacEstimator(
            _small_config(num_hypotheses=8, block_size=25), solver=solver
        )
        corr = _indexed_correspondences(1000)
        pool = estimator.generate_hypotheses(corr, calibration=None)

        estimator.run_round(pool, corr, calibration=None)

        assert len(solver.scored_blocks) == 8
        for block in solver.scored_blocks[1:]:
            np.testing.assert_array_equal(block, solver.scored_blocks[0])
        assert len(solver.scored_blocks[0]) == 25

    def test_loss_is_monotonic(self):
        estimator = PreemptiveRansacEstimator(_small_config(num_hypotheses=64), solver=FakeSolver())
        corr = _indexed_correspondences()
        pool = estimator.generate_hypotheses(corr, calibration=None)

        previous = {id(h): h.loss for h in pool}
        while len(pool) > 1:
            estimator.run_round(pool, corr, calibration=None)
            for h in pool:
                assert h.loss >= previous[id(h)]
            previous = {id(h): h.loss for h in pool}

    def test_empty_pool_is_failure(self):
        estimator = PreemptiveRansacEstimator(_small_config(max_sampling_iterations=10), solver=FailingSolver())

        estimate = estimator.estimate(_indexed_correspondences(), calibration=None)

        assert not estimate.success
        assert estimate.status == EstimationStatus.EMPTY_HYPOTHESIS_POOL
        assert estimate.world_from_camera is None

    def test_too_few_correspondences(self):
        estimator = PreemptiveRansacEstimator(_small_config(), solver=FakeSolver())

        estimate = estimator.estimate(_indexed_correspondences(2), calibration=None)

        assert estimate.status == EstimationStatus.INSUFFICIENT_CORRESPONDENCES


class TestEndToEnd:
    """합성 장면 통합 테스트"""

    def test_recovers_pose_with_outliers(self, make_scene, calibration):
        scene = make_scene(num_points=600, outlier_ratio=0.3, seed=0)
        config = RansacConfig(num_hypotheses=256, block_size=300, seed=7)

        estimate = PreemptiveRansacEstimator(config).estimate(scene.correspondences, calibration)

        assert estimate.success
        angle, dist = pose_distance(estimate.world_from_camera, scene.world_from_camera)
        assert angle < 1.0
        assert dist < 0.05

    def test_recovers_pose_with_default_parameters(self, make_scene, calibration):
        scene = make_scene(num_points=600, outlier_ratio=0.3, seed=11)
        corr = scene.correspondences

        estimate = preemptive_ransac(
            corr.image_points, corr.world_points, calibration, config=RansacConfig(seed=3)
        )

        assert estimate.success
        assert estimate.num_rounds <= 10
        angle, dist = pose_distance(estimate.world_from_camera, scene.world_from_camera)
        assert angle < 1.0
        assert dist < 0.05

    def test_result_is_world_from_camera(self, make_scene, calibration):
        scene = make_scene(num_points=600, outlier_ratio=0.3, seed=1)
        config = RansacConfig(num_hypotheses=128, block_size=300, seed=1)

        estimate = PreemptiveRansacEstimator(config).estimate(scene.correspondences, calibration)

        np.testing.assert_array_almost_equal(
            estimate.world_from_camera.matrix @ estimate.camera_from_world.matrix, np.eye(4)
        )

    def test_reproducible_with_seed(self, make_scene, calibration):
        scene = make_scene(num_points=600, outlier_ratio=0.3, seed=2)
        config = RansacConfig(num_hypotheses=64, block_size=200)

        first = PreemptiveRansacEstimator(config, rng=np.random.default_rng(5)).estimate(
            scene.correspondences, calibration
        )
        second = PreemptiveRansacEstimator(config, rng=np.random.default_rng(5)).estimate(
            scene.correspondences, calibration
        )

        np.testing.assert_array_equal(first.world_from_camera.matrix, second.world_from_camera.matrix)
        assert first.final_loss == second.final_loss


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
