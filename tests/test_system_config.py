"""
시스템 설정 단위 테스트
"""

import numpy as np
import pytest
import yaml

from ransac_pose.config.system_config import (
    SystemConfig,
    CameraConfig,
    RansacConfig,
    SingleShotConfig,
    load_config,
    create_default_config
)


class TestDefaults:
    """기본값 테스트"""

    def test_ransac_defaults(self):
        config = RansacConfig()
        assert config.inlier_threshold == 8.0
        assert config.block_size == 500
        assert config.num_hypotheses == 1024
        assert config.max_sampling_iterations == 2048
        assert config.min_refine_inliers == 4
        assert config.seed is None

    def test_single_shot_defaults(self):
        config = SingleShotConfig()
        assert config.max_iterations == 1000
        assert config.reprojection_error == 8.0
        assert config.confidence == 0.99
        assert config.diagnostic_error == 10.0

    def test_system_defaults(self):
        config = SystemConfig()
        assert config.method == "preemptive"
        assert config.output.output_format == "yaml"

    def test_camera_matrix(self):
        camera = CameraConfig(fx=500.0, fy=510.0, cx=320.0, cy=240.0)
        np.testing.assert_array_equal(camera.camera_matrix, [[500, 0, 320], [0, 510, 240], [0, 0, 1]])


class TestValidation:
    """설정 검증 테스트"""

    @pytest.mark.parametrize("kwargs", [
        {'num_hypotheses': 0},
        {'block_size': 0},
        {'max_sampling_iterations': 0},
        {'inlier_threshold': 0.0},
    ])
    def test_invalid_ransac_values(self, kwargs):
        with pytest.raises(ValueError):
            RansacConfig(**kwargs)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            SystemConfig.from_dict({'method': 'lmeds'})

    def test_unknown_output_format(self):
        with pytest.raises(ValueError):
            SystemConfig.from_dict({'output': {'output_format': 'xml'}})

    def test_unknown_key(self):
        with pytest.raises(TypeError):
            SystemConfig.from_dict({'ransac': {'num_rounds': 3}})

    def test_null_section_uses_defaults(self):
        config = SystemConfig.from_dict({'ransac': None})
        assert config.ransac == RansacConfig()


class TestLoadSave:
    """YAML 저장/로드 테스트"""

    def test_from_dict(self):
        config = SystemConfig.from_dict({
            'camera': {'fx': 600.0, 'dist_coeffs': [0.1, 0.0, 0.0, 0.0]},
            'ransac': {'block_size': 100, 'seed': 3},
            'method': 'single_shot'
        })
        assert config.camera.fx == 600.0
        assert config.camera.fy == CameraConfig().fy
        assert config.ransac.block_size == 100
        assert config.ransac.seed == 3
        assert config.method == 'single_shot'

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = SystemConfig()
        config.ransac.num_hypotheses = 256
        config.camera.dist_coeffs = [0.01, -0.02, 0.0, 0.0]
        config.save(str(path))

        loaded = load_config(str(path))

        assert loaded.ransac.num_hypotheses == 256
        assert loaded.camera.dist_coeffs == [0.01, -0.02, 0.0, 0.0]
        assert loaded.single_shot == config.single_shot

    def test_saved_file_is_plain_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        create_default_config(str(path))

        with open(path) as f:
            data = yaml.safe_load(f)

        assert set(data) == {'camera', 'ransac', 'single_shot', 'output', 'method'}
        assert set(data['camera']) == {'fx', 'fy', 'cx', 'cy', 'dist_coeffs'}
        assert set(data['output']) == {'output_format', 'log_level'}

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "missing.yaml"))
        assert config == SystemConfig()

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == SystemConfig()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
