"""
config 모듈 - 설정 관리
"""

from .system_config import (
    SystemConfig,
    CameraConfig,
    RansacConfig,
    SingleShotConfig,
    OutputConfig,
    ESTIMATION_METHODS,
    load_config,
    create_default_config
)

__all__ = [
    'SystemConfig',
    'CameraConfig',
    'RansacConfig',
    'SingleShotConfig',
    'OutputConfig',
    'ESTIMATION_METHODS',
    'load_config',
    'create_default_config',
]
