"""
input 모듈 - 대응점 입력 처리
"""

from .correspondence_loader import (
    CorrespondenceLoader,
    read_correspondences,
    write_correspondences
)

__all__ = ['CorrespondenceLoader', 'read_correspondences', 'write_correspondences']
