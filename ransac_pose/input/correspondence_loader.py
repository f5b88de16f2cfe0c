"""
correspondence_loader.py - 2D-3D 대응점 로더

CSV 파일 (열: u, v, x, y, z) 에서 대응점을 로드합니다.
단일 파일 또는 CSV 파일이 들어 있는 폴더 (쿼리 이미지당 파일 1개) 를 지원합니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
import pandas as pd
from typing import Iterator, List
from pathlib import Path
import logging

from ..pose.pnp_solver import CorrespondenceSet

logger = logging.getLogger(__name__)

IMAGE_COLUMNS = ['u', 'v']
WORLD_COLUMNS = ['x', 'y', 'z']


def read_correspondences(csv_path: str) -> CorrespondenceSet:
    """
    CSV 파일 하나에서 대응점 로드

    NaN 이 포함된 행은 제거합니다.

    Args:
        csv_path: CSV 파일 경로

    Returns:
        CorrespondenceSet
    """
    df = pd.read_csv(csv_path)

    missing = [c for c in IMAGE_COLUMNS + WORLD_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing} in {csv_path}")

    df = df[IMAGE_COLUMNS + WORLD_COLUMNS]
    num_rows = len(df)
    df = df.dropna()
    if len(df) < num_rows:
        logger.warning(f"Dropped {num_rows - len(df)} rows with NaN from {csv_path}")

    return CorrespondenceSet(
        image_points=df[IMAGE_COLUMNS].to_numpy(dtype=np.float64),
        world_points=df[WORLD_COLUMNS].to_numpy(dtype=np.float64)
    )


def write_correspondences(correspondences: CorrespondenceSet, csv_path: str):
    """대응점을 CSV 파일로 저장"""
    df = pd.DataFrame(
        np.hstack([correspondences.image_points, correspondences.world_points]),
        columns=IMAGE_COLUMNS + WORLD_COLUMNS
    )
    df.to_csv(csv_path, index=False)


class CorrespondenceLoader:
    """
    대응점 CSV 로더

    Example:
        >>> loader = CorrespondenceLoader("./queries")
        >>> for correspondences in loader:
        ...     estimate = estimator.estimate(correspondences, calibration)
    """

    def __init__(self, path: str):
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Correspondence path not found: {path}")

        self.files = self._list_files()
        logger.info(f"CorrespondenceLoader: {len(self.files)} file(s) from {self.path}")

    def _list_files(self) -> List[Path]:
        """CSV 파일 목록"""
        if self.path.is_file():
            return [self.path]

        files = sorted(f for f in self.path.iterdir() if f.suffix.lower() == '.csv')
        if len(files) == 0:
            raise ValueError(f"No CSV files found in {self.path}")
        return files

    def __len__(self) -> int:
        return len(self.files)

    def __getitem__(self, idx: int) -> CorrespondenceSet:
        return self.load(idx)

    def __iter__(self) -> Iterator[CorrespondenceSet]:
        for idx in range(len(self.files)):
            yield self.load(idx)

    def load(self, idx: int = 0) -> CorrespondenceSet:
        """idx 번째 파일 로드"""
        if idx < 0 or idx >= len(self.files):
            raise IndexError(f"File index {idx} out of range")

        correspondences = read_correspondences(str(self.files[idx]))
        logger.debug(f"Loaded {len(correspondences)} correspondences from {self.files[idx].name}")
        return correspondences
