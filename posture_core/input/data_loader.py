"""
data_loader.py - 녹화된 세션 로더

틱 단위로 기록된 CSV 파일을 읽어 TickRecord로 재생하거나,
세그먼트별 (N, 3) 배열로 꺼내 오프라인 다중 행 추정에 사용합니다.

CSV 컬럼:
    t                          틱 시각 (초, 선택)
    gyro1_x, gyro1_y, gyro1_z  세그먼트 1 자이로
    acc1_x, acc1_y, acc1_z     세그먼트 1 가속도
    gyro2_*, acc2_*            세그먼트 2
    rate_1, rate_2             스칼라 각속도 (Variant B)
    pump_power, solenoid_power 수동 요청 (빈 칸 = 요청 없음)
    cflex, tflex, lflex        굽힘 센서

Version: 1.0
Author: PostureCore Team
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Iterator, Optional, Tuple
import logging

from ..messages import FlexReadings, TickRecord

logger = logging.getLogger(__name__)


AXES = ('x', 'y', 'z')


def _columns(prefix: str) -> list:
    return [f"{prefix}_{axis}" for axis in AXES]


def _cell(row: pd.Series, column: str):
    """결측값은 None으로"""
    if column not in row.index:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    return value.item() if isinstance(value, np.generic) else value


class RecordingLoader:
    """
    세션 녹화 CSV 로더

    Example:
        >>> loader = RecordingLoader("session_20240301.csv")
        >>> for tick in loader:
        ...     session.process_tick(tick)
        >>> gyro, acc = loader.segment_batches(1)
    """

    def __init__(self, path: str):
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Recording not found: {path}")

        self.df = pd.read_csv(self.path)

        self.has_imu = all(
            set(_columns(f"{kind}{segment}")).issubset(self.df.columns)
            for kind in ('gyro', 'acc') for segment in (1, 2)
        )
        self.has_rates = {'rate_1', 'rate_2'}.issubset(self.df.columns)

        if not self.has_imu and not self.has_rates:
            raise ValueError(
                f"Recording {path} has neither gyro/acc columns nor rate_1/rate_2 columns"
            )

        logger.info(
            f"RecordingLoader: {len(self.df)} ticks, imu={self.has_imu}, rates={self.has_rates}"
        )

    def __len__(self) -> int:
        return len(self.df)

    def __getitem__(self, idx: int) -> TickRecord:
        return self.load_tick(idx)

    def __iter__(self) -> Iterator[TickRecord]:
        for idx in range(len(self.df)):
            yield self.load_tick(idx)

    def load_tick(self, idx: int) -> TickRecord:
        """틱 로드"""
        if idx < 0 or idx >= len(self.df):
            raise IndexError(f"Tick index {idx} out of range")

        row = self.df.iloc[idx]

        gyro_1 = acc_1 = gyro_2 = acc_2 = None
        if self.has_imu:
            gyro_1 = self._vector(row, 'gyro1')
            acc_1 = self._vector(row, 'acc1')
            gyro_2 = self._vector(row, 'gyro2')
            acc_2 = self._vector(row, 'acc2')

        pump = _cell(row, 'pump_power')
        solenoid = _cell(row, 'solenoid_power')

        return TickRecord(
            gyro_1=gyro_1,
            acc_1=acc_1,
            gyro_2=gyro_2,
            acc_2=acc_2,
            rate_1=_cell(row, 'rate_1'),
            rate_2=_cell(row, 'rate_2'),
            manual_pump=None if pump is None else bool(pump),
            manual_solenoid=None if solenoid is None else bool(solenoid),
            flex=FlexReadings(
                cervical=_cell(row, 'cflex'),
                thoracic=_cell(row, 'tflex'),
                lumbar=_cell(row, 'lflex')
            )
        )

    def _vector(self, row: pd.Series, prefix: str) -> np.ndarray:
        """(1, 3) 단일 행 배열"""
        return row[_columns(prefix)].to_numpy(dtype=np.float64).reshape(1, 3)

    def segment_batches(self, segment: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        세그먼트 전체 녹화를 (N, 3) 배열로 반환

        Args:
            segment: 1 또는 2

        Returns:
            (gyro, acc)
        """
        if segment not in (1, 2):
            raise ValueError(f"segment must be 1 or 2, got {segment}")
        if not self.has_imu:
            raise ValueError(f"Recording {self.path} has no gyro/acc columns")

        gyro = self.df[_columns(f"gyro{segment}")].to_numpy(dtype=np.float64)
        acc = self.df[_columns(f"acc{segment}")].to_numpy(dtype=np.float64)
        return gyro, acc

    @property
    def timestamps(self) -> Optional[np.ndarray]:
        """틱 시각 (t 컬럼이 없으면 None)"""
        if 't' not in self.df.columns:
            return None
        return self.df['t'].to_numpy(dtype=np.float64)
