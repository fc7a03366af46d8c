#!/usr/bin/env python3
"""
replay.py - 녹화 세션 오프라인 재생

녹화된 CSV를 가상 시계 위에서 세션에 틱 단위로 흘려보내고,
액추에이터 명령과 틱 결과를 기록합니다.

사용법:
    posture_replay --recording session.csv --output decisions.csv
    posture_replay --recording session.csv --config posture.yaml --tick_ms 100
"""

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from .config.system_config import SystemConfig, load_config
from .control.debounce_timer import VirtualScheduler
from .gateway import RecordingActuatorGateway, RecordingTelemetryGateway
from .input.data_loader import RecordingLoader
from .main import PostureSession

logger = logging.getLogger(__name__)


def setup_logging(config: SystemConfig):
    logging.basicConfig(
        level=getattr(logging, config.logging.log_level.upper(), logging.INFO),
        format=config.logging.log_format
    )


def replay(
    loader: RecordingLoader,
    config: SystemConfig,
    tick_ms: Optional[float] = None
) -> pd.DataFrame:
    """
    녹화 재생

    Args:
        loader: 녹화 로더
        config: 시스템 설정
        tick_ms: 틱 간격 (ms), None이면 t 컬럼 또는 filter.dt 사용

    Returns:
        틱별 결과 DataFrame
    """
    scheduler = VirtualScheduler()
    actuator = RecordingActuatorGateway()
    telemetry = RecordingTelemetryGateway()
    session = PostureSession("replay", actuator, telemetry, config=config, scheduler=scheduler)

    timestamps = loader.timestamps if tick_ms is None else None
    default_step = (tick_ms / 1000.0) if tick_ms is not None else config.filter.dt

    rows: List[dict] = []

    for idx, tick in enumerate(loader):
        # 틱 사이에 발화한 타이머 명령도 이번 틱 행에 기록
        sent_before = len(actuator.sent)
        if idx > 0:
            step = default_step
            if timestamps is not None:
                step = max(0.0, float(timestamps[idx] - timestamps[idx - 1]))
            scheduler.advance(step)

        record = session.process_tick(tick)
        commands = actuator.sent[sent_before:]

        row = {'tick': idx, 'time': scheduler.now(), 'state': session.state.value}
        if record is not None:
            row.update(record.to_dict(
                format_angles=config.telemetry.format_angles,
                precision=config.telemetry.precision
            ))
        row['commands'] = '; '.join(str(c) for c in commands) if commands else ''
        rows.append(row)

    # 마지막 틱 이후 대기 중인 확인 타이머 처리
    sent_before = len(actuator.sent)
    scheduler.advance(config.controller.debounce_delay_ms / 1000.0)
    for command in actuator.sent[sent_before:]:
        rows.append({'tick': None, 'time': scheduler.now(), 'state': session.state.value,
                     'commands': str(command)})

    session.close()

    logger.info(
        f"Replayed {len(loader)} ticks: {len(telemetry.records)} published, "
        f"{session.dropped_count} dropped, {len(actuator.sent)} actuator commands"
    )

    return pd.DataFrame(rows)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Replay a recorded posture session')

    parser.add_argument(
        '--recording',
        type=str,
        required=True,
        help='녹화 CSV 경로'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='설정 파일 경로'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='결과 CSV 경로 (없으면 저장 안함)'
    )
    parser.add_argument(
        '--tick_ms',
        type=float,
        default=None,
        help='틱 간격 (ms), 기본값은 녹화의 t 컬럼'
    )

    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else SystemConfig()
    setup_logging(config)

    logger.info(f"Loading recording from {args.recording}")
    loader = RecordingLoader(args.recording)

    results = replay(loader, config, tick_ms=args.tick_ms)

    if args.output:
        results.to_csv(args.output, index=False)
        logger.info(f"Results saved to {args.output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
