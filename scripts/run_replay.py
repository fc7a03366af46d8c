#!/usr/bin/env python3
"""
run_replay.py - 녹화 세션 재생 스크립트

설치 없이 저장소에서 바로 녹화 CSV를 재생합니다.

사용법:
    python scripts/run_replay.py \
        --recording /path/to/session.csv \
        --output decisions.csv

    # 설정 파일 지정
    python scripts/run_replay.py \
        --recording /path/to/session.csv \
        --config posture.yaml \
        --tick_ms 100

Author: PostureCore Team
"""

import sys
from pathlib import Path

# posture_core 모듈 경로 추가
sys.path.insert(0, str(Path(__file__).parents[1]))

from posture_core.replay import main


if __name__ == '__main__':
    sys.exit(main())
