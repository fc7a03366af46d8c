"""
exceptions.py - 코어 예외 정의

입력 검증 예외는 해당 틱의 계산만 중단시키고,
세션의 이전 상태는 그대로 유지됩니다.
"""


class PostureCoreError(Exception):
    """posture_core 예외 기본 클래스"""


class ShapeMismatchError(PostureCoreError, ValueError):
    """샘플 배열 형태 불일치 (N x 3 아님, gyro/acc 형태 다름)"""


class DegenerateInputError(PostureCoreError, ValueError):
    """크기가 0이거나 유한하지 않은 입력 벡터"""


class InvalidConfigError(PostureCoreError, ValueError):
    """범위를 벗어난 설정값 (dt, gain, 임계값 등)"""


class AngleRangeError(PostureCoreError, ValueError):
    """쿼터니언 변환 입력 각도가 [-2pi, 2pi] 범위 밖"""


class StaleTimerFired(PostureCoreError):
    """
    이미 취소되었거나 대체된 타이머의 발화

    내부 전용: 발생 지점에서 항상 처리되며 외부로 전파되지 않습니다.
    """


# 틱 단위로 복구 가능한 입력 검증 예외
TICK_VALIDATION_ERRORS = (
    ShapeMismatchError,
    DegenerateInputError,
    InvalidConfigError,
    AngleRangeError,
)
