"""
debounce_timer.py - 취소 가능한 단발성 확인 타이머

- 인스턴스당 대기 중인 데드라인은 최대 1개 (재무장 시 이전 타이머 취소)
- 취소는 멱등 (이미 취소/발화된 타이머 취소는 조용히 무시)
- 발화 시 핸들이 여전히 현재 타이머인지 재검증, 아니면 무시

스케줄러:
- ThreadingScheduler: threading.Timer 기반 실시간 스케줄러 (기본값)
- VirtualScheduler: 명시적으로 진행시키는 가상 시계 (오프라인 재생, 테스트)

Version: 1.0
Author: PostureCore Team
"""

import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional, Tuple
import logging

from ..exceptions import StaleTimerFired

logger = logging.getLogger(__name__)


class ThreadingScheduler:
    """threading.Timer 기반 실시간 스케줄러"""

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer


class _VirtualCall:
    """VirtualScheduler 예약 항목"""

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class VirtualScheduler:
    """
    가상 시계 스케줄러

    advance()를 호출할 때만 시간이 흐르며, 만기된 콜백을
    데드라인 순서대로 같은 스레드에서 실행합니다.

    Example:
        >>> scheduler = VirtualScheduler()
        >>> scheduler.call_later(5.0, on_fire)
        >>> scheduler.advance(4.999)   # 발화 안 함
        >>> scheduler.advance(0.001)   # 발화
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, _VirtualCall]] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> _VirtualCall:
        call = _VirtualCall(self._now + delay_s, callback)
        with self._lock:
            heapq.heappush(self._queue, (call.due, next(self._seq), call))
        return call

    def advance(self, seconds: float) -> int:
        """
        가상 시간을 진행하고 만기된 콜백 실행

        Returns:
            실행된 콜백 수
        """
        if seconds < 0:
            raise ValueError(f"Cannot move virtual time backwards: {seconds}")

        target = self._now + seconds
        fired = 0

        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                due, _, call = heapq.heappop(self._queue)

            if call.cancelled:
                continue

            self._now = due
            call.callback()
            fired += 1

        self._now = target
        return fired

    @property
    def pending(self) -> int:
        """취소되지 않은 대기 콜백 수"""
        with self._lock:
            return sum(1 for _, _, call in self._queue if not call.cancelled)


class TimerHandle:
    """
    무장된 타이머 하나에 대한 핸들

    Attributes:
        token: 무장 순번 (인스턴스 내 단조 증가)
        deadline: 발화 예정 시각 (스케줄러 시계 기준, 초)
    """

    def __init__(self, token: int, deadline: float):
        self.token = token
        self.deadline = deadline
        self._call = None
        self._cancelled = False
        self._fired = False

    def cancel(self):
        if self._cancelled or self._fired:
            return
        self._cancelled = True
        if self._call is not None:
            self._call.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    def __repr__(self) -> str:
        status = "cancelled" if self._cancelled else "fired" if self._fired else "armed"
        return f"TimerHandle(token={self.token}, deadline={self.deadline:.3f}, {status})"


class DebounceTimer:
    """
    확인 지연 타이머 (Idle / Armed(deadline))

    Example:
        >>> timer = DebounceTimer(delay_ms=5000)
        >>> handle = timer.arm(on_confirmed)
        >>> timer.cancel()
    """

    def __init__(self, delay_ms: float, scheduler=None):
        """
        Args:
            delay_ms: 확인 지연 (ms)
            scheduler: now()/call_later()를 제공하는 스케줄러
        """
        self.delay_ms = delay_ms
        self.scheduler = scheduler or ThreadingScheduler()

        self._lock = threading.Lock()
        self._current: Optional[TimerHandle] = None
        self._tokens = itertools.count(1)

    def arm(self, callback: Callable[[TimerHandle], None]) -> TimerHandle:
        """
        타이머 무장 (대기 중인 타이머가 있으면 먼저 취소)

        Args:
            callback: 발화 시 호출, 인자는 발화한 핸들

        Returns:
            TimerHandle
        """
        with self._lock:
            if self._current is not None:
                self._current.cancel()

            delay_s = self.delay_ms / 1000.0
            handle = TimerHandle(next(self._tokens), self.scheduler.now() + delay_s)
            self._current = handle

        handle._call = self.scheduler.call_later(delay_s, lambda: self._fire(handle, callback))
        return handle

    def cancel(self):
        """대기 중인 타이머 취소 (멱등)"""
        with self._lock:
            if self._current is not None:
                self._current.cancel()
                self._current = None

    def _fire(self, handle: TimerHandle, callback: Callable[[TimerHandle], None]):
        try:
            with self._lock:
                if handle is not self._current or not handle.active:
                    raise StaleTimerFired(f"Ignoring stale timer firing: {handle!r}")
                handle._fired = True
                self._current = None
        except StaleTimerFired as e:
            logger.debug(str(e))
            return

        callback(handle)

    @property
    def is_armed(self) -> bool:
        with self._lock:
            return self._current is not None and self._current.active

    @property
    def current(self) -> Optional[TimerHandle]:
        with self._lock:
            return self._current

    @property
    def deadline(self) -> Optional[float]:
        with self._lock:
            return self._current.deadline if self._current is not None else None
