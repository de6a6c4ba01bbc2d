"""
services/ticker.py

시험 타이머의 1초 반복 틱 발생기.
asyncio 이벤트 루프의 call_later로 예약하므로 별도 스레드가 없다.
"""

import asyncio
import logging
from typing import Callable, Optional

import config

logger = logging.getLogger(__name__)


class AsyncioTicker:
    """
    interval초마다 callback을 호출한다.
    stop() 이후에는 이미 예약된 호출도 실행되지 않는다.
    """

    def __init__(
        self,
        interval: float = config.TICK_INTERVAL_SECONDS,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.interval = interval
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        if self.running:
            raise RuntimeError("타이머가 이미 실행 중입니다.")
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._callback = callback
        self._schedule()

    def stop(self) -> None:
        self._callback = None
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        callback = self._callback
        if callback is None:
            return
        # 다음 틱을 먼저 예약해야 콜백 안에서 stop()해도 취소된다
        self._schedule()
        callback()
