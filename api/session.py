"""
api/session.py — 멀티유저 인메모리 세션 (쿠키 기반)

각 브라우저에 UUID 세션 ID를 발급하고, 세션별로 진행 중인 시험 컨트롤러를 보관.
TTL(기본 1시간) 경과 시 자동 만료되며, 만료된 세션의 시험은 제출 없이 폐기된다.
단, 시험이 진행 중인 세션은 시험이 끝날 때까지 만료되지 않는다.
"""

import threading
import time
import uuid
from typing import Any

import config

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}

SESSION_TTL = config.SESSION_TTL


def _new_state() -> dict[str, Any]:
    return {
        "controller": None,
    }


def _discard(state: dict[str, Any]) -> None:
    controller = state.get("controller")
    if controller is not None:
        controller.abandon()


def _is_stale(sid: str, now: float) -> bool:
    if now - _timestamps[sid] <= SESSION_TTL:
        return False
    controller = _sessions[sid].get("controller")
    return controller is None or not controller.in_progress


def create_session() -> str:
    """새 세션을 생성하고 세션 ID를 반환."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """세션 ID로 세션 데이터를 가져옴. 만료되었거나 없으면 None."""
    with _lock:
        if sid not in _sessions:
            return None
        if _is_stale(sid, time.time()):
            _discard(_sessions.pop(sid))
            del _timestamps[sid]
            return None
        _timestamps[sid] = time.time()  # 접근 시 갱신
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    """세션에서 값 읽기."""
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    """세션에 값 쓰기."""
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def reset(sid: str) -> None:
    """세션 초기화. 진행 중인 시험은 제출 없이 폐기."""
    with _lock:
        if sid in _sessions:
            _discard(_sessions[sid])
            _sessions[sid] = _new_state()
            _timestamps[sid] = time.time()


def cleanup_expired() -> int:
    """만료된 세션을 정리. 제거된 수 반환."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [sid for sid in _timestamps if _is_stale(sid, now)]
        for sid in expired:
            _discard(_sessions.pop(sid))
            del _timestamps[sid]
            removed += 1
    return removed


def clear_all() -> None:
    """모든 세션 폐기 (앱 종료 시)."""
    with _lock:
        for state in _sessions.values():
            _discard(state)
        _sessions.clear()
        _timestamps.clear()
