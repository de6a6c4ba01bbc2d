"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + 협력자 주입
"""

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

import config
from api.routes import router
from api.sample_questions import (
    SAMPLE_COURSES, SAMPLE_PREMIUM_USERS, SAMPLE_QUESTIONS, SAMPLE_TOKENS,
)
import api.session as session
from cat_exam.services.exam_controller import ExamController
from cat_exam.services.exam_service import ScoringPolicy
from cat_exam.services.memory_backend import InMemoryBackend
from cat_exam.services.ticker import AsyncioTicker

SESSION_COOKIE = "cat_session"

logger = logging.getLogger(__name__)


def _default_backend():
    if config.BACKEND_URL:
        from cat_exam.services.supabase_backend import SupabaseBackend
        return SupabaseBackend()
    logger.info("BACKEND_URL 미설정 — 인메모리 샘플 백엔드 사용")
    return InMemoryBackend(
        courses=SAMPLE_COURSES,
        questions=SAMPLE_QUESTIONS,
        premium_users=SAMPLE_PREMIUM_USERS,
        tokens=SAMPLE_TOKENS,
    )


def _dispatch_in_executor(fn: Callable[[], None]) -> None:
    """결과 저장을 스레드 풀에서 실행 (응답을 막지 않음)."""
    future = asyncio.get_running_loop().run_in_executor(None, fn)

    def _log_failure(fut):
        if not fut.cancelled() and fut.exception() is not None:
            logger.error(f"결과 저장 작업 오류: {fut.exception()!r}")

    future.add_done_callback(_log_failure)


def create_app(
    backend=None,
    policy: Optional[ScoringPolicy] = None,
    dispatch: Optional[Callable[[Callable[[], None]], None]] = None,
    tick_interval: float = config.TICK_INTERVAL_SECONDS,
    trial_limit: int = config.TRIAL_QUESTION_LIMIT,
) -> FastAPI:

    # 만료 세션 주기적 정리 (5분마다)
    async def _cleanup_loop():
        while True:
            await asyncio.sleep(config.SESSION_CLEANUP_INTERVAL)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"만료 세션 {removed}개 정리")

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(_cleanup_loop())
        try:
            yield
        finally:
            task.cancel()
            session.clear_all()
            # httpx 커넥션 풀 반환
            close = getattr(app.state.backend, "close", None)
            if callable(close):
                close()

    app = FastAPI(title="CAT Exam", docs_url=None, redoc_url=None, lifespan=lifespan)

    app.state.backend = backend if backend is not None else _default_backend()
    app.state.trial_limit = trial_limit
    scoring = policy or ScoringPolicy.from_config()

    def controller_factory(course_id: int, user_id: str) -> ExamController:
        return ExamController(
            course_id,
            user_id,
            result_sink=app.state.backend,
            policy=scoring,
            ticker=AsyncioTicker(interval=tick_interval),
            dispatch=dispatch or _dispatch_in_executor,
        )

    app.state.controller_factory = controller_factory

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=session.SESSION_TTL,
        )
        return response

    app.include_router(router)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    return app
