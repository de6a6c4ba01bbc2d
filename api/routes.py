"""
api/routes.py — FastAPI 엔드포인트
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel

import api.session as session

# Core Logic Imports
from cat_exam.models.question_model import Question
from cat_exam.services.collaborators import load_exam_questions, resolve_duration_seconds
from cat_exam.services.errors import (
    BackendUnavailable, ExamNotInProgress, InvalidSelection, NoQuestionsAvailable,
)
from cat_exam.services.exam_controller import ExamController
from cat_exam.services.exam_service import (
    build_review, calculate_category_scores, format_remaining, get_incorrect_questions,
    is_time_warning,
)

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class SelectAnswerBody(BaseModel):
    question_id: int
    option_key: str

class FlagBody(BaseModel):
    question_id: int

class NavigateBody(BaseModel):
    index: Optional[int] = None
    delta: Optional[int] = None


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _question_to_dict(q: Question) -> dict:
    """진행 중 화면용. 정답과 해설은 포함하지 않는다."""
    return {
        "id": q.id,
        "text": q.text,
        "image_url": q.image_url,
        "category": q.category,
        "options": [opt.model_dump() for opt in q.options],
    }


def _session_id(request: Request) -> str:
    return request.state.session_id


async def current_user(request: Request, authorization: Optional[str] = Header(None)) -> str:
    """Authorization: Bearer <token> → 사용자 id. 없거나 무효하면 401."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="로그인이 필요합니다.")
    token = authorization[7:].strip()
    identity = request.app.state.backend
    try:
        user_id = await asyncio.to_thread(identity.user_id_for, token)
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not user_id:
        raise HTTPException(status_code=401, detail="로그인 정보가 올바르지 않습니다.")
    return user_id


def _controller(request: Request, user_id: str) -> ExamController:
    controller: ExamController | None = session.get(_session_id(request), "controller")
    if controller is None or controller.user_id != user_id:
        raise HTTPException(status_code=404, detail="시험 세션이 없습니다.")
    return controller


def _snapshot(controller: ExamController) -> dict:
    s = controller.session
    return {
        "course_id": controller.course_id,
        "phase": s.phase.value,
        "current_index": s.current_index,
        "remaining_seconds": s.remaining_seconds,
        "remaining_display": format_remaining(s.remaining_seconds),
        "time_warning": is_time_warning(s.remaining_seconds),
        "total": s.total,
        "answered_count": len(s.answers),
        "answers": {str(k): v for k, v in s.answers.items()},
        "flagged_ids": [qid for qid, flagged in s.flags.items() if flagged],
        "question_ids": [q.id for q in s.questions],
    }


def _result_to_dict(controller: ExamController) -> dict:
    result = controller.result
    s = controller.session
    return {
        **result.model_dump(mode="json"),
        "total": s.total,
        "max_score": controller.policy.max_score(s.total),
        "scoring_policy": controller.policy.kind,
        "finished_automatically": controller.finished_automatically,
        "submission_status": controller.submission_status.value,
        "submission_error": controller.submission_error,
    }


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/api/exams/{course_id}/start")
async def start_exam(course_id: int, request: Request, user_id: str = Depends(current_user)):
    backend = request.app.state.backend
    try:
        course = await asyncio.to_thread(backend.fetch_course, course_id)
        if course is None:
            raise HTTPException(status_code=404, detail="과목을 찾을 수 없습니다.")
        questions = await asyncio.to_thread(
            load_exam_questions, backend, backend, course_id, user_id,
            request.app.state.trial_limit,
        )
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    controller = request.app.state.controller_factory(course_id, user_id)
    try:
        controller.start(questions, resolve_duration_seconds(course))
    except NoQuestionsAvailable as e:
        raise HTTPException(status_code=404, detail=str(e))

    # 재시험은 항상 새 세션 — 이전 컨트롤러는 폐기
    sid = _session_id(request)
    previous: ExamController | None = session.get(sid, "controller")
    if previous is not None:
        previous.abandon()
    session.put(sid, "controller", controller)

    return {"ok": True, "title": course.title, **_snapshot(controller)}


@router.get("/api/exam")
async def get_exam_state(request: Request, user_id: str = Depends(current_user)):
    return _snapshot(_controller(request, user_id))


@router.get("/api/exam/question/{index}")
async def get_question(index: int, request: Request, user_id: str = Depends(current_user)):
    controller = _controller(request, user_id)
    s = controller.session
    if not (0 <= index < s.total):
        raise HTTPException(status_code=404, detail="문제를 찾을 수 없습니다.")

    q = s.questions[index]
    d = _question_to_dict(q)
    d.update({
        "index": index,
        "total": s.total,
        "saved_answer": s.answers.get(q.id),
        "flagged": s.flags.get(q.id, False),
    })
    return d


@router.post("/api/exam/answer")
async def select_answer(body: SelectAnswerBody, request: Request, user_id: str = Depends(current_user)):
    controller = _controller(request, user_id)
    try:
        controller.select_answer(body.question_id, body.option_key)
    except ExamNotInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidSelection as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ok": True, "answered_count": len(controller.session.answers)}


@router.post("/api/exam/flag")
async def toggle_flag(body: FlagBody, request: Request, user_id: str = Depends(current_user)):
    controller = _controller(request, user_id)
    try:
        flagged = controller.toggle_flag(body.question_id)
    except ExamNotInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidSelection as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ok": True, "question_id": body.question_id, "flagged": flagged}


@router.post("/api/exam/navigate")
async def navigate(body: NavigateBody, request: Request, user_id: str = Depends(current_user)):
    controller = _controller(request, user_id)
    try:
        idx = controller.navigate(index=body.index, delta=body.delta)
    except ExamNotInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ok": True, "index": idx}


@router.post("/api/exam/finish")
async def finish_exam(request: Request, user_id: str = Depends(current_user)):
    controller = _controller(request, user_id)
    created = controller.finish(auto=False)
    if controller.result is None:
        raise HTTPException(status_code=409, detail="시작되지 않은 시험입니다.")
    return {"ok": True, "already_finished": created is None, **_result_to_dict(controller)}


@router.get("/api/exam/result")
async def get_result(request: Request, user_id: str = Depends(current_user)):
    controller = _controller(request, user_id)
    if controller.result is None:
        raise HTTPException(status_code=409, detail="시험이 아직 제출되지 않았습니다.")

    s = controller.session
    return {
        **_result_to_dict(controller),
        "category_scores": calculate_category_scores(s.questions, s.answers),
        "review": build_review(s.questions, s.answers),
        # 오답 노트 (미응답 포함)
        "incorrect_question_ids": [q.id for q in get_incorrect_questions(s.questions, s.answers)],
    }


@router.delete("/api/exam")
async def abandon_exam(request: Request, user_id: str = Depends(current_user)):
    _controller(request, user_id)
    session.reset(_session_id(request))
    return {"ok": True}


@router.get("/api/history")
async def get_history(request: Request, user_id: str = Depends(current_user)):
    backend = request.app.state.backend
    try:
        results = await asyncio.to_thread(backend.fetch_results, user_id)
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"results": [r.model_dump(mode="json") for r in results]}
