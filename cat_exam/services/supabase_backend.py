"""
services/supabase_backend.py

호스팅 BaaS(PostgREST + GoTrue) REST API 기반 협력자 구현.
Public API:
  - SupabaseBackend.fetch_questions(course_id) -> List[Question]
  - SupabaseBackend.fetch_course(course_id)    -> Optional[Course]
  - SupabaseBackend.is_full_access(user_id)    -> bool
  - SupabaseBackend.submit_result(result)      -> None (실패 시 ResultSubmissionFailed)
  - SupabaseBackend.fetch_results(user_id)     -> List[ExamResult]
  - SupabaseBackend.user_id_for(access_token)  -> Optional[str]

테이블: courses, questions, profiles, exam_results
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

import config
from cat_exam.models.question_model import Course, Option, Question
from cat_exam.models.session_state import ExamResult
from cat_exam.services.errors import BackendUnavailable, ResultSubmissionFailed

logger = logging.getLogger(__name__)

PREMIUM_STATUS = "premium"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _row_to_question(row: Dict[str, Any]) -> Question:
    options = [
        Option(
            key=str(opt.get("id", "")),
            text=opt.get("text") or None,
            image_url=opt.get("image_url") or None,
        )
        for opt in row.get("options") or []
    ]
    return Question(
        id=row["id"],
        text=row.get("question_text") or "",
        image_url=row.get("image_url") or None,
        options=options,
        correct_option_key=row.get("correct_answer") or "",
        explanation=row.get("explanation") or None,
        category=row.get("category") or None,
    )


def _row_to_result(row: Dict[str, Any]) -> ExamResult:
    return ExamResult(
        course_id=row["course_id"],
        user_id=row["user_id"],
        score_value=row.get("score") or 0,
        correct_count=row.get("correct_answers") or 0,
        wrong_count=row.get("wrong_answers") or 0,
        empty_count=row.get("empty_answers") or 0,
        timestamp=_parse_timestamp(row.get("created_at")) or datetime.now(timezone.utc),
    )


class SupabaseBackend:
    """모든 협력자 인터페이스를 하나의 httpx.Client로 구현한다."""

    def __init__(
        self,
        base_url: str = config.BACKEND_URL,
        api_key: str = config.BACKEND_ANON_KEY,
        timeout: float = config.BACKEND_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("BACKEND_URL이 설정되지 않았습니다.")
        self._api_key = api_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    # ── 내부 요청 헬퍼 ──────────────────────────────────────────────────────

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            resp = self._client.get(f"/rest/v1/{table}", params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"{table} 조회 실패: {e}")
            raise BackendUnavailable(f"{table} 조회에 실패했습니다.") from e
        return resp.json()

    # ── 조회 ────────────────────────────────────────────────────────────────

    def fetch_questions(self, course_id: int) -> List[Question]:
        rows = self._select("questions", {
            "select": "*",
            "course_id": f"eq.{course_id}",
            "order": "id.asc",
        })
        questions: List[Question] = []
        for row in rows:
            try:
                questions.append(_row_to_question(row))
            except (ValidationError, KeyError) as e:
                logger.warning(f"문제 {row.get('id')}: Question 생성 실패 — {e}")
        logger.info(f"과목 {course_id}: {len(questions)}/{len(rows)}개 문제 로드")
        return questions

    def fetch_course(self, course_id: int) -> Optional[Course]:
        rows = self._select("courses", {"select": "*", "id": f"eq.{course_id}"})
        if not rows:
            return None
        try:
            return Course.model_validate(rows[0])
        except ValidationError as e:
            logger.error(f"과목 {course_id}: Course 생성 실패 — {e}")
            raise BackendUnavailable(f"과목 {course_id} 정보가 올바르지 않습니다.") from e

    def is_full_access(self, user_id: str) -> bool:
        rows = self._select("profiles", {
            "select": "subscription_status,premium_until",
            "id": f"eq.{user_id}",
        })
        if not rows or rows[0].get("subscription_status") != PREMIUM_STATUS:
            return False
        until = _parse_timestamp(rows[0].get("premium_until"))
        return until is None or until > datetime.now(timezone.utc)

    def fetch_results(self, user_id: str) -> List[ExamResult]:
        rows = self._select("exam_results", {
            "select": "course_id,user_id,score,correct_answers,wrong_answers,empty_answers,created_at",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
        })
        results: List[ExamResult] = []
        for row in rows:
            try:
                results.append(_row_to_result(row))
            except (ValidationError, KeyError, ValueError) as e:
                logger.warning(f"결과 행 건너뜀 (과목 {row.get('course_id')}): {e}")
        return results

    def user_id_for(self, access_token: str) -> Optional[str]:
        try:
            resp = self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"사용자 확인 실패: {e}")
            raise BackendUnavailable("인증 서버에 연결할 수 없습니다.") from e
        if resp.status_code in (401, 403):
            return None
        if resp.is_error:
            raise BackendUnavailable(f"인증 서버 오류 ({resp.status_code})")
        return resp.json().get("id")

    # ── 저장 ────────────────────────────────────────────────────────────────

    def submit_result(self, result: ExamResult) -> None:
        payload = {
            "user_id": result.user_id,
            "course_id": result.course_id,
            "score": result.score_value,
            "correct_answers": result.correct_count,
            "wrong_answers": result.wrong_count,
            "empty_answers": result.empty_count,
            "created_at": result.timestamp.isoformat(),
        }
        try:
            resp = self._client.post(
                "/rest/v1/exam_results",
                json=payload,
                headers={"Prefer": "return=minimal"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ResultSubmissionFailed(f"exam_results 저장 실패: {e}") from e
