"""
services/exam_controller.py

시험 한 회차(세션)의 상태 기계.

  uninitialized --start--> in_progress --tick(0) / finish--> finished

- 채점과 결과 제출은 세션당 정확히 한 번만 일어난다. 타이머 만료와
  수동 제출이 동시에 들어와도 phase 비교-교체(lock) 한 번으로 정리된다.
- 결과 제출은 dispatch로 넘겨 실행하므로 호출자가 기다리지 않는다.
  제출 실패는 submission_status/submission_error로만 남고 결과는 유지된다.
- 재시험은 새 컨트롤러를 만든다 (기존 세션 초기화 없음).
"""

import logging
import threading
from typing import Callable, List, Optional, Protocol

import config
from cat_exam.models.question_model import Question
from cat_exam.models.session_state import (
    ExamPhase, ExamResult, ExamSession, SubmissionStatus,
)
from cat_exam.services.errors import (
    ExamNotInProgress, InvalidSelection, NoQuestionsAvailable, ResultSubmissionFailed,
)
from cat_exam.services.exam_service import ScoringPolicy, tally_answers

logger = logging.getLogger(__name__)


class Ticker(Protocol):
    def start(self, callback: Callable[[], None]) -> None: ...
    def stop(self) -> None: ...


class ResultWriter(Protocol):
    def submit_result(self, result: ExamResult) -> None: ...


def _run_now(fn: Callable[[], None]) -> None:
    fn()


class ExamController:
    """
    ExamSession의 유일한 소유자.
    모든 상태 변경은 아래 공개 메서드를 통해서만 일어난다.
    """

    def __init__(
        self,
        course_id: int,
        user_id: str,
        result_sink: ResultWriter,
        policy: Optional[ScoringPolicy] = None,
        ticker: Optional[Ticker] = None,
        dispatch: Callable[[Callable[[], None]], None] = _run_now,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.policy = policy or ScoringPolicy.from_config()
        self._sink = result_sink
        self._ticker = ticker
        self._dispatch = dispatch
        self._lock = threading.Lock()

        self.session = ExamSession()
        self.result: Optional[ExamResult] = None
        self.finished_automatically = False
        self.submission_status = SubmissionStatus.NOT_STARTED
        self.submission_error: Optional[str] = None

    # ── 조회 ────────────────────────────────────────────────────────────────

    @property
    def phase(self) -> ExamPhase:
        return self.session.phase

    @property
    def in_progress(self) -> bool:
        return self.session.phase is ExamPhase.IN_PROGRESS

    # ── 시작 ────────────────────────────────────────────────────────────────

    def start(self, questions: List[Question], duration_seconds: Optional[int] = None) -> None:
        """
        문제와 제한 시간을 받아 시험을 시작한다.
        duration_seconds가 없거나 0 이하이면 DEFAULT_DURATION_SECONDS를 쓴다.

        Raises:
            NoQuestionsAvailable: 문제가 없으면 시작하지 않는다 (phase 유지).
        """
        if not questions:
            logger.warning(f"과목 {self.course_id}: 문제가 없어 시험을 시작할 수 없습니다.")
            raise NoQuestionsAvailable(self.course_id)

        with self._lock:
            if self.session.phase is not ExamPhase.UNINITIALIZED:
                raise RuntimeError("이미 시작된 세션입니다. 재시험은 새 세션으로 시작하세요.")

            if not duration_seconds or duration_seconds <= 0:
                duration_seconds = config.DEFAULT_DURATION_SECONDS

            self.session = ExamSession(
                questions=list(questions),
                remaining_seconds=int(duration_seconds),
                phase=ExamPhase.IN_PROGRESS,
            )

        logger.info(
            f"시험 시작: 과목 {self.course_id}, 사용자 {self.user_id}, "
            f"{len(questions)}문항, {duration_seconds}초"
        )
        if self._ticker is not None:
            self._ticker.start(self.tick)

    # ── 타이머 ──────────────────────────────────────────────────────────────

    def tick(self) -> None:
        """1초 경과 처리. 0초가 되면 자동 제출한다."""
        with self._lock:
            if self.session.phase is not ExamPhase.IN_PROGRESS:
                return
            if self.session.remaining_seconds > 0:
                self.session.remaining_seconds -= 1
            expired = self.session.remaining_seconds == 0

        if expired:
            logger.info(f"과목 {self.course_id}: 시험 시간 종료, 자동 제출합니다.")
            self.finish(auto=True)

    # ── 답안 / 표시 / 이동 ──────────────────────────────────────────────────

    def select_answer(self, question_id: int, option_key: str) -> None:
        """
        답안 저장. 같은 문제에 다시 선택하면 덮어쓴다.
        현재 문제 인덱스는 바꾸지 않는다.

        Raises:
            ExamNotInProgress: 진행 중이 아닐 때.
            InvalidSelection:  없는 문제이거나 문제에 없는 보기 key일 때 (저장 안 함).
        """
        with self._lock:
            self._require_in_progress()
            question = self.session.question_by_id(question_id)
            if question is None:
                logger.warning(f"잘못된 답안 선택: 문제 {question_id} 없음")
                raise InvalidSelection(question_id, option_key, f"문제 {question_id}가 시험에 없습니다.")
            if not question.has_option(option_key):
                logger.warning(
                    f"잘못된 답안 선택: 문제 {question_id}, 보기 {option_key!r} "
                    f"(가능: {question.option_keys})"
                )
                raise InvalidSelection(question_id, option_key)
            self.session.answers[question_id] = option_key

    def toggle_flag(self, question_id: int) -> bool:
        """헷갈림 표시를 뒤집고 새 값을 반환. 채점에는 영향 없음."""
        with self._lock:
            self._require_in_progress()
            if self.session.question_by_id(question_id) is None:
                raise InvalidSelection(question_id, "", f"문제 {question_id}가 시험에 없습니다.")
            flagged = not self.session.flags.get(question_id, False)
            self.session.flags[question_id] = flagged
            return flagged

    def navigate(self, index: Optional[int] = None, delta: Optional[int] = None) -> int:
        """
        문제 이동. index(직접 이동) 또는 delta(상대 이동) 중 하나.
        범위를 벗어나면 양 끝으로 보정한다.
        """
        if (index is None) == (delta is None):
            raise ValueError("index와 delta 중 하나만 지정해야 합니다.")
        with self._lock:
            self._require_in_progress()
            target = index if index is not None else self.session.current_index + delta
            target = max(0, min(target, self.session.total - 1))
            self.session.current_index = target
            return target

    # ── 제출 ────────────────────────────────────────────────────────────────

    def finish(self, auto: bool = False) -> Optional[ExamResult]:
        """
        시험 종료 및 채점. 진행 중일 때 첫 호출만 효력이 있다.
        수동 제출(auto=False)의 확인 절차는 호출자 책임이다.

        Returns:
            이번 호출로 만들어진 결과. 이미 종료된 세션이면 None (중복 종료 무시).
        """
        with self._lock:
            if self.session.phase is not ExamPhase.IN_PROGRESS:
                logger.debug(f"과목 {self.course_id}: 이미 종료된 세션의 제출 요청 무시")
                return None
            self.session.phase = ExamPhase.FINISHED
            if self._ticker is not None:
                self._ticker.stop()

            tally = tally_answers(self.session.questions, self.session.answers)
            self.result = ExamResult(
                course_id=self.course_id,
                user_id=self.user_id,
                score_value=self.policy.score(tally),
                correct_count=tally.correct,
                wrong_count=tally.wrong,
                empty_count=tally.empty,
            )
            self.finished_automatically = auto
            self.submission_status = SubmissionStatus.PENDING
            result = self.result

        logger.info(
            f"시험 종료({'자동' if auto else '수동'}): 과목 {self.course_id}, "
            f"정답 {tally.correct} / 오답 {tally.wrong} / 미응답 {tally.empty}, "
            f"점수 {result.score_value}"
        )
        self._dispatch(self._submit)
        return result

    def _submit(self) -> None:
        result = self.result
        try:
            self._sink.submit_result(result)
        except ResultSubmissionFailed as e:
            logger.warning(f"결과 저장 실패 (점수는 유지됨): {e}")
            with self._lock:
                self.submission_status = SubmissionStatus.FAILED
                self.submission_error = str(e)
            return
        except Exception as e:
            logger.exception(f"결과 저장 중 예상치 못한 오류 (점수는 유지됨): {type(e).__name__}")
            with self._lock:
                self.submission_status = SubmissionStatus.FAILED
                self.submission_error = f"{type(e).__name__}: {e}"
            return
        with self._lock:
            self.submission_status = SubmissionStatus.SUBMITTED
        logger.info(f"결과 저장 완료: 과목 {self.course_id}, 사용자 {self.user_id}")

    # ── 정리 ────────────────────────────────────────────────────────────────

    def abandon(self) -> None:
        """세션 포기. 타이머만 정리하고 결과는 기록하지 않는다."""
        if self._ticker is not None:
            self._ticker.stop()
        if self.in_progress:
            logger.info(f"과목 {self.course_id}: 제출 없이 세션을 떠났습니다.")

    def _require_in_progress(self) -> None:
        if self.session.phase is not ExamPhase.IN_PROGRESS:
            raise ExamNotInProgress(f"진행 중인 시험이 아닙니다 (phase={self.session.phase.value}).")
