import pytest

import config
from cat_exam.models.session_state import ExamPhase, SubmissionStatus
from cat_exam.services.errors import ExamNotInProgress, InvalidSelection, NoQuestionsAvailable
from cat_exam.services.exam_controller import ExamController
from cat_exam.services.exam_service import ScoringPolicy
from conftest import RecordingSink


def _controller(sink, ticker=None, policy=None, **kwargs):
    return ExamController(
        course_id=10,
        user_id="u-1",
        result_sink=sink,
        policy=policy or ScoringPolicy(kind="points", points_per_correct=5),
        ticker=ticker,
        **kwargs,
    )


# ── 시작 ────────────────────────────────────────────────────────────────────

def test_start_initializes_session(abc_questions, sink, ticker):
    c = _controller(sink, ticker)
    c.start(abc_questions, 600)

    assert c.phase is ExamPhase.IN_PROGRESS
    assert c.session.current_index == 0
    assert c.session.remaining_seconds == 600
    assert c.session.answers == {} and c.session.flags == {}
    assert ticker.started == 1


@pytest.mark.parametrize("duration", [None, 0, -5])
def test_start_falls_back_to_default_duration(abc_questions, sink, duration):
    c = _controller(sink)
    c.start(abc_questions, duration)
    assert c.session.remaining_seconds == config.DEFAULT_DURATION_SECONDS


def test_empty_question_set_never_starts(sink, ticker):
    c = _controller(sink, ticker)
    with pytest.raises(NoQuestionsAvailable):
        c.start([], 60)
    assert c.phase is ExamPhase.UNINITIALIZED
    assert ticker.started == 0


def test_start_twice_is_rejected(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    with pytest.raises(RuntimeError):
        c.start(abc_questions, 60)


# ── 답안 ────────────────────────────────────────────────────────────────────

def test_reselection_overwrites(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    c.select_answer(1, "B")
    c.select_answer(1, "C")
    assert c.session.answers == {1: "C"}
    assert c.session.current_index == 0


def test_invalid_option_key_not_recorded(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    c.select_answer(2, "A")
    with pytest.raises(InvalidSelection):
        c.select_answer(2, "X")
    with pytest.raises(InvalidSelection):
        c.select_answer(99, "A")
    assert c.session.answers == {2: "A"}


def test_selection_after_finish_rejected(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    c.finish()
    with pytest.raises(ExamNotInProgress):
        c.select_answer(1, "A")
    assert c.session.answers == {}


def test_flags_do_not_affect_score(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    assert c.toggle_flag(3) is True
    assert c.toggle_flag(3) is False
    assert c.toggle_flag(2) is True
    c.select_answer(2, "B")
    result = c.finish()
    assert c.session.flags == {3: False, 2: True}
    assert result.correct_count == 1


# ── 이동 ────────────────────────────────────────────────────────────────────

def test_navigate_clamps(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    assert c.navigate(index=2) == 2
    assert c.navigate(delta=1) == 2
    assert c.navigate(index=-4) == 0
    assert c.navigate(delta=-1) == 0
    assert c.navigate(index=50) == 2
    assert c.navigate(delta=-1) == 1


def test_navigate_requires_exactly_one_target(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    with pytest.raises(ValueError):
        c.navigate()
    with pytest.raises(ValueError):
        c.navigate(index=1, delta=1)


# ── 종료 / 채점 ─────────────────────────────────────────────────────────────

def test_mixed_answers_points_and_percentage(abc_questions):
    for policy, expected in [(ScoringPolicy(kind="points", points_per_correct=5), 5), (ScoringPolicy(kind="percentage"), 33)]:
        sink = RecordingSink()
        c = _controller(sink, policy=policy)
        c.start(abc_questions, 60)
        c.select_answer(1, "A")
        c.select_answer(2, "D")
        result = c.finish()
        assert (result.correct_count, result.wrong_count, result.empty_count) == (1, 1, 1)
        assert result.score_value == expected
        assert result.total == len(abc_questions)


def test_double_finish_submits_once(abc_questions, sink, ticker):
    c = _controller(sink, ticker)
    c.start(abc_questions, 60)
    first = c.finish()
    second = c.finish()

    assert first is not None
    assert second is None
    assert c.result is first
    assert len(sink.calls) == 1
    assert c.submission_status is SubmissionStatus.SUBMITTED
    assert ticker.stopped == 1


def test_result_identifies_course_and_user(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 60)
    result = c.finish()
    assert result.course_id == 10
    assert result.user_id == "u-1"
    assert result.timestamp.tzinfo is not None


def test_submission_failure_keeps_result(abc_questions):
    sink = RecordingSink(fail=True)
    c = _controller(sink)
    c.start(abc_questions, 60)
    c.select_answer(1, "A")
    result = c.finish()

    assert result.score_value == 5
    assert c.phase is ExamPhase.FINISHED
    assert c.submission_status is SubmissionStatus.FAILED
    assert "sink offline" in c.submission_error
    assert len(sink.calls) == 1


class BrokenSink:
    def __init__(self):
        self.calls = 0

    def submit_result(self, result):
        self.calls += 1
        raise ConnectionError("socket reset")


def test_unexpected_sink_error_is_recorded_not_raised(abc_questions):
    sink = BrokenSink()
    c = _controller(sink)
    c.start(abc_questions, 60)
    c.select_answer(1, "A")

    result = c.finish()

    assert result.score_value == 5
    assert c.phase is ExamPhase.FINISHED
    assert c.submission_status is SubmissionStatus.FAILED
    assert "socket reset" in c.submission_error
    assert sink.calls == 1
    assert c.finish() is None
    assert sink.calls == 1


def test_submission_is_dispatched_not_awaited(abc_questions, sink):
    queued = []
    c = _controller(sink, dispatch=queued.append)
    c.start(abc_questions, 60)
    c.finish()

    assert c.phase is ExamPhase.FINISHED
    assert c.submission_status is SubmissionStatus.PENDING
    assert sink.calls == []

    queued[0]()
    assert c.submission_status is SubmissionStatus.SUBMITTED
    assert len(sink.calls) == 1


# ── 타이머 ──────────────────────────────────────────────────────────────────

def test_one_second_exam_auto_finishes(abc_questions, sink, ticker):
    c = _controller(sink, ticker)
    c.start(abc_questions, 1)
    c.select_answer(3, "C")

    ticker.fire()
    assert c.phase is ExamPhase.FINISHED
    assert c.finished_automatically
    assert c.session.remaining_seconds == 0
    assert c.result.correct_count == 1
    assert len(sink.calls) == 1

    c.tick()
    assert c.session.remaining_seconds == 0
    assert len(sink.calls) == 1


def test_timer_is_monotonic_and_hits_zero(abc_questions, sink):
    c = _controller(sink)
    c.start(abc_questions, 5)
    seen = [c.session.remaining_seconds]
    for _ in range(4):
        c.tick()
        seen.append(c.session.remaining_seconds)
    assert seen == [5, 4, 3, 2, 1]
    assert c.phase is ExamPhase.IN_PROGRESS

    c.tick()
    assert c.session.remaining_seconds == 0
    assert c.phase is ExamPhase.FINISHED


def test_manual_finish_then_timer_expiry(abc_questions, sink, ticker):
    c = _controller(sink, ticker)
    c.start(abc_questions, 2)
    callback = ticker.callback
    c.finish()
    remaining = c.session.remaining_seconds

    # 이미 예약돼 있던 틱이 늦게 도착해도 무시된다
    callback()
    callback()
    assert c.session.remaining_seconds == remaining
    assert len(sink.calls) == 1
    assert not c.finished_automatically


def test_timer_expiry_then_manual_finish(abc_questions, sink, ticker):
    c = _controller(sink, ticker)
    c.start(abc_questions, 1)
    ticker.fire()
    assert c.finish() is None
    assert len(sink.calls) == 1
    assert c.finished_automatically


def test_abandon_stops_timer_without_result(abc_questions, sink, ticker):
    c = _controller(sink, ticker)
    c.start(abc_questions, 60)
    c.abandon()
    assert ticker.stopped == 1
    assert ticker.callback is None
    assert c.result is None
    assert sink.calls == []


def test_restart_is_a_new_controller(abc_questions, sink):
    first = _controller(sink)
    first.start(abc_questions, 60)
    first.select_answer(1, "A")
    first.finish()

    second = _controller(sink)
    second.start(abc_questions, 60)
    assert second.session.answers == {}
    assert second.phase is ExamPhase.IN_PROGRESS
    assert first.phase is ExamPhase.FINISHED
