import pytest
from pydantic import ValidationError

from cat_exam.models.question_model import Course, Option, Question
from cat_exam.models.session_state import ExamPhase, ExamSession


def _options(keys="ABCD"):
    return [Option(key=k, text=k.lower()) for k in keys]


def test_option_requires_text_or_image():
    with pytest.raises(ValidationError):
        Option(key="A")
    assert Option(key="A", image_url="https://cdn/a.png").text is None


def test_option_key_is_single_character():
    with pytest.raises(ValidationError):
        Option(key="AB", text="x")


@pytest.mark.parametrize("keys", ["A", "ABCDEF"])
def test_question_option_count_bounds(keys):
    with pytest.raises(ValidationError):
        Question(id=1, text="q", options=_options(keys), correct_option_key="A")


def test_question_rejects_duplicate_keys():
    opts = [Option(key="A", text="1"), Option(key="A", text="2")]
    with pytest.raises(ValidationError):
        Question(id=1, text="q", options=opts, correct_option_key="A")


def test_question_correct_key_must_exist():
    with pytest.raises(ValidationError):
        Question(id=1, text="q", options=_options("AB"), correct_option_key="E")


def test_image_only_question_is_allowed():
    q = Question(id=7, image_url="https://cdn/q.png", options=_options("ABC"), correct_option_key="C")
    assert q.text == ""
    assert q.option_keys == ["A", "B", "C"]
    assert q.has_option("B")
    assert not q.has_option("D")


def test_course_ignores_unknown_columns():
    course = Course.model_validate({"id": 3, "title": "SKD", "slug": "skd", "duration_minutes": 90})
    assert course.duration_minutes == 90


def test_fresh_session_is_uninitialized():
    s = ExamSession()
    assert s.phase is ExamPhase.UNINITIALIZED
    assert s.answers == {} and s.flags == {}
    assert s.total == 0
