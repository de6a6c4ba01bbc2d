import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import api.session as session
from cat_exam.models.question_model import Option, Question
from cat_exam.services.errors import ResultSubmissionFailed


def make_question(qid, correct="A", keys="ABCD", category=None, explanation=None):
    return Question(
        id=qid,
        text=f"Question {qid}",
        options=[Option(key=k, text=f"option {k}") for k in keys],
        correct_option_key=correct,
        category=category,
        explanation=explanation,
    )


class FakeTicker:
    def __init__(self):
        self.callback = None
        self.started = 0
        self.stopped = 0

    def start(self, callback):
        self.callback = callback
        self.started += 1

    def stop(self):
        self.callback = None
        self.stopped += 1

    def fire(self, times=1):
        for _ in range(times):
            if self.callback is None:
                return
            self.callback()


class RecordingSink:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def submit_result(self, result):
        self.calls.append(result)
        if self.fail:
            raise ResultSubmissionFailed("sink offline")

    def fetch_results(self, user_id):
        return [r for r in self.calls if r.user_id == user_id]


@pytest.fixture
def abc_questions():
    return [
        make_question(1, correct="A", category="TIU"),
        make_question(2, correct="B", category="TIU"),
        make_question(3, correct="C", category="TWK"),
    ]


@pytest.fixture
def ticker():
    return FakeTicker()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture(autouse=True)
def _clear_sessions():
    yield
    session.clear_all()
