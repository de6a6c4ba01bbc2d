import asyncio

import pytest

from cat_exam.services.exam_controller import ExamController
from cat_exam.services.exam_service import ScoringPolicy
from cat_exam.services.ticker import AsyncioTicker
from conftest import RecordingSink, make_question


def test_ticker_fires_repeatedly_until_stopped():
    calls = []

    async def scenario():
        ticker = AsyncioTicker(interval=0.01)

        def on_tick():
            calls.append(1)
            if len(calls) == 3:
                ticker.stop()

        ticker.start(on_tick)
        await asyncio.sleep(0.2)
        assert not ticker.running

    asyncio.run(scenario())
    assert len(calls) == 3


def test_ticker_cannot_start_twice():
    async def scenario():
        ticker = AsyncioTicker(interval=0.01)
        ticker.start(lambda: None)
        with pytest.raises(RuntimeError):
            ticker.start(lambda: None)
        ticker.stop()

    asyncio.run(scenario())


def test_controller_auto_finishes_on_real_ticker():
    sink = RecordingSink()

    async def scenario():
        c = ExamController(
            course_id=1,
            user_id="u",
            result_sink=sink,
            policy=ScoringPolicy(kind="points", points_per_correct=5),
            ticker=AsyncioTicker(interval=0.01),
        )
        c.start([make_question(1)], 3)
        c.select_answer(1, "A")
        await asyncio.sleep(0.3)
        return c

    c = asyncio.run(scenario())
    assert c.result.score_value == 5
    assert c.finished_automatically
    assert c.session.remaining_seconds == 0
    assert len(sink.calls) == 1
