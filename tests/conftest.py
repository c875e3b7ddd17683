"""Shared test fixtures."""

import os

# Settings are loaded at import time; never reach the real generation service
os.environ["GEMINI_API_KEY"] = ""
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")

import asyncio

import pytest

from hooshyar.models.schemas import HealthTopicInfo


@pytest.fixture
def sample_payload():
    """Well-formed answer as returned by the generation service."""
    return {
        "topicName": "دیابت",
        "introduction": "دیابت یک بیماری مزمن است که بر قند خون اثر می‌گذارد.",
        "sections": [
            {"title": "علائم", "details": ["تکرر ادرار", "تشنگی زیاد"]},
        ],
    }


@pytest.fixture
def sample_info(sample_payload):
    return HealthTopicInfo.model_validate(sample_payload)


@pytest.fixture
def blood_pressure_info():
    return HealthTopicInfo.model_validate({
        "topicName": "فشار خون",
        "introduction": "فشار خون بالا معمولاً بدون علامت است.",
        "sections": [
            {"title": "علائم", "details": ["سردرد", "سرگیجه"]},
            {"title": "مراقبت‌ها", "details": ["کاهش مصرف نمک به کمتر از یک قاشق چای‌خوری در روز"]},
        ],
    })


class ControlledEngine:
    """Engine whose responses are released by the test, in any order."""

    def __init__(self):
        self.calls = []

    async def fetch(self, topic, audience):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((topic, audience, future))
        return await future

    def resolve(self, index, info):
        self.calls[index][2].set_result(info)

    def fail(self, index, error):
        self.calls[index][2].set_exception(error)


class StubEngine:
    """Engine that answers immediately with a fixed result or error."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def fetch(self, topic, audience):
        self.calls.append((topic, audience))
        if self.error is not None:
            raise self.error
        return self.result

    def get_status(self):
        return {"model": "stub", "temperature": 0.2, "configured": True}


@pytest.fixture
def controlled_engine():
    return ControlledEngine()


@pytest.fixture
def stub_engine(sample_info):
    return StubEngine(result=sample_info)
