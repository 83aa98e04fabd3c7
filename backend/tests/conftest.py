"""Shared fakes for the studio test-suite. No test touches the network."""

from __future__ import annotations

import pytest

from shorts_studio.config import StudioSettings
from shorts_studio.models import Duration, Genre, Idea
from shorts_studio.orchestrator import GenerationOrchestrator


class FakeTextClient:
    """Stands in for OpenAIClient; replies are consumed in order."""

    def __init__(self, replies=None, stream_replies=None):
        self.replies = list(replies or [])
        self.stream_replies = list(stream_replies or [])
        self.calls = []

    def chat_text(self, messages, model=None, **kwargs):
        self.calls.append({"kind": "text", "messages": messages, "kwargs": kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def chat_stream(self, messages, model=None, **kwargs):
        self.calls.append({"kind": "stream", "messages": messages, "kwargs": kwargs})
        for piece in self.stream_replies.pop(0):
            if isinstance(piece, Exception):
                raise piece
            yield piece


class FakeVideoClient:
    def __init__(self, operations=None, submitted=None, payload=b"mp4-bytes", on_poll=None):
        self.operations = list(operations or [])
        self.submitted = submitted or {"name": "models/veo/operations/op-1", "done": False}
        self.payload = payload
        self.on_poll = on_poll
        self.prompts = []
        self.polled = []
        self.downloaded = []

    def submit(self, prompt, **_kwargs):
        self.prompts.append(prompt)
        return self.submitted

    def get_operation(self, name):
        self.polled.append(name)
        if self.on_poll:
            self.on_poll()
        if self.operations:
            return self.operations.pop(0)
        return {"name": name, "done": False}

    def download(self, uri):
        self.downloaded.append(uri)
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def idea():
    return Idea(
        title="The Last Pixel",
        concept="A forgotten game sprite escapes its cartridge.",
        story_arc="Glitch -> escape -> reboot.",
        genre=Genre.SCI_FI,
        duration=Duration.SHORTS_30,
        visuals_and_audio="8-bit glitches, chiptune stings.",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_orchestrator(clock):
    def _make(text_client=None, video_client=None, **settings_overrides):
        settings = StudioSettings(api_key="test-key", **settings_overrides)
        return GenerationOrchestrator(
            settings,
            text_client=text_client or FakeTextClient(),
            video_client=video_client or FakeVideoClient(),
            sleep=clock.sleep,
            clock=clock,
        )

    return _make
