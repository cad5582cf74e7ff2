"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from taskphrase import parser as parser_module  # noqa: E402
from taskphrase.config import Config  # noqa: E402
from taskphrase.recognizer import DateSpan  # noqa: E402


class StubRecognizer:
    """Recognizer that only knows a fixed set of phrases."""

    def __init__(self, phrases=None):
        self.phrases = dict(phrases or {})

    def iter_spans(self, text, now):
        lowered = text.lower()
        found = []
        for phrase, value in self.phrases.items():
            position = lowered.find(phrase.lower())
            if position >= 0:
                found.append(DateSpan(position, position + len(phrase),
                                      text[position:position + len(phrase)], value))
        yield from sorted(found, key=lambda span: span.start)

    def first(self, text, now):
        return next(self.iter_spans(text, now), None)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's real config file."""
    monkeypatch.setenv("TASKPHRASE_CONFIG", str(tmp_path / "config.yaml"))
    Config._instance = None
    parser_module._default_parser = None
    yield
    Config._instance = None
    parser_module._default_parser = None


@pytest.fixture
def stub_recognizer():
    return StubRecognizer
