from types import SimpleNamespace

import pytest

from vizai.perception.detection import Detection
from vizai.ui.speech_alert import SpeechChannel

def rect_at(cx, cy, size=0.05):
    """Normalized box of the given size centered on (cx, cy)."""
    return (cx - size / 2, cy - size / 2, size, size)

def detection_at(cx, cy, label="car", distance=None, confidence=0.9, size=0.05):
    return Detection(rect_at(cx, cy, size), label, confidence, distance)

def make_object(tracking_number, label="car", distance=1.8, rect=(0.45, 0.55, 0.1, 0.1)):
    """Minimal stand-in for a tracked object as the alert engine reads it."""
    return SimpleNamespace(tracking_number=tracking_number, label=label, distance=distance, last_rect=rect)

class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

class FakeSpeechChannel(SpeechChannel):
    """Records what is spoken; utterances end when the test says so."""

    def __init__(self):
        super().__init__()
        self.spoken = []
        self.cancelled = 0
        self.current = None

    def speak(self, text, utterance_id):
        self.spoken.append(text)
        self.current = utterance_id

    def cancel(self):
        self.cancelled += 1
        utterance_id, self.current = self.current, None
        if utterance_id is not None:
            self._notify(utterance_id, False)

    def finish(self, completed=True):
        utterance_id, self.current = self.current, None
        self._notify(utterance_id, completed)

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def speech():
    return FakeSpeechChannel()
