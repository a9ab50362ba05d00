import threading

import pytest

from vizai.perception.tracking import ObjectTracker
from vizai.risk_assessment.alert_engine import AlertEngine
from vizai.risk_assessment.threat import Direction, ThreatZone, classify

from conftest import FakeSpeechChannel, detection_at, make_object

@pytest.fixture
def engine(speech, clock):
    return AlertEngine(speech, critical_distance=2.0, resume_settle_delay=0, clock=clock)

def test_critical_dangerous_object_is_announced(engine, speech):
    announcements = engine.evaluate([make_object(1, "car", 1.8)], now=100.0)

    assert [(a.tracking_id, a.text, a.direction) for a in announcements] == [(1, "Warning! car ahead", Direction.FRONT)]
    assert speech.spoken == ["Warning! car ahead"]
    assert engine.status().speaking

def test_safe_and_unknown_distances_are_ignored(engine, speech):
    announcements = engine.evaluate([
        make_object(1, "car", 2.0),
        make_object(2, "car", None),
        make_object(3, "car", 5.0),
    ], now=100.0)

    assert announcements == []
    assert speech.spoken == []

def test_labels_outside_dangerous_list_are_ignored(engine, speech):
    assert engine.evaluate([make_object(1, "bench", 0.5)], now=100.0) == []
    assert speech.spoken == []

def test_dangerous_label_comparison_is_case_insensitive(engine):
    assert len(engine.evaluate([make_object(1, "Person", 1.0)], now=100.0)) == 1

def test_repeat_within_interval_is_debounced(engine, speech):
    obj = make_object(1, "car", 1.8)

    assert len(engine.evaluate([obj], now=100.0)) == 1
    assert engine.evaluate([obj], now=101.0) == []
    assert len(engine.evaluate([obj], now=101.5)) == 1

def test_debounce_is_per_object_not_per_label(engine):
    engine.evaluate([make_object(1, "car", 1.8)], now=100.0)
    announcements = engine.evaluate([make_object(1, "car", 1.8), make_object(2, "car", 1.8)], now=100.5)

    assert [a.tracking_id for a in announcements] == [2]

def test_one_announcement_per_object_per_cycle(engine):
    obj = make_object(1, "car", 1.8)
    assert len(engine.evaluate([obj, obj], now=100.0)) == 1

def test_importance_pairs_are_accepted(engine):
    announcements = engine.evaluate([(make_object(4, "bus", 1.0), 0.9)], now=100.0)
    assert [a.tracking_id for a in announcements] == [4]

def test_debounce_entries_are_dropped_for_absent_objects(engine):
    obj = make_object(1, "car", 1.8)
    engine.evaluate([obj], now=100.0)
    assert engine.status().watched_count == 1

    engine.evaluate([], now=100.2)
    assert engine.status().watched_count == 0
    assert len(engine.evaluate([obj], now=100.4)) == 1

def test_messages_play_one_at_a_time_in_order(engine, speech):
    engine.evaluate([
        make_object(1, "car", 1.8),
        make_object(2, "person", 1.8, rect=(0.0, 0.6, 0.1, 0.1)),
    ], now=100.0)

    assert speech.spoken == ["Warning! car ahead"]
    assert engine.status().queue_depth == 1

    speech.finish()
    assert speech.spoken == ["Warning! car ahead", "Warning! person on the left"]
    assert engine.status().queue_depth == 0

    speech.finish()
    assert not engine.status().speaking

def test_failed_utterance_advances_queue(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)

    speech.finish(completed=False)

    assert speech.spoken == ["Warning! car ahead", "Warning! bus ahead"]

def test_speech_channel_error_does_not_block_queue(engine, speech, monkeypatch):
    def broken(text, utterance_id):
        raise OSError("no audio device")

    monkeypatch.setattr(speech, "speak", broken)
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)

    status = engine.status()
    assert not status.speaking
    assert status.queue_depth == 0

def test_queued_alerts_for_absent_objects_are_dropped(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)
    engine.evaluate([make_object(1, "car", 1.8)], now=100.2)

    assert engine.status().queue_depth == 0
    speech.finish()
    assert speech.spoken == ["Warning! car ahead"]

def test_expired_alerts_are_not_spoken(speech, clock):
    engine = AlertEngine(speech, critical_distance=2.0, message_lifetime=2.0, clock=clock)
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)

    clock.now = 102.5
    speech.finish()

    assert speech.spoken == ["Warning! car ahead"]
    assert engine.status().queue_depth == 0

def test_queued_alert_uses_latest_position(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)
    engine.evaluate([
        make_object(1, "car", 1.8),
        make_object(2, "bus", 1.2, rect=(0.85, 0.6, 0.1, 0.1)),
    ], now=100.2)

    speech.finish()

    assert speech.spoken[-1] == "Warning! bus on the right at 1 meter"

def test_close_objects_get_their_distance_spoken(engine, speech):
    engine.evaluate([make_object(1, "person", 0.3)], now=100.0)
    assert speech.spoken == ["Warning! person ahead at less than 50 centimeters"]

def test_french_messages(speech, clock):
    engine = AlertEngine(speech, critical_distance=2.0, language="fr", clock=clock)
    engine.evaluate([make_object(1, "car", 1.8, rect=(0.05, 0.1, 0.1, 0.1))], now=100.0)

    assert speech.spoken == ["ATTENTION ! voiture devant à gauche"]

def test_critical_distance_change_resets_debounce(engine, speech):
    obj = make_object(1, "car", 1.5)
    assert len(engine.evaluate([obj], now=100.0)) == 1

    engine.set_critical_distance(1.0)
    assert classify(obj.distance, engine.critical_distance) is ThreatZone.SAFE
    assert engine.status().watched_count == 0
    assert engine.evaluate([obj], now=100.2) == []

    engine.set_critical_distance(2.0)
    assert len(engine.evaluate([obj], now=100.4)) == 1

def test_dangerous_objects_can_be_replaced(engine):
    engine.set_dangerous_objects(["Bench"])

    assert engine.evaluate([make_object(1, "car", 1.0)], now=100.0) == []
    assert len(engine.evaluate([make_object(2, "bench", 1.0)], now=100.0)) == 1

def test_interrupt_drains_queue_and_cancels_speech(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)

    assert engine.interrupt("question") is True

    status = engine.status()
    assert status.queue_depth == 0
    assert not status.speaking
    assert status.suspended
    assert status.interruption_reason == "question"
    assert speech.cancelled == 1

def test_evaluate_is_a_no_op_while_interrupted(engine, speech):
    engine.interrupt()

    assert engine.evaluate([make_object(1, "car", 1.0)], now=100.0) == []
    assert speech.spoken == []
    assert engine.status().watched_count == 0

def test_interrupt_is_rate_limited(engine, clock):
    assert engine.interrupt() is True
    engine.resume()

    clock.now += 0.5
    assert engine.interrupt() is False
    assert not engine.status().suspended

    clock.now += 0.5
    assert engine.interrupt() is True

def test_interaction_is_spoken_while_interrupted(engine, speech):
    engine.interrupt()
    engine.speak_interaction("The door is in front of you")

    assert speech.spoken == ["The door is in front of you"]
    assert engine.status().speaking

def test_interaction_jumps_the_queue(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)
    engine.speak_interaction("Hello")

    speech.finish()

    assert speech.spoken == ["Warning! car ahead", "Hello"]
    assert engine.status().queue_depth == 1

def test_late_callback_from_cancelled_utterance_is_ignored(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8)], now=100.0)
    stale_id = speech.current
    speech.current = None  # the channel reports the cancel later

    engine.interrupt()
    engine.speak_interaction("Hello")
    engine.on_utterance_finished(stale_id, False)

    assert engine.status().speaking

def test_resume_restores_surveillance(engine, speech):
    engine.interrupt()
    assert engine.resume() is True

    assert not engine.status().suspended
    assert len(engine.evaluate([make_object(1, "car", 1.0)], now=100.0)) == 1
    assert engine.resume() is False

def test_resume_drains_after_settle_delay(speech, clock):
    engine = AlertEngine(speech, critical_distance=2.0, resume_settle_delay=0.05, clock=clock)
    engine.interrupt()
    engine.resume()

    timer = engine._resume_timer
    assert timer is not None
    timer.join(1.0)
    assert engine._resume_timer is None
    assert len(engine.evaluate([make_object(1, "car", 1.0)], now=100.0)) == 1

def test_stop_silences_everything(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)

    engine.stop()

    status = engine.status()
    assert (status.speaking, status.queue_depth) == (False, 0)
    assert speech.cancelled == 1

def test_clear_all_state(engine, clock):
    engine.evaluate([make_object(1, "car", 1.8)], now=100.0)
    engine.interrupt()

    engine.clear_all_state()

    status = engine.status()
    assert not status.suspended
    assert status.watched_count == 0
    assert engine.interrupt() is True

def test_evaluates_tracker_snapshots(engine, speech):
    tracker = ObjectTracker()
    tracker.process_frame([detection_at(0.1, 0.1, "car", distance=1.5)], now=0.0)
    tracker.process_frame([detection_at(0.1, 0.1, "car", distance=1.5)], now=0.05)

    announcements = engine.evaluate(tracker.snapshot(), now=0.05)

    assert [a.tracking_id for a in announcements] == [1]
    assert speech.spoken == ["Warning! car ahead on the left"]

def test_stats_report(engine):
    engine.evaluate([make_object(1, "car", 1.8)], now=100.0)
    stats = engine.get_stats()

    assert "Speaking" in stats
    assert "Critical distance: 2.00m" in stats

class InteractionDuringCancelChannel(FakeSpeechChannel):
    """Another thread asks for an interaction while an interruption is cancelling speech."""

    def __init__(self):
        super().__init__()
        self.engine = None
        self.worker = None

    def cancel(self):
        if self.worker is None:
            self.worker = threading.Thread(target=self.engine.speak_interaction, args=("I am listening",))
            self.worker.start()
            self.worker.join(0.2)
        super().cancel()

def test_interrupt_does_not_cancel_interaction_started_meanwhile(clock):
    speech = InteractionDuringCancelChannel()
    engine = AlertEngine(speech, critical_distance=2.0, resume_settle_delay=0, clock=clock)
    speech.engine = engine
    engine.evaluate([make_object(1, "car", 1.8)], now=100.0)

    engine.interrupt("voice")
    speech.worker.join(1.0)

    assert speech.spoken == ["Warning! car ahead", "I am listening"]
    status = engine.status()
    assert status.speaking
    assert status.suspended

def test_empty_cycle_silences_current_alert(engine, speech):
    engine.evaluate([make_object(1, "car", 1.8), make_object(2, "bus", 1.8)], now=100.0)

    assert engine.evaluate([], now=100.2) == []

    status = engine.status()
    assert (status.speaking, status.queue_depth, status.watched_count) == (False, 0, 0)
    assert speech.cancelled == 1
    assert speech.spoken == ["Warning! car ahead"]

def test_empty_cycle_lets_interaction_finish(engine, speech):
    engine.speak_interaction("Hello")

    engine.evaluate([], now=100.0)

    assert speech.cancelled == 0
    assert engine.status().speaking
