import logging
import math
import threading
import time
from collections import deque, namedtuple

from .. import config
from .threat import ThreatZone, Direction, classify, build_threat_message, strip_distance

logger = logging.getLogger(__name__)

# Emitted for every message queued by evaluate()
Announcement = namedtuple(
    "Announcement",
    ["tracking_id", "label", "text", "direction", "distance", "timestamp"],
)

AlertStatus = namedtuple(
    "AlertStatus",
    ["speaking", "suspended", "queue_depth", "watched_count", "critical_distance", "interruption_reason"],
)

class VoiceMessage:
    """A message waiting for the voice."""

    INTERACTION_ID = -999

    def __init__(self, text, object_id, label, timestamp, lifetime=None):
        """
        Args:
            text: Text to speak
            object_id: Tracking number of the object, or INTERACTION_ID
            label: Class label of the object
            timestamp: Creation time in seconds
            lifetime: Seconds after which the message is stale, None for never
        """
        self.text = text
        self.object_id = object_id
        self.label = label.lower()
        self.timestamp = timestamp
        self.expiration_time = None if lifetime is None else timestamp + lifetime

    @property
    def is_interaction(self):
        return self.object_id == self.INTERACTION_ID

    def is_expired(self, now):
        return self.expiration_time is not None and now > self.expiration_time

    def __repr__(self):
        return f"VoiceMessage({self.text!r}, object_id={self.object_id})"

class AlertEngine:
    """
    Turns tracked objects into spoken proximity warnings.

    Critical objects (closer than the critical distance) on the dangerous
    list are announced at most once per repeat interval. Messages go through
    a single voice, one at a time, and automatic alerts can be suspended
    while the user talks to the assistant.
    """

    def __init__(self, speech_channel, critical_distance=None, dangerous_objects=None,
                 min_repeat_interval=None, interrupt_cooldown=None, resume_settle_delay=None,
                 message_lifetime=None, proximity_priority_distance=None, language=None,
                 clock=time.time):
        """
        Initialize the alert engine. Every argument left to None comes from config.

        Args:
            speech_channel: SpeechChannel that plays the messages
            critical_distance: Meters under which an object is a critical threat
            dangerous_objects: Labels that may be announced
            min_repeat_interval: Seconds between two announcements of the same object
            interrupt_cooldown: Seconds between two accepted interruptions
            resume_settle_delay: Seconds before the queue restarts after resume()
            message_lifetime: Seconds a queued alert stays relevant
            proximity_priority_distance: Meters under which the distance is spoken
            language: Message language ("en" or "fr")
            clock: Time source for calls without an explicit time
        """
        self.speech = speech_channel
        self.speech.set_listener(self)
        self.clock = clock

        self.critical_distance = critical_distance if critical_distance is not None else config.ALERT_CRITICAL_DISTANCE
        self.dangerous_objects = set(
            label.lower() for label in (dangerous_objects if dangerous_objects is not None else config.ALERT_DANGEROUS_OBJECTS)
        )
        self.min_repeat_interval = min_repeat_interval if min_repeat_interval is not None else config.ALERT_MIN_REPEAT_INTERVAL
        self.interrupt_cooldown = interrupt_cooldown if interrupt_cooldown is not None else config.ALERT_INTERRUPT_COOLDOWN
        self.resume_settle_delay = resume_settle_delay if resume_settle_delay is not None else config.ALERT_RESUME_SETTLE_DELAY
        self.message_lifetime = message_lifetime if message_lifetime is not None else config.ALERT_MESSAGE_LIFETIME
        self.proximity_priority_distance = (
            proximity_priority_distance if proximity_priority_distance is not None
            else config.ALERT_PROXIMITY_PRIORITY_DISTANCE
        )
        self.language = language or config.ALERT_LANGUAGE

        # Guards everything below, speech callbacks arrive from the speech thread
        self._lock = threading.RLock()
        self.last_announcements = {}  # tracking number -> time of last announcement
        self.current_objects = {}  # tracking number -> latest evaluated object
        self.message_queue = deque()
        self.is_speaking = False
        self.current_message = None
        self.is_interrupted = False
        self.interruption_reason = ""
        self.last_interruption_time = -math.inf
        self._utterance_id = 0
        self._resume_timer = None

        logger.info(f"Alert engine initialized (critical distance {self.critical_distance}m)")

    # Configuration

    def set_critical_distance(self, meters):
        """Change the critical distance and forget previous announcements."""
        with self._lock:
            self.critical_distance = meters
            self.last_announcements.clear()
        logger.info(f"Critical distance set to {meters}m")

    def set_dangerous_objects(self, labels):
        """Replace the list of labels that may be announced."""
        with self._lock:
            self.dangerous_objects = set(label.lower() for label in labels)
            self.last_announcements.clear()

    # Surveillance

    def evaluate(self, important_objects, now=None):
        """
        Run one alert cycle.

        Args:
            important_objects: Tracked objects, or (tracked object, importance score) pairs
            now: Cycle time in seconds, defaults to the engine clock

        Returns:
            List of Announcement queued during this cycle
        """
        now = self.clock() if now is None else now

        with self._lock:
            if self.is_interrupted:
                return []

            objects = [item[0] if isinstance(item, tuple) else item for item in important_objects]
            self.current_objects = {obj.tracking_number: obj for obj in objects}
            self._cleanup_message_queue(now)

            if not objects:
                self.last_announcements.clear()
                self._silence_alert()
                return []

            announcements = []
            for obj in objects:
                if classify(obj.distance, self.critical_distance) is not ThreatZone.CRITICAL:
                    continue

                last = self.last_announcements.get(obj.tracking_number)
                if last is not None and now - last < self.min_repeat_interval:
                    continue

                if obj.label.lower() not in self.dangerous_objects:
                    continue

                text = build_threat_message(
                    obj.label, obj.last_rect, obj.distance,
                    language=self.language,
                    proximity_priority_distance=self.proximity_priority_distance,
                )
                self.message_queue.append(
                    VoiceMessage(text, obj.tracking_number, obj.label, now, lifetime=self.message_lifetime)
                )
                self.last_announcements[obj.tracking_number] = now
                announcements.append(Announcement(
                    tracking_id=obj.tracking_number,
                    label=obj.label,
                    text=text,
                    direction=Direction.from_rect(obj.last_rect),
                    distance=obj.distance,
                    timestamp=now,
                ))
                logger.info(f"Alert for #{obj.tracking_number}: {text}")

            for tracking_number in set(self.last_announcements) - set(self.current_objects):
                del self.last_announcements[tracking_number]

            self._process_message_queue(now)

        return announcements

    # Interaction

    def interrupt(self, reason="user interaction"):
        """
        Silence automatic alerts for a voice interaction.

        Requests arriving less than interrupt_cooldown after the previous
        accepted one are ignored.

        Returns:
            True if the interruption was accepted
        """
        now = self.clock()
        with self._lock:
            if now - self.last_interruption_time < self.interrupt_cooldown:
                logger.debug(f"Interruption ignored ({reason}), cooldown active")
                return False

            self.is_interrupted = True
            self.interruption_reason = reason
            self.last_interruption_time = now
            self._cancel_resume_timer()
            self.message_queue.clear()
            if self._release_voice():
                self.speech.cancel()

        logger.info(f"Alerts interrupted: {reason}")
        return True

    def resume(self):
        """
        Return to automatic alerts after an interaction.

        Returns:
            True if the engine was interrupted
        """
        with self._lock:
            if not self.is_interrupted:
                return False
            self.is_interrupted = False
            self.interruption_reason = ""
            self._cancel_resume_timer()

            if self.resume_settle_delay <= 0:
                self._process_message_queue(self.clock())
            else:
                self._resume_timer = threading.Timer(self.resume_settle_delay, self._drain)
                self._resume_timer.daemon = True
                self._resume_timer.start()

        logger.info("Alerts resumed")
        return True

    def speak_interaction(self, text):
        """Speak an interaction message ahead of every queued alert, even while interrupted."""
        with self._lock:
            now = self.clock()
            self.message_queue.appendleft(
                VoiceMessage(text, VoiceMessage.INTERACTION_ID, "interaction", now)
            )
            self._process_message_queue(now)

    def stop(self):
        """Stop the current message and drop everything queued."""
        with self._lock:
            self.message_queue.clear()
            if self._release_voice():
                self.speech.cancel()

    def clear_all_state(self):
        self.stop()
        with self._lock:
            self._cancel_resume_timer()
            self.last_announcements.clear()
            self.current_objects.clear()
            self.is_interrupted = False
            self.interruption_reason = ""
            self.last_interruption_time = -math.inf

    # Speech channel callbacks

    def on_utterance_finished(self, utterance_id, completed=True):
        """
        Called by the speech channel when an utterance ends, is cancelled or fails.
        """
        with self._lock:
            if utterance_id != self._utterance_id or not self.is_speaking:
                return
            if not completed:
                logger.warning(f"Utterance {utterance_id} did not complete")
            self.is_speaking = False
            self.current_message = None
            self._process_message_queue(self.clock())

    # Diagnostics

    def status(self):
        with self._lock:
            return AlertStatus(
                speaking=self.is_speaking,
                suspended=self.is_interrupted,
                queue_depth=len(self.message_queue),
                watched_count=len(self.last_announcements),
                critical_distance=self.critical_distance,
                interruption_reason=self.interruption_reason,
            )

    def get_stats(self):
        status = self.status()
        mode = "Interrupted" if status.suspended else "Active surveillance"
        return "\n".join([
            "Alert engine:",
            f"   - State: {'Speaking' if status.speaking else 'Silent'}",
            f"   - Mode: {mode}",
            f"   - Critical distance: {status.critical_distance:.2f}m",
            f"   - Queued messages: {status.queue_depth}",
            f"   - Watched objects: {status.watched_count}",
            f"   - Dangerous labels: {len(self.dangerous_objects)}",
        ])

    # Internals, called with the lock held

    def _drain(self):
        with self._lock:
            self._resume_timer = None
            self._process_message_queue(self.clock())

    def _process_message_queue(self, now):
        while not self.is_speaking and self.message_queue:
            message = self.message_queue[0]
            if self.is_interrupted and not message.is_interaction:
                return
            self.message_queue.popleft()
            if message.is_expired(now):
                continue
            self._speak(message, self._refresh_text(message))

    def _speak(self, message, text):
        self._utterance_id += 1
        utterance_id = self._utterance_id
        self.is_speaking = True
        self.current_message = message
        try:
            self.speech.speak(text, utterance_id)
        except Exception as e:
            logger.warning(f"Speech channel failed to start: {e}")
            if self._utterance_id == utterance_id:
                self.is_speaking = False
                self.current_message = None

    def _refresh_text(self, message):
        """Rebuild a queued alert with the latest direction and distance of its object."""
        if message.is_interaction:
            return message.text

        obj = self.current_objects.get(message.object_id)
        if obj is None or obj.distance is None:
            return strip_distance(message.text, self.language)

        return build_threat_message(
            obj.label, obj.last_rect, obj.distance,
            language=self.language,
            proximity_priority_distance=self.proximity_priority_distance,
        )

    def _cleanup_message_queue(self, now):
        self.message_queue = deque(
            message for message in self.message_queue
            if message.is_interaction
            or (not message.is_expired(now) and message.object_id in self.current_objects)
        )

    def _release_voice(self):
        was_speaking = self.is_speaking
        self.is_speaking = False
        self.current_message = None
        # Late callbacks for the cancelled utterance no longer match
        self._utterance_id += 1
        return was_speaking

    def _silence_alert(self):
        """Cut the alert being spoken, interaction messages play to the end."""
        message = self.current_message
        if self.is_speaking and message is not None and not message.is_interaction:
            self._release_voice()
            self.speech.cancel()
            self._process_message_queue(self.clock())

    def _cancel_resume_timer(self):
        if self._resume_timer is not None:
            self._resume_timer.cancel()
            self._resume_timer = None
