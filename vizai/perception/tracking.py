import copy
import logging
import time
import uuid
from collections import deque, namedtuple

import numpy as np

from .. import config

logger = logging.getLogger(__name__)

# Round-robin palette (RGB), one color per tracked object for its whole lifetime
COLOR_PALETTE = [
    ("red", (255, 59, 48)),
    ("blue", (0, 122, 255)),
    ("green", (52, 199, 89)),
    ("orange", (255, 149, 0)),
    ("purple", (175, 82, 222)),
    ("pink", (255, 45, 85)),
    ("yellow", (255, 204, 0)),
    ("teal", (48, 176, 199)),
    ("mint", (0, 199, 190)),
    ("indigo", (88, 86, 214)),
    ("brown", (162, 132, 94)),
    ("magenta", (204, 51, 153)),
    ("lime", (51, 204, 102)),
    ("dark orange", (230, 153, 26)),
    ("royal blue", (77, 77, 230)),
    ("yellow green", (179, 230, 51)),
    ("coral", (230, 77, 77)),
    ("turquoise", (102, 204, 204)),
    ("light violet", (204, 102, 230)),
]

# What the presentation layer receives for every tracked object
EnrichedDetection = namedtuple(
    "EnrichedDetection",
    ["rect", "label", "confidence", "distance", "tracking_id", "color", "visibility_weight"],
)

class TrackedObject:
    """Represents a tracked object with a persistent identity across frames."""

    def __init__(self, detection, tracking_number, color, timestamp, history_size=30, memory_opacity=0.3):
        """
        Initialize a tracked object from the detection that created it.

        Args:
            detection: Detection object
            tracking_number: User-facing number (1, 2, 3...), never reused
            color: RGB tuple from the palette
            timestamp: Creation time in seconds
            history_size: Number of match timestamps kept
            memory_opacity: Visibility weight once the object is in memory
        """
        self.id = uuid.uuid4()
        self.tracking_number = tracking_number
        self.color = color
        self.label = detection.label
        self.first_seen = timestamp
        self.last_seen = timestamp
        self.last_center = detection.center
        self.last_rect = detection.rect
        self.confidence = detection.confidence
        self.distance = detection.distance
        self.frames_unmatched = 0
        self.is_visible = True
        self.memory_opacity = memory_opacity
        self.history = deque([timestamp], maxlen=history_size)

    def update(self, detection, timestamp):
        """
        Update the tracked object with a matched detection.

        Args:
            detection: New Detection object
            timestamp: Frame time in seconds
        """
        self.label = detection.label
        self.last_center = detection.center
        self.last_rect = detection.rect
        self.confidence = detection.confidence
        self.distance = detection.distance
        self.last_seen = timestamp
        self.frames_unmatched = 0
        self.is_visible = True
        self.history.append(timestamp)

    @property
    def is_active(self):
        """Whether the object is currently matched (not in memory)."""
        return self.is_visible

    @property
    def opacity(self):
        return 1.0 if self.is_visible else self.memory_opacity

    @property
    def lifetime(self):
        """Seconds between first and last successful match."""
        return self.last_seen - self.first_seen

    def is_expired(self, now, timeout):
        return now - self.last_seen > timeout

    def should_keep_in_memory(self, minimum_lifetime):
        return self.lifetime >= minimum_lifetime

    def copy(self):
        """Return a detached copy safe to hand to other threads."""
        clone = copy.copy(self)
        clone.history = deque(self.history, maxlen=self.history.maxlen)
        return clone

    def __repr__(self):
        state = "active" if self.is_visible else "memory"
        return f"TrackedObject(#{self.tracking_number} {self.label} {state} distance={self.distance})"

class ObjectTracker:
    """
    Tracks objects across frames with greedy label-and-proximity matching.

    Each frame goes through five phases: matching, update of matched objects,
    creation of new objects, cleanup of lost objects and output generation.
    """

    _TUNABLES = (
        "proximity_threshold",
        "max_frames_lost",
        "memory_timeout",
        "min_lifetime_for_memory",
        "max_tracked_objects",
        "memory_opacity",
    )

    def __init__(self, proximity_threshold=None, max_frames_lost=None, memory_timeout=None,
                 min_lifetime_for_memory=None, max_tracked_objects=None, memory_opacity=None,
                 history_size=None):
        """
        Initialize the object tracker. Every argument left to None comes from config.

        Args:
            proximity_threshold: Max center distance (normalized) for a match
            max_frames_lost: Unmatched frames tolerated before an object goes to memory
            memory_timeout: Seconds a remembered object survives after it was last seen
            min_lifetime_for_memory: Objects seen for less than this are deleted when lost
            max_tracked_objects: Hard cap on tracked objects
            memory_opacity: Visibility weight reported for remembered objects
            history_size: Number of match timestamps kept per object
        """
        self.proximity_threshold = config.TRACKER_PROXIMITY_THRESHOLD
        self.max_frames_lost = config.TRACKER_MAX_FRAMES_LOST
        self.memory_timeout = config.TRACKER_MEMORY_TIMEOUT
        self.min_lifetime_for_memory = config.TRACKER_MIN_LIFETIME_FOR_MEMORY
        self.max_tracked_objects = config.TRACKER_MAX_TRACKED_OBJECTS
        self.memory_opacity = config.TRACKER_MEMORY_OPACITY
        self.history_size = history_size or config.TRACKER_HISTORY_SIZE
        self.tracks = []  # Creation order
        self.configure(
            proximity_threshold=proximity_threshold,
            max_frames_lost=max_frames_lost,
            memory_timeout=memory_timeout,
            min_lifetime_for_memory=min_lifetime_for_memory,
            max_tracked_objects=max_tracked_objects,
            memory_opacity=memory_opacity,
        )

        self.next_tracking_number = 1
        self.color_index = 0

        self.total_objects_tracked = 0
        self.short_term_objects = 0
        self.long_term_objects = 0

        logger.info(
            f"Object tracker initialized (memory after {self.min_lifetime_for_memory}s of life, "
            f"memory timeout {self.memory_timeout}s)"
        )

    def configure(self, **settings):
        """
        Change tracker parameters at runtime. None values are ignored.

        Raises:
            ValueError: On an unknown parameter or a non-positive proximity threshold
        """
        for name, value in settings.items():
            if name not in self._TUNABLES:
                raise ValueError(f"Unknown tracker parameter: {name}")
            if value is None:
                continue
            if name == "proximity_threshold" and value <= 0:
                raise ValueError("proximity_threshold must be positive")
            setattr(self, name, value)
            if name == "memory_opacity":
                for obj in self.tracks:
                    obj.memory_opacity = value

    def process_frame(self, detections, now=None):
        """
        Process one frame of detections.

        Args:
            detections: List of Detection objects, in detector output order
            now: Frame time in seconds, defaults to time.time()

        Returns:
            List of EnrichedDetection, one per tracked object (active and memory),
            in tracker order
        """
        now = time.time() if now is None else now

        matches, new_detections = self._match_detections(list(detections))

        touched = set()
        for obj, detection in matches:
            obj.update(detection, now)
            touched.add(obj.id)

        for obj in self._create_objects(new_detections, now):
            touched.add(obj.id)

        self._cleanup_lost_objects(touched, now)

        return self._generate_enriched_detections()

    def reset(self):
        """Forget every object and restart numbering and colors."""
        self.tracks = []
        self.next_tracking_number = 1
        self.color_index = 0
        self.reset_stats()
        logger.info("Object tracker reset")

    # Read-only accessors, they hand out copies

    def snapshot(self):
        return [obj.copy() for obj in self.tracks]

    def active_only(self):
        return [obj.copy() for obj in self.tracks if obj.is_active]

    def memory_only(self):
        return [obj.copy() for obj in self.tracks if not obj.is_active]

    def lookup(self, tracking_number):
        """Return a copy of the object with this tracking number, or None."""
        for obj in self.tracks:
            if obj.tracking_number == tracking_number:
                return obj.copy()
        return None

    def get_tracked_object_count(self):
        """Return (active, memory, total) counts."""
        active = sum(1 for obj in self.tracks if obj.is_active)
        return active, len(self.tracks) - active, len(self.tracks)

    def _match_detections(self, detections):
        """
        Greedy detection-major matching.

        Each detection in input order claims the unclaimed object with the
        same label (case-insensitive) and the highest proximity score.
        Ties go to the oldest object.

        Returns:
            Tuple of (list of (TrackedObject, Detection), list of unmatched Detection)
        """
        if not self.tracks:
            return [], list(detections)

        centers = np.array([obj.last_center for obj in self.tracks], dtype=float)
        labels = np.array([obj.label.lower() for obj in self.tracks])
        claimed = np.zeros(len(self.tracks), dtype=bool)

        matches = []
        unmatched = []
        for detection in detections:
            cx, cy = detection.center
            distances = np.hypot(centers[:, 0] - cx, centers[:, 1] - cy)
            scores = np.maximum(0.0, 1.0 - distances / self.proximity_threshold)

            eligible = ~claimed & (labels == detection.label.lower()) & (scores > 0)
            if not eligible.any():
                unmatched.append(detection)
                continue

            # argmax returns the first maximum, tracks are kept in creation order
            best = int(np.argmax(np.where(eligible, scores, -1.0)))
            claimed[best] = True
            matches.append((self.tracks[best], detection))

        return matches, unmatched

    def _create_objects(self, detections, now):
        capacity = max(0, self.max_tracked_objects - len(self.tracks))
        admitted = detections[:capacity]

        created = []
        for detection in admitted:
            obj = TrackedObject(detection, self.next_tracking_number, self._next_color(), now,
                                history_size=self.history_size, memory_opacity=self.memory_opacity)
            self.tracks.append(obj)
            self.next_tracking_number += 1
            self.total_objects_tracked += 1
            created.append(obj)
            logger.debug(f"New tracked object #{obj.tracking_number}: {obj.label}")

        dropped = len(detections) - len(admitted)
        if dropped > 0:
            logger.warning(f"Tracking limit reached ({self.max_tracked_objects}), {dropped} detections ignored")

        return created

    def _cleanup_lost_objects(self, touched, now):
        kept = []
        for obj in self.tracks:
            if obj.id in touched:
                kept.append(obj)
                continue

            was_in_memory = not obj.is_visible
            obj.frames_unmatched += 1

            if obj.is_visible and obj.frames_unmatched > self.max_frames_lost:
                obj.is_visible = False
                if not obj.should_keep_in_memory(self.min_lifetime_for_memory):
                    self.short_term_objects += 1
                    logger.debug(
                        f"Object #{obj.tracking_number} ({obj.label}) deleted "
                        f"(lifetime {obj.lifetime:.1f}s < {self.min_lifetime_for_memory}s)"
                    )
                    continue
                self.long_term_objects += 1
                logger.debug(f"Object #{obj.tracking_number} ({obj.label}) kept in memory (lifetime {obj.lifetime:.1f}s)")

            if was_in_memory and obj.is_expired(now, self.memory_timeout):
                logger.debug(
                    f"Object #{obj.tracking_number} ({obj.label}) deleted after "
                    f"{now - obj.last_seen:.1f}s in memory"
                )
                continue

            kept.append(obj)

        self.tracks = kept

    def _generate_enriched_detections(self):
        return [
            EnrichedDetection(
                rect=obj.last_rect,
                label=obj.label,
                confidence=obj.confidence,
                distance=obj.distance,
                tracking_id=obj.tracking_number,
                color=obj.color,
                visibility_weight=obj.opacity,
            )
            for obj in self.tracks
        ]

    def _next_color(self):
        _, color = COLOR_PALETTE[self.color_index % len(COLOR_PALETTE)]
        self.color_index += 1
        return color

    # Statistics

    def get_tracking_stats(self):
        active, memory, _ = self.get_tracked_object_count()
        lines = [
            "Tracking statistics:",
            f"   - Active objects: {active}",
            f"   - Objects in memory: {memory}",
            f"   - Total tracked: {self.total_objects_tracked}",
            f"   - Memory timeout: {self.memory_timeout:.1f}s",
            f"   - Minimum lifetime for memory: {self.min_lifetime_for_memory:.1f}s",
            f"   - Proximity threshold: {self.proximity_threshold * 100:.0f}%",
        ]
        return "\n".join(lines)

    def get_survival_stats(self):
        total = self.short_term_objects + self.long_term_objects
        if total == 0:
            return "No survival data"

        short_pct = self.short_term_objects / total * 100
        long_pct = self.long_term_objects / total * 100
        return "\n".join([
            "Survival statistics:",
            f"   - Short-term objects (< {self.min_lifetime_for_memory}s): {self.short_term_objects} ({short_pct:.1f}%)",
            f"   - Long-term objects (>= {self.min_lifetime_for_memory}s): {self.long_term_objects} ({long_pct:.1f}%)",
        ])

    def get_detailed_stats(self, now=None):
        """Tracking and survival statistics followed by one line per tracked object."""
        now = time.time() if now is None else now
        sections = [self.get_tracking_stats()]
        if self.short_term_objects + self.long_term_objects > 0:
            sections.append(self.get_survival_stats())

        active = [obj for obj in self.tracks if obj.is_active]
        memory = [obj for obj in self.tracks if not obj.is_active]

        lines = ["Active objects:"]
        for obj in active:
            qualifier = "long-term" if obj.should_keep_in_memory(self.min_lifetime_for_memory) else "short-term"
            lines.append(f"   - #{obj.tracking_number} {obj.label} {qualifier} (lifetime {obj.lifetime:.1f}s)")
        sections.append("\n".join(lines))

        if memory:
            lines = ["Objects in memory:"]
            for obj in memory:
                lines.append(
                    f"   - #{obj.tracking_number} {obj.label} "
                    f"(lost {now - obj.last_seen:.1f}s ago, lifetime {obj.lifetime:.1f}s)"
                )
            sections.append("\n".join(lines))

        return "\n\n".join(sections)

    def reset_stats(self):
        self.total_objects_tracked = 0
        self.short_term_objects = 0
        self.long_term_objects = 0
