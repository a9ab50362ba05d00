class Detection:
    """Represents one object detection from a single frame."""

    __slots__ = ("rect", "label", "confidence", "distance")

    def __init__(self, rect, label, confidence, distance=None):
        """
        Initialize a detection.

        Args:
            rect: Normalized bounding box as (x, y, width, height), all values in [0, 1]
            label: Class name of the detected object
            confidence: Detection confidence score (0-1)
            distance: Distance to the object in meters, or None when no depth sample was available
        """
        self.rect = tuple(float(v) for v in rect)
        self.label = label
        self.confidence = float(confidence)
        self.distance = None if distance is None else float(distance)

    @property
    def width(self):
        """Width of the bounding box."""
        return self.rect[2]

    @property
    def height(self):
        """Height of the bounding box."""
        return self.rect[3]

    @property
    def center(self):
        """Center point (x, y) of the bounding box."""
        x, y, w, h = self.rect
        return (x + w / 2, y + h / 2)

    def __repr__(self):
        return f"Detection(label={self.label!r}, rect={self.rect}, confidence={self.confidence:.2f}, distance={self.distance})"
