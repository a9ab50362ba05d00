import logging
import math

from .. import config

logger = logging.getLogger(__name__)

class BoxSizeDepthEstimator:
    """
    Estimates the distance to an object from the height of its bounding box.

    Uses a pinhole camera model with a typical real-world height per label.
    The estimate is coarse but gives the alert engine a distance when no depth
    sensor is available. Pass an instance as the depth sampler of
    ObjectDetector.detect().
    """

    def __init__(self, vertical_fov=None, object_heights=None, default_height=None, max_distance=None):
        """
        Args:
            vertical_fov: Camera vertical field of view in degrees, or None to use config
            object_heights: Mapping of label to typical height in meters, or None to use config
            default_height: Height in meters for labels missing from object_heights
            max_distance: Estimates beyond this many meters are returned as None
        """
        fov = vertical_fov if vertical_fov is not None else config.DEPTH_CAMERA_VERTICAL_FOV
        if not 0 < fov < 180:
            raise ValueError(f"Vertical field of view must be between 0 and 180 degrees, got {fov}")

        self.vertical_fov = fov
        self.object_heights = {
            label.lower(): height
            for label, height in (object_heights if object_heights is not None else config.DEPTH_OBJECT_HEIGHTS).items()
        }
        self.default_height = default_height if default_height is not None else config.DEPTH_DEFAULT_OBJECT_HEIGHT
        self.max_distance = max_distance if max_distance is not None else config.DEPTH_MAX_DISTANCE

        # Frame height in meters at a distance of one meter
        self._frame_span = 2.0 * math.tan(math.radians(fov) / 2.0)

        logger.info(f"Box-size depth estimation enabled (vertical FOV {fov} degrees)")

    def __call__(self, rect, label):
        return self.estimate(rect, label)

    def estimate(self, rect, label):
        """
        Distance in meters for a normalized (x, y, width, height) box, or None.
        """
        box_height = rect[3]
        if box_height <= 0:
            return None

        real_height = self.object_heights.get(label.lower(), self.default_height)
        distance = real_height / (box_height * self._frame_span)
        if distance > self.max_distance:
            return None
        return distance
