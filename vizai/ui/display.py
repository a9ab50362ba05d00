import logging
from datetime import datetime

import cv2

from .. import config

logger = logging.getLogger(__name__)

class GuideDisplay:
    """
    Shows the camera feed with tracked objects drawn in their track colors.
    """

    def __init__(self, window_name=None, show_window=True):
        """
        Initialize the display.

        Args:
            window_name: Name of the display window
            show_window: Create an OpenCV window, False only renders frames
        """
        self.window_name = window_name or config.DISPLAY_WINDOW_NAME
        self.display_detection_boxes = config.DISPLAY_DETECTION_BOXES
        self.display_status = config.DISPLAY_STATUS
        self.show_window = show_window

        if self.show_window:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            cv2.resizeWindow(self.window_name, config.VIDEO_WIDTH, config.VIDEO_HEIGHT)

        logger.info("Display initialized")

    def update(self, frame, tracking=None, alert_status=None):
        """
        Draw overlays on a frame and show it.

        Args:
            frame: Image frame (BGR)
            tracking: List of EnrichedDetection from the tracker
            alert_status: AlertStatus from the alert engine

        Returns:
            The annotated frame
        """
        if frame is None:
            return None

        display_frame = frame.copy()

        if self.display_detection_boxes and tracking:
            display_frame = self.draw_tracking(display_frame, tracking)

        if self.display_status:
            display_frame = self._draw_status(display_frame, tracking or [], alert_status)

        if self.show_window:
            cv2.imshow(self.window_name, display_frame)

        return display_frame

    def draw_tracking(self, frame, tracking):
        """
        Draw one box per tracked object, remembered objects faded by their visibility weight.
        """
        height, width = frame.shape[:2]

        for item in tracking:
            x, y, w, h = item.rect
            x1, y1 = int(x * width), int(y * height)
            x2, y2 = int((x + w) * width), int((y + h) * height)
            r, g, b = item.color
            color = (b, g, r)

            text = f"{item.label} #{item.tracking_id}"
            if item.distance is not None:
                text += f" {item.distance:.1f}m"

            overlay = frame.copy()
            cv2.rectangle(overlay, (x1, y1), (x2, y2), color, 2)
            cv2.putText(overlay, text, (x1, max(y1 - 8, 12)), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 2)

            alpha = item.visibility_weight
            frame = cv2.addWeighted(overlay, alpha, frame, 1 - alpha, 0)

        return frame

    def _draw_status(self, frame, tracking, alert_status):
        height, width = frame.shape[:2]

        active = sum(1 for item in tracking if item.visibility_weight >= 1.0)
        text = f"Tracked: {len(tracking)} (active {active})"
        if alert_status is not None:
            mode = "PAUSED" if alert_status.suspended else "ON"
            text += f" | Alerts: {mode} | Queue: {alert_status.queue_depth} | Critical: {alert_status.critical_distance:.1f}m"
            if alert_status.speaking:
                cv2.circle(frame, (width - 20, 20), 10, (0, 0, 255), -1)

        cv2.putText(frame, text, (10, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        cv2.putText(frame, timestamp, (10, height - 10), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)

        return frame

    def close(self):
        if self.show_window:
            cv2.destroyWindow(self.window_name)
