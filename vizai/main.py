import logging
import os
import sys
import threading
import time

import cv2

from . import config
from .webcam import WebcamCapture
from .perception.depth import BoxSizeDepthEstimator
from .perception.detector import ObjectDetector
from .perception.tracking import ObjectTracker
from .risk_assessment.alert_engine import AlertEngine
from .scheduler import PeriodicTask
from .ui.display import GuideDisplay
from .ui.speech_alert import LogSpeechChannel, SystemSpeechChannel

logger = logging.getLogger(__name__)

def setup_logging(level=None):
    """Log to stdout and to a file in the data directory."""
    os.makedirs(config.DATA_DIR, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level or config.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(stream=sys.stdout),
            logging.FileHandler(os.path.join(config.DATA_DIR, 'vizai.log'))
        ]
    )

class GuideApp:
    """
    Main application class: camera, detection, tracking, display and spoken alerts.

    The tracker is only touched by the frame loop. The alert engine runs on its
    own timer and reads tracker snapshots.
    """

    def __init__(self, camera_id=None, show_window=True, speech_enabled=None, depth_sampler=None):
        """
        Args:
            camera_id: Webcam index, or None to use config
            show_window: Open the OpenCV window
            speech_enabled: Speak alerts, or None to use config
            depth_sampler: Callable (normalized rect, label) -> meters or None. Defaults to
                a box-size estimate when DEPTH_ESTIMATION_ENABLED is set
        """
        logger.info("Initializing VizAI Guide")

        self.webcam = WebcamCapture(
            camera_id=config.WEBCAM_ID if camera_id is None else camera_id,
            width=config.VIDEO_WIDTH,
            height=config.VIDEO_HEIGHT,
            fps=config.FPS
        )
        self.detector = ObjectDetector()
        if depth_sampler is None and config.DEPTH_ESTIMATION_ENABLED:
            depth_sampler = BoxSizeDepthEstimator()
        self.depth_sampler = depth_sampler
        self.tracker = ObjectTracker()

        speech_enabled = config.SPEECH_ENABLED if speech_enabled is None else speech_enabled
        self.speech = SystemSpeechChannel() if speech_enabled else LogSpeechChannel()
        self.alert_engine = AlertEngine(self.speech)
        self.alert_timer = PeriodicTask(config.ALERT_EVALUATION_INTERVAL, self._evaluate_alerts, name="alert-evaluation")
        self.display = GuideDisplay(show_window=show_window)

        # Snapshot published by the frame loop for the alert timer
        self._snapshot_lock = threading.Lock()
        self._snapshot = []

        self.frame_count = 0
        self.running = False

    def start(self):
        logger.info("Starting VizAI Guide")
        self.running = True
        self.webcam.start()
        self.alert_timer.start()
        self._process_frames()

    def stop(self):
        if not self.running:
            return
        logger.info("Stopping VizAI Guide")
        self.running = False
        self.alert_timer.cancel()
        self.alert_engine.clear_all_state()
        self.speech.shutdown()
        self.webcam.stop()
        self.display.close()

    def _evaluate_alerts(self, now):
        with self._snapshot_lock:
            snapshot = self._snapshot
        self.alert_engine.evaluate(snapshot, now)

    def track_frame(self, frame, frame_time):
        """Detect, track and publish the snapshot read by the alert timer."""
        detections = self.detector.detect(frame, depth_sampler=self.depth_sampler)
        tracking = self.tracker.process_frame(detections, now=frame_time)

        snapshot = self.tracker.snapshot()
        with self._snapshot_lock:
            self._snapshot = snapshot
        return tracking

    def _process_frames(self):
        last_detection_time = 0.0
        detection_interval = 1.0 / config.DETECTION_FREQUENCY
        tracking = []

        while self.running:
            frame, frame_time = self.webcam.read()
            if frame is None:
                time.sleep(0.05)
                continue

            self.frame_count += 1

            if frame_time - last_detection_time >= detection_interval:
                last_detection_time = frame_time
                tracking = self.track_frame(frame, frame_time)

            self.display.update(frame, tracking=tracking, alert_status=self.alert_engine.status())

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            if key == ord('i'):
                self.alert_engine.interrupt("keyboard")
            elif key == ord('r'):
                self.alert_engine.resume()
            elif key == ord('s'):
                logger.info("\n" + self.tracker.get_detailed_stats(now=frame_time))
                logger.info("\n" + self.alert_engine.get_stats())

def main():
    """Main entry point for the application."""
    setup_logging()
    app = GuideApp()
    try:
        app.start()
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
    finally:
        app.stop()

if __name__ == "__main__":
    main()
