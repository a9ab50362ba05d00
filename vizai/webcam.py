import logging
import threading
import time

import cv2

logger = logging.getLogger(__name__)

class WebcamCapture:
    """
    Grabs frames from a camera on a background thread so the processing loop
    always reads the most recent one without blocking.
    """

    def __init__(self, camera_id=0, width=1280, height=720, fps=30):
        self.camera_id = camera_id
        self.width = width
        self.height = height
        self.fps = fps

        self.cap = None
        self.thread = None
        self._lock = threading.Lock()
        self._frame = None
        self._frame_time = None
        self._stopped = threading.Event()
        self.frame_count = 0
        self.start_time = None

    def start(self):
        """Open the camera and start the capture thread."""
        logger.info(f"Starting webcam capture (ID: {self.camera_id}, {self.width}x{self.height} @ {self.fps}fps)")

        self.cap = cv2.VideoCapture(self.camera_id)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open webcam with ID {self.camera_id}")

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        self._stopped.clear()
        self.start_time = time.time()
        self.thread = threading.Thread(target=self._update, name="webcam", daemon=True)
        self.thread.start()
        return self

    def _update(self):
        while not self._stopped.is_set():
            grabbed, frame = self.cap.read()
            if not grabbed:
                logger.error("Failed to grab frame from webcam")
                self._stopped.set()
                break
            with self._lock:
                self._frame = frame
                self._frame_time = time.time()
                self.frame_count += 1

    def read(self):
        """
        Return the latest frame and its capture time.

        Returns:
            Tuple (frame, timestamp), or (None, None) before the first frame
        """
        with self._lock:
            return self._frame, self._frame_time

    def get_fps(self):
        if not self.start_time:
            return 0.0
        elapsed_time = time.time() - self.start_time
        return self.frame_count / elapsed_time if elapsed_time > 0 else 0.0

    def stop(self):
        """Stop the capture thread and release the camera."""
        self._stopped.set()
        if self.thread is not None and self.thread.is_alive():
            self.thread.join(timeout=1.0)
        if self.cap is not None and self.cap.isOpened():
            self.cap.release()
        logger.info("Webcam capture stopped")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
