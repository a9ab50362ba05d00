import logging
import os

import torch
from ultralytics import YOLO

from .. import config
from .detection import Detection

logger = logging.getLogger(__name__)

class ObjectDetector:
    """
    Detects objects in images using YOLOv8 and returns normalized detections.
    """

    def __init__(self, model_path=None, confidence_threshold=None, classes=None, min_box_size=None, device=None):
        """
        Initialize the object detector.

        Args:
            model_path: Path to the model file, or None to use the path from config
            confidence_threshold: Minimum confidence, or None to use config
            classes: Class names to keep (empty keeps all), or None to use config
            min_box_size: Minimum normalized box width and height, or None to use config
            device: Torch device name, defaults to CUDA when available
        """
        self.model_path = model_path or config.DETECTION_MODEL
        self.confidence_threshold = confidence_threshold if confidence_threshold is not None else config.DETECTION_CONFIDENCE
        self.classes = set(c.lower() for c in (classes if classes is not None else config.DETECTION_CLASSES))
        self.min_box_size = min_box_size if min_box_size is not None else config.DETECTION_MIN_BOX_SIZE
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")

        logger.info(f"Initializing object detector with model: {self.model_path} on {self.device}")

        try:
            if os.path.exists(self.model_path):
                self.model = YOLO(self.model_path)
            else:
                # ultralytics fetches the standard weights by name
                logger.warning(f"Model file not found: {self.model_path}, loading {os.path.basename(self.model_path)}")
                self.model = YOLO(os.path.basename(self.model_path))
            logger.info("Object detection model loaded successfully")
        except Exception as e:
            logger.error(f"Failed to load model: {e}")
            self.model = None

    def detect(self, frame, depth_sampler=None):
        """
        Detect objects in a frame.

        Args:
            frame: Image as numpy array (BGR format from OpenCV)
            depth_sampler: Optional callable taking (normalized rect, label) and returning meters or None

        Returns:
            List of Detection objects in model output order
        """
        if self.model is None:
            logger.warning("No model available for detection")
            return []

        try:
            results = self.model(frame, conf=self.confidence_threshold, device=self.device, verbose=False)[0]
        except Exception as e:
            logger.error(f"Error during object detection: {e}")
            return []

        height, width = frame.shape[:2]
        detections = []
        for x1, y1, x2, y2, confidence, class_id in results.boxes.data.cpu().numpy():
            label = results.names[int(class_id)]
            if self.classes and label.lower() not in self.classes:
                continue

            rect = self.normalize_box((x1, y1, x2, y2), width, height)
            if rect[2] < self.min_box_size or rect[3] < self.min_box_size:
                continue

            distance = depth_sampler(rect, label) if depth_sampler is not None else None
            detections.append(Detection(rect, label, confidence, distance))

        return detections

    @staticmethod
    def normalize_box(bbox, frame_width, frame_height):
        """
        Convert a pixel box (x1, y1, x2, y2) to a normalized (x, y, width, height) box.
        """
        x1, y1, x2, y2 = bbox
        x1 = min(max(x1 / frame_width, 0.0), 1.0)
        x2 = min(max(x2 / frame_width, 0.0), 1.0)
        y1 = min(max(y1 / frame_height, 0.0), 1.0)
        y2 = min(max(y2 / frame_height, 0.0), 1.0)
        return (float(x1), float(y1), float(x2 - x1), float(y2 - y1))
