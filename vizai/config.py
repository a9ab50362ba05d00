# Project configuration
import os

LOG_LEVEL = "INFO"

# Path helpers
def model_path(model_name):
    """Return the absolute path to a model file."""
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "models", model_name)

# Video settings
VIDEO_WIDTH = 1280
VIDEO_HEIGHT = 720
FPS = 30
WEBCAM_ID = 0  # Default webcam ID, usually 0 for built-in webcam

# Storage settings
DATA_DIR = "data"

# Detection settings
DETECTION_MODEL = model_path("yolov8n.pt")  # Lightweight YOLOv8 nano model
DETECTION_CONFIDENCE = 0.4
DETECTION_CLASSES = []  # Empty list keeps every class the model knows
DETECTION_MIN_BOX_SIZE = 0.01  # Minimum normalized width/height, smaller boxes never reach the tracker
DETECTION_FREQUENCY = 10  # Detection passes per second

# Depth settings (box-size estimate, used when no depth sensor is plugged in)
DEPTH_ESTIMATION_ENABLED = True
DEPTH_CAMERA_VERTICAL_FOV = 50.0  # Degrees
DEPTH_DEFAULT_OBJECT_HEIGHT = 1.0  # Meters, for labels missing below
DEPTH_OBJECT_HEIGHTS = {
    "person": 1.7,
    "bicycle": 1.1,
    "motorcycle": 1.2,
    "car": 1.5,
    "bus": 3.0,
    "truck": 3.2,
    "train": 3.8,
    "dog": 0.6,
    "cat": 0.3,
    "chair": 0.9,
    "bench": 0.8,
    "traffic light": 0.9,
    "stop sign": 0.8,
    "fire hydrant": 0.7,
    "potted plant": 0.6,
}
DEPTH_MAX_DISTANCE = 20.0  # Estimates beyond this are reported as unknown

# Tracker settings
TRACKER_PROXIMITY_THRESHOLD = 0.15  # Fraction of normalized screen width
TRACKER_MAX_FRAMES_LOST = 10  # ~0.5s at 20fps before an object goes to memory
TRACKER_MEMORY_TIMEOUT = 3.0  # Seconds an object stays in memory after it was last seen
TRACKER_MIN_LIFETIME_FOR_MEMORY = 2.0  # Objects seen for less than this are deleted instead of remembered
TRACKER_MAX_TRACKED_OBJECTS = 20
TRACKER_MEMORY_OPACITY = 0.3  # Visibility weight of objects kept in memory
TRACKER_HISTORY_SIZE = 30

# Alert settings
ALERT_CRITICAL_DISTANCE = 2.0  # Meters, closer objects are critical threats
ALERT_MIN_REPEAT_INTERVAL = 1.5  # Seconds between two announcements of the same object
ALERT_INTERRUPT_COOLDOWN = 1.0  # Seconds between two accepted interruptions
ALERT_RESUME_SETTLE_DELAY = 0.5  # Seconds of silence after an interaction before alerts resume
ALERT_MESSAGE_LIFETIME = 2.0  # Queued alerts older than this are not spoken
ALERT_PROXIMITY_PRIORITY_DISTANCE = 1.5  # Meters, closer threats get the distance spoken
ALERT_EVALUATION_INTERVAL = 0.5  # Seconds between two alert evaluations
ALERT_LANGUAGE = "en"  # "en" or "fr"
ALERT_DANGEROUS_OBJECTS = [
    # People
    "person", "pedestrian", "cyclist", "motorcyclist",
    # Vehicles
    "car", "truck", "bus", "motorcycle", "bicycle", "slow_vehicle", "vehicle_group", "rail_vehicle",
    # Street furniture and obstacles
    "pole", "traffic_cone", "barrier", "temporary_barrier", "barrier_other",
]

# Speech settings
SPEECH_ENABLED = True
SPEECH_RATE = 1  # Speech rate (-10 to 10, higher is faster)
SPEECH_USE_FEMALE_VOICE = True  # Use female voice for better clarity on Windows

# UI settings
DISPLAY_DETECTION_BOXES = True
DISPLAY_STATUS = True
DISPLAY_WINDOW_NAME = "VizAI Guide"
