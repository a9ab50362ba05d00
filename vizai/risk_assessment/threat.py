"""
Threat classification and spoken message templates for proximity alerts
"""

import enum
import math
import re

class ThreatZone(enum.Enum):
    CRITICAL = "critical"
    SAFE = "safe"

def classify(distance, critical_distance):
    """
    Classify a distance against the critical distance.

    Args:
        distance: Distance in meters, or None when unknown
        critical_distance: Threshold in meters

    Returns:
        ThreatZone.CRITICAL when distance < critical_distance, ThreatZone.SAFE otherwise
    """
    if distance is None:
        return ThreatZone.SAFE
    return ThreatZone.CRITICAL if distance < critical_distance else ThreatZone.SAFE

class Direction(enum.Enum):
    FRONT = "front"
    LEFT = "left"
    RIGHT = "right"
    FRONT_LEFT = "front_left"
    FRONT_RIGHT = "front_right"

    @classmethod
    def from_rect(cls, rect):
        """
        Coarse direction of a normalized (x, y, width, height) box, from its center.
        """
        x, y, w, h = rect
        center_x = x + w / 2
        center_y = y + h / 2

        if center_x < 0.3:
            return cls.FRONT_LEFT if center_y < 0.4 else cls.LEFT
        if center_x > 0.7:
            return cls.FRONT_RIGHT if center_y < 0.4 else cls.RIGHT
        return cls.FRONT

SEVERITY_MARKERS = {
    "en": "Warning!",
    "fr": "ATTENTION !",
}

DIRECTION_PHRASES = {
    "en": {
        Direction.FRONT: "ahead",
        Direction.LEFT: "on the left",
        Direction.RIGHT: "on the right",
        Direction.FRONT_LEFT: "ahead on the left",
        Direction.FRONT_RIGHT: "ahead on the right",
    },
    "fr": {
        Direction.FRONT: "devant",
        Direction.LEFT: "à gauche",
        Direction.RIGHT: "à droite",
        Direction.FRONT_LEFT: "devant à gauche",
        Direction.FRONT_RIGHT: "devant à droite",
    },
}

LABEL_TRANSLATIONS = {
    "en": {
        "person": "person",
        "pedestrian": "pedestrian",
        "cyclist": "cyclist",
        "motorcyclist": "motorcyclist",
        "car": "car",
        "truck": "truck",
        "bus": "bus",
        "motorcycle": "motorbike",
        "bicycle": "bike",
        "slow_vehicle": "slow vehicle",
        "vehicle_group": "group of vehicles",
        "rail_vehicle": "tram",
        "pole": "pole",
        "traffic_cone": "cone",
        "barrier": "barrier",
        "temporary_barrier": "temporary barrier",
        "barrier_other": "barrier",
        "traffic_light": "traffic light",
        "traffic_sign": "traffic sign",
        "street_light": "street light",
        "fire_hydrant": "fire hydrant",
        "trash_can": "trash can",
        "bench": "bench",
    },
    "fr": {
        "person": "personne",
        "pedestrian": "piéton",
        "cyclist": "cycliste",
        "motorcyclist": "motocycliste",
        "car": "voiture",
        "truck": "camion",
        "bus": "bus",
        "motorcycle": "moto",
        "bicycle": "vélo",
        "slow_vehicle": "véhicule lent",
        "vehicle_group": "groupe de véhicules",
        "rail_vehicle": "véhicule ferroviaire",
        "pole": "poteau",
        "traffic_cone": "cône",
        "barrier": "barrière",
        "temporary_barrier": "barrière temporaire",
        "barrier_other": "autre barrière",
        "traffic_light": "feu de circulation",
        "traffic_sign": "panneau de signalisation",
        "street_light": "lampadaire",
        "fire_hydrant": "bouche d'incendie",
        "trash_can": "poubelle",
        "bench": "banc",
    },
}

DISTANCE_UNITS = {
    "en": {"near": "less than 50 centimeters", "meter": "meter", "meters": "meters", "at": "at"},
    "fr": {"near": "moins de 50 centimètres", "meter": "mètre", "meters": "mètres", "at": "à"},
}

def translate_label(label, language="en"):
    """Spoken name of a class label, falling back to the label itself."""
    table = LABEL_TRANSLATIONS.get(language, LABEL_TRANSLATIONS["en"])
    return table.get(label.lower(), label.replace("_", " "))

def format_proximity_distance(distance, language="en"):
    """
    Spoken form of a short distance.

    Below 0.5m the distance is not given precisely, below 1m it is rounded to
    0.1m and from 1m on to 0.5m.
    """
    units = DISTANCE_UNITS.get(language, DISTANCE_UNITS["en"])
    if distance < 0.5:
        return units["near"]
    if distance < 1.0:
        return f"{round(distance, 1):.1f} {units['meters'] if language == 'en' else units['meter']}"

    rounded = math.floor(distance * 2 + 0.5) / 2
    unit = units["meter"] if rounded == 1.0 else units["meters"]
    if rounded == int(rounded):
        return f"{int(rounded)} {unit}"
    return f"{rounded:.1f} {unit}"

def build_threat_message(label, rect, distance=None, language="en", proximity_priority_distance=None):
    """
    Build the spoken warning for a critical object.

    Args:
        label: Class label of the object
        rect: Normalized bounding box of the object
        distance: Distance in meters, or None
        language: "en" or "fr"
        proximity_priority_distance: Below this distance the distance itself is spoken

    Returns:
        Message text such as "Warning! car ahead on the left at 1 meter"
    """
    marker = SEVERITY_MARKERS.get(language, SEVERITY_MARKERS["en"])
    phrases = DIRECTION_PHRASES.get(language, DIRECTION_PHRASES["en"])
    text = f"{marker} {translate_label(label, language)} {phrases[Direction.from_rect(rect)]}"

    if distance is not None and proximity_priority_distance is not None and distance < proximity_priority_distance:
        units = DISTANCE_UNITS.get(language, DISTANCE_UNITS["en"])
        text += f" {units['at']} {format_proximity_distance(distance, language)}"

    return text

def strip_distance(text, language="en"):
    """Remove a trailing distance phrase from a message built by build_threat_message."""
    units = DISTANCE_UNITS.get(language, DISTANCE_UNITS["en"])
    return re.sub(rf" {re.escape(units['at'])} (less than |moins de )?[0-9.]+ \S+$", "", text)
