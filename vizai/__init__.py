"""
VizAI Guide: object tracking and spoken proximity alerts
"""

__version__ = "0.1.0"
