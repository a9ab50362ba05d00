#!/usr/bin/env python3
"""
VizAI Guide - spoken proximity warnings for visually impaired pedestrians
"""

import argparse
import logging
import sys

from vizai import config
from vizai.main import GuideApp, setup_logging

logger = logging.getLogger(__name__)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="VizAI Guide")
    parser.add_argument("--camera", type=int, default=config.WEBCAM_ID, help="Webcam ID")
    parser.add_argument("--critical-distance", type=float, default=None, help="Critical distance in meters")
    parser.add_argument("--language", choices=["en", "fr"], default=config.ALERT_LANGUAGE, help="Alert language")
    parser.add_argument("--no-speech", action="store_true", help="Log alerts instead of speaking them")
    parser.add_argument("--headless", action="store_true", help="Do not open a display window")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    config.ALERT_LANGUAGE = args.language
    setup_logging(args.log_level)

    app = GuideApp(camera_id=args.camera, show_window=not args.headless, speech_enabled=not args.no_speech)
    if args.critical_distance is not None:
        app.alert_engine.set_critical_distance(args.critical_distance)

    try:
        app.start()
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1
    finally:
        app.stop()
    return 0

if __name__ == "__main__":
    sys.exit(main())
