import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(threadName)s] %(name)s.%(funcName)s:%(lineno)d - %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def resource_path(relative_path):
    """Returns the absolute path to a bundled resource (handles PyInstaller's _MEIPASS)"""
    package_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    base_path = getattr(sys, '_MEIPASS', package_root)
    return os.path.join(base_path, relative_path)


def setup_logging(level_name: str = "INFO"):
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
