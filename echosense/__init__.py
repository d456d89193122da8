"""
EchoSense - Gesture and breathing sensing from acoustic ranging

Turns the distance stream of an ultrasonic ranging front-end into a smoothed
distance, an approach/retreat gesture label and a breathing rate estimate.
"""

__version__ = "0.1.0"
__author__ = "EchoSense Project"

from .config import Config
from .settings import CalibrationParams, MemorySettingsStore
from .pipeline import Pipeline, Snapshot
from .driver import SamplingDriver
