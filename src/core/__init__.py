"""
Core orchestration for the tracking controller.
Provides the tracking session, configuration loading, status reporting
and simulated hardware.
"""

from .tracking_session import TrackingSession, create_tracking_session
from .config_loader import load_config, DEFAULT_CONFIG
from .status_reporter import StatusReporter
from .hardware_mock import MockByteChannel, MockOutputLine

__all__ = [
    'TrackingSession',
    'create_tracking_session',
    'load_config',
    'DEFAULT_CONFIG',
    'StatusReporter',
    'MockByteChannel',
    'MockOutputLine',
]
