"""
Perception module for the object-tracking vision sensor.

This module provides the sensor wire protocol, the byte channel the
sensor is read through, and the background frame reader that tracks a
single object.
"""

from .frame_protocol import TrackedObject, EMPTY_READING, SYNC_WORD, FRESHNESS_WINDOW
from .byte_channel import ByteChannel, SerialByteChannel
from .frame_reader import SensorFrameReader

__all__ = [
    # Wire protocol
    'TrackedObject',
    'EMPTY_READING',
    'SYNC_WORD',
    'FRESHNESS_WINDOW',

    # Byte channel
    'ByteChannel',
    'SerialByteChannel',

    # Frame reader
    'SensorFrameReader',
]
