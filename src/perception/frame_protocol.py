"""
Wire format for the object-tracking vision sensor.

The sensor reports a single tracked object per frame. Each frame is a
big-endian 0xAA55 sync marker followed by six big-endian 16-bit words:
checksum, signature, and four geometry fields. The sensor is mounted
rotated 90 degrees, so the geometry words are swapped into robot
orientation while decoding.
"""
import numpy as np
from typing import Dict, Optional
from dataclasses import dataclass, asdict


SYNC_WORD = 0xAA55
SYNC_BYTES = b'\xaa\x55'
WORD_SIZE = 2
WORDS_PER_FRAME = 6
FRAME_PAYLOAD_SIZE = WORD_SIZE * WORDS_PER_FRAME

# Seconds a reading stays fresh enough to count as tracking
FRESHNESS_WINDOW = 0.1

_WORD_DTYPE = np.dtype('>u2')


@dataclass(frozen=True)
class TrackedObject:
    """
    One validated sensor reading in robot orientation.

    Attributes:
        checksum: Sum of the five other fields as sent by the sensor
        signature: Object classification ID
        center_x: Object center x in sensor pixels
        center_y: Object center y in sensor pixels
        width: Bounding box width in pixels
        height: Bounding box height in pixels
        captured_at: Monotonic time the frame was accepted (seconds)
    """
    checksum: int = 0
    signature: int = 0
    center_x: int = 0
    center_y: int = 0
    width: int = 0
    height: int = 0
    captured_at: float = 0.0

    def field_sum(self) -> int:
        """Sum of the fields covered by the checksum."""
        return self.signature + self.center_x + self.center_y + self.width + self.height

    def is_valid(self) -> bool:
        """True if the checksum matches and does not mark an empty frame."""
        return self.checksum != 0 and self.checksum == self.field_sum()

    def age(self, now: float) -> float:
        return now - self.captured_at

    def is_fresh(self, now: float, window: float = FRESHNESS_WINDOW) -> bool:
        """
        True while the reading is younger than window.

        Ages are compared in whole milliseconds so a reading exactly one
        window old is already stale despite float subtraction error.
        """
        return _to_ms(self.age(now)) < _to_ms(window)

    def to_dict(self) -> Dict:
        """Convert to dictionary for logging and status reports."""
        return asdict(self)


EMPTY_READING = TrackedObject()


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def word_value(raw: bytes) -> int:
    """
    Interpret two bytes as a big-endian unsigned 16-bit word.

    Args:
        raw: Exactly two bytes

    Returns:
        Word value in [0, 65535]
    """
    return (raw[0] << 8) | raw[1]


def is_sync(raw: bytes) -> bool:
    return len(raw) == WORD_SIZE and word_value(raw) == SYNC_WORD


def decode_words(payload: bytes) -> np.ndarray:
    """
    Decode a frame payload into its six raw words (wire order).

    Args:
        payload: FRAME_PAYLOAD_SIZE bytes following the sync marker

    Returns:
        Array of six unsigned words

    Raises:
        ValueError: If the payload has the wrong length
    """
    if len(payload) != FRAME_PAYLOAD_SIZE:
        raise ValueError(
            f"Frame payload must be {FRAME_PAYLOAD_SIZE} bytes, got {len(payload)}"
        )
    return np.frombuffer(payload, dtype=_WORD_DTYPE).astype(np.int64)


def decode_frame(payload: bytes, captured_at: float) -> TrackedObject:
    """
    Decode a frame payload into a reading, applying the mounting rotation.

    The wire x/y and width/height slots are swapped: the third word is
    the robot-frame y, the fourth is x, the fifth is height and the
    sixth is width.

    Args:
        payload: FRAME_PAYLOAD_SIZE bytes following the sync marker
        captured_at: Monotonic acceptance time to stamp on the reading

    Returns:
        Decoded reading (not yet validated)
    """
    checksum, signature, center_y, center_x, height, width = (
        int(word) for word in decode_words(payload)
    )
    return TrackedObject(
        checksum=checksum,
        signature=signature,
        center_x=center_x,
        center_y=center_y,
        width=width,
        height=height,
        captured_at=captured_at
    )


def parse_frame(payload: bytes, captured_at: float) -> Optional[TrackedObject]:
    """
    Decode and validate a frame payload.

    Returns:
        The reading, or None if the checksum fails or marks an empty frame
    """
    reading = decode_frame(payload, captured_at)
    if not reading.is_valid():
        return None
    return reading


def encode_frame(
    signature: int,
    center_x: int,
    center_y: int,
    width: int,
    height: int,
    checksum: Optional[int] = None,
    double_sync: bool = False
) -> bytes:
    """
    Build the raw bytes of one frame as the sensor would send it.

    Used by the simulated byte channel. Values are given in robot
    orientation and written back in wire order.

    Args:
        signature: Object classification ID
        center_x: Robot-frame center x
        center_y: Robot-frame center y
        width: Robot-frame width
        height: Robot-frame height
        checksum: Override the checksum word (defaults to the correct sum)
        double_sync: Prefix a second sync marker (skipped empty frame)

    Returns:
        Sync marker(s) followed by the frame payload
    """
    if checksum is None:
        checksum = signature + center_x + center_y + width + height
    words = np.array(
        [checksum, signature, center_y, center_x, height, width],
        dtype=np.int64
    ) & 0xFFFF
    prefix = SYNC_BYTES * (2 if double_sync else 1)
    return prefix + words.astype(_WORD_DTYPE).tobytes()
