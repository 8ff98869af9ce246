"""
Mock hardware for running the tracking stack without a robot.

Provides a byte channel that replays scripted sensor bytes and an output
line that records every transition. Selected with simulation_mode in the
configuration.
"""
import asyncio
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

from perception.byte_channel import ByteChannel
from perception.frame_protocol import encode_frame
from indicators.output_line import OutputLine


class MockByteChannel(ByteChannel):
    """
    Simulated sensor link.

    Bytes are queued with feed() or feed_frame() and handed out by read().
    When the buffer runs dry read() returns what is left (possibly
    nothing), like a serial port hitting its timeout.
    """

    def __init__(self, name: str = "mock", data: bytes = b''):
        self.name = name
        self.logger = logging.getLogger(f"MockByteChannel_{name}")
        self._buffer = bytearray(data)
        self._lock = threading.Lock()
        self._open = False
        self.bytes_read = 0
        self.read_calls = 0

    def open(self) -> None:
        self._open = True
        self.logger.info("Mock channel opened")

    def close(self) -> None:
        self._open = False
        self.logger.info("Mock channel closed")

    def is_open(self) -> bool:
        return self._open

    def read(self, size: int) -> bytes:
        with self._lock:
            chunk = bytes(self._buffer[:size])
            del self._buffer[:size]
            self.bytes_read += len(chunk)
            self.read_calls += 1
            return chunk

    def feed(self, data: bytes) -> None:
        """Append raw bytes to the simulated stream."""
        with self._lock:
            self._buffer.extend(data)

    def feed_frame(
        self,
        signature: int,
        center_x: int,
        center_y: int,
        width: int,
        height: int,
        checksum: Optional[int] = None,
        double_sync: bool = False
    ) -> None:
        """Append one encoded frame given in robot orientation."""
        self.feed(encode_frame(
            signature, center_x, center_y, width, height,
            checksum=checksum, double_sync=double_sync
        ))


class MockOutputLine(OutputLine):
    """Simulated output line recording (timestamp, state) transitions."""

    def __init__(self, name: str = "mock", clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.logger = logging.getLogger(f"MockOutputLine_{name}")
        self._clock = clock
        self.state = False
        self.transitions: List[Tuple[float, bool]] = []

    def set(self, value: bool) -> None:
        self.state = bool(value)
        self.transitions.append((self._clock(), self.state))
        self.logger.debug(f"Output {'on' if self.state else 'off'}")

    def close(self) -> None:
        self.set(False)

    def states(self) -> List[bool]:
        return [state for _, state in self.transitions]


async def simulate_sensor(
    channel: MockByteChannel,
    frame_period: float = 0.02,
    signature: int = 1,
    start: Tuple[int, int] = (40, 100),
    size: Tuple[int, int] = (30, 60),
    drift: int = 1
) -> None:
    """
    Feed the mock channel with a target drifting across the view.

    Runs until cancelled. Every tenth frame is preceded by a double sync
    marker, as the sensor sends after a frame with nothing in view.

    Args:
        channel: Channel to feed
        frame_period: Seconds between frames
        signature: Signature reported for the target
        start: Initial robot-frame (x, y) of the target center
        size: Robot-frame (width, height) of the target box
        drift: Pixels the target moves along x per frame
    """
    x, y = start
    width, height = size
    count = 0
    while True:
        channel.feed_frame(
            signature, x, y, width, height,
            double_sync=(count % 10 == 9)
        )
        count += 1
        x = (x + drift) % 320
        await asyncio.sleep(frame_period)
