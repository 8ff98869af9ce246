"""
Sensor frame reader for the object-tracking vision sensor.

Runs a background asyncio task that keeps the byte stream in sync with
the sensor's frame markers, decodes each frame and publishes the latest
valid reading. Corrupt frames are dropped and the reader resynchronizes
on its own; a disconnected sensor simply stops producing fresh readings.

The stream is read in 16-bit words. When a byte is lost or inserted the
marker straddles two reads, so a word ending in 0xAA is followed by a
single-byte read to slide back into step.
"""
import asyncio
import logging
import math
import threading
import time
from typing import Awaitable, Callable, Dict, Optional

from .byte_channel import ByteChannel
from .frame_protocol import (
    EMPTY_READING,
    FRAME_PAYLOAD_SIZE,
    FRESHNESS_WINDOW,
    SYNC_BYTES,
    WORD_SIZE,
    TrackedObject,
    is_sync,
    parse_frame,
)


class SensorFrameReader:
    """
    Reads frames from the vision sensor and tracks a single object.

    The latest reading is an immutable TrackedObject replaced in one
    assignment, so queries never see a partially decoded frame.
    """

    def __init__(
        self,
        channel: ByteChannel,
        name: str = "pixy",
        poll_interval: float = 0.001,
        freshness_window: float = FRESHNESS_WINDOW,
        sync_warning_after: float = 1.0,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the frame reader.

        Args:
            channel: Byte channel connected to the sensor
            name: Name used in log messages
            poll_interval: Delay between read attempts in seconds
            freshness_window: Age in seconds after which a reading is stale
            sync_warning_after: Seconds without a sync marker before warning
            sleep: Coroutine used for every hold
            clock: Monotonic time source
        """
        self.channel = channel
        self.name = name
        self.poll_interval = poll_interval
        self.freshness_window = freshness_window
        self.sync_warning_after = sync_warning_after
        self.logger = logging.getLogger(f"SensorFrameReader_{name}")

        self._sleep = sleep
        self._clock = clock
        self._reading: TrackedObject = EMPTY_READING
        self._task: Optional[asyncio.Task] = None
        self._retiring: Optional[asyncio.Task] = None
        self._io_lock = threading.Lock()

        # Statistics
        self.frames_accepted = 0
        self.frames_dropped = 0
        self.sync_losses = 0

        self.logger.info(f"Frame reader created for {name}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_reading(self) -> TrackedObject:
        """Last accepted reading, which may be stale."""
        return self._reading

    def get_x(self) -> int:
        return self._reading.center_x

    def get_y(self) -> int:
        return self._reading.center_y

    def get_width(self) -> int:
        return self._reading.width

    def get_height(self) -> int:
        return self._reading.height

    def check_data(self) -> bool:
        """
        Check the current reading against its checksum.

        Returns:
            True if the checksum matches the sum of the other fields
        """
        reading = self._reading
        return reading.checksum == reading.field_sum()

    def is_tracking(self) -> bool:
        """
        Whether the sensor is currently tracking an object.

        Returns:
            True if the last reading is non-empty, passes its checksum and
            is younger than the freshness window
        """
        return self._tracking(self._reading)

    def estimate_angle(self) -> int:
        """
        Estimate the angle to the tracked object's lines from its box shape.

        Uses the hyperbolic tangent of the whole-number height/width ratio,
        converted to degrees.

        Returns:
            Angle in degrees from 0 to 90, 0 when not tracking
        """
        reading = self._reading
        if not self._tracking(reading) or reading.width == 0:
            return 0

        angle = math.tanh(reading.height // reading.width)
        return int(math.degrees(angle))

    def get_status(self) -> Dict:
        """
        Get reader status.

        Returns:
            Dictionary with running state, statistics and last reading
        """
        return {
            'name': self.name,
            'running': self.is_running(),
            'tracking': self.is_tracking(),
            'angle': self.estimate_angle(),
            'frames_accepted': self.frames_accepted,
            'frames_dropped': self.frames_dropped,
            'sync_losses': self.sync_losses,
            'reading': self._reading.to_dict()
        }

    def _tracking(self, reading: TrackedObject) -> bool:
        return reading.is_valid() and reading.is_fresh(self._clock(), self.freshness_window)

    # ------------------------------------------------------------------
    # Task control
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """
        Start the background read loop if it is not already running.

        Must be called from a running event loop.

        Returns:
            The live reader task
        """
        if self.is_running():
            return self._task

        if not self.channel.is_open():
            self.channel.open()

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(self._retiring),
            name=f"frame_reader_{self.name}"
        )
        return self._task

    def stop(self) -> None:
        """Request cancellation of the read loop without waiting for it."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        self._retiring = self._task
        self._task = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def close(self) -> None:
        """Stop the read loop, wait for it to finish and close the channel."""
        self.stop()
        if self._retiring is not None:
            await asyncio.wait({self._retiring})
        # A cancelled task can leave its read running in a worker thread
        await asyncio.to_thread(self._close_blocking)

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def _run(self, previous: Optional[asyncio.Task]) -> None:
        # A cancelled predecessor must be off the channel first
        if previous is not None and not previous.done():
            await asyncio.wait({previous})

        self.logger.info("Frame reader started")
        try:
            while True:
                await self._seek_sync()
                reading = await self._read_frame()
                if reading is not None:
                    self._reading = reading
                    self.frames_accepted += 1
                await self._sleep(self.poll_interval)
        finally:
            self.logger.info("Frame reader stopped")

    async def _seek_sync(self) -> None:
        started = self._clock()
        warned = False

        while True:
            await self._sleep(self.poll_interval)
            raw = await self._read(WORD_SIZE)
            if is_sync(raw) or await self._slide_to_sync(raw):
                if warned:
                    self.logger.info("Sensor sync recovered")
                return

            if not warned and self._clock() - started > self.sync_warning_after:
                self.sync_losses += 1
                self.logger.warning(
                    f"No sync marker from sensor for {self.sync_warning_after:.1f}s"
                )
                warned = True

    async def _slide_to_sync(self, raw: bytes) -> bool:
        # A lost or stray byte leaves the marker straddling two word reads
        if raw[-1:] != SYNC_BYTES[:1]:
            return False
        return await self._read(1) == SYNC_BYTES[1:]

    async def _read_frame(self) -> Optional[TrackedObject]:
        first = await self._read(WORD_SIZE)

        # A second marker means the sensor skipped an empty frame
        if is_sync(first):
            first = await self._read(WORD_SIZE)

        rest = await self._read(FRAME_PAYLOAD_SIZE - WORD_SIZE)
        payload = first + rest
        if len(payload) != FRAME_PAYLOAD_SIZE:
            self.frames_dropped += 1
            self.logger.debug(f"Short frame ({len(payload)} bytes), resyncing")
            return None

        reading = parse_frame(payload, self._clock())
        if reading is None:
            self.frames_dropped += 1
            self.logger.debug("Frame failed checksum, resyncing")
        return reading

    async def _read(self, size: int) -> bytes:
        return await asyncio.to_thread(self._read_blocking, size)

    def _read_blocking(self, size: int) -> bytes:
        with self._io_lock:
            if not self.channel.is_open():
                return b''
            return self.channel.read(size)

    def _close_blocking(self) -> None:
        with self._io_lock:
            self.channel.close()
