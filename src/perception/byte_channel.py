"""
Byte channel abstraction for the vision sensor link.

The frame reader only needs blocking reads of N bytes. Reads are
bounded by the channel timeout and may return fewer bytes than asked
for when the sensor goes quiet.
"""
import logging
from typing import Optional

import serial


class ByteChannel:
    """
    Duplex byte stream to the sensor.

    Subclasses implement open(), read() and close().
    """

    def open(self) -> None:
        raise NotImplementedError

    def read(self, size: int) -> bytes:
        """
        Read up to size bytes.

        Args:
            size: Number of bytes wanted

        Returns:
            The bytes read, possibly fewer than size on timeout
        """
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def is_open(self) -> bool:
        raise NotImplementedError


class SerialByteChannel(ByteChannel):
    """
    Sensor link over a serial port (pyserial).

    The baud rate plays the role of the link clock rate. Words arrive
    most significant byte first.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 19200,
        timeout: float = 0.01
    ):
        """
        Initialize the serial channel (the port is opened by open()).

        Args:
            port: Serial device, e.g. '/dev/ttyS0'
            baudrate: Link speed in baud
            timeout: Read timeout in seconds
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.logger = logging.getLogger(f"SerialByteChannel_{port}")
        self._ser: Optional[serial.Serial] = None

    def open(self) -> None:
        if self._ser and self._ser.is_open:
            return
        self._ser = serial.Serial(
            port=self.port,
            baudrate=self.baudrate,
            timeout=self.timeout,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
        )
        self._ser.reset_input_buffer()
        self.logger.info(f"Opened {self.port} at {self.baudrate} baud")

    def read(self, size: int) -> bytes:
        if self._ser is None:
            raise RuntimeError(f"Serial channel {self.port} is not open")
        return self._ser.read(size)

    def close(self) -> None:
        if self._ser and self._ser.is_open:
            self._ser.close()
            self.logger.info(f"Closed {self.port}")
        self._ser = None

    def is_open(self) -> bool:
        return bool(self._ser and self._ser.is_open)
