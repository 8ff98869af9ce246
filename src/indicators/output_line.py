"""
Binary output line driving the indicator lights.
"""
import logging
from typing import Optional


class OutputLine:
    """
    Single on/off output.

    The indicator controller only ever calls set(True) and set(False).
    """

    def set(self, value: bool) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release the line (default: nothing to release)."""


class GpioOutputLine(OutputLine):
    """
    Indicator lights switched through a Raspberry Pi GPIO pin.

    RPi.GPIO is imported when the line is opened, so the rest of the
    package works on machines without the GPIO library installed.
    """

    def __init__(self, pin: int, active_high: bool = True):
        """
        Initialize and claim the GPIO pin.

        Args:
            pin: BCM pin number the light driver is wired to
            active_high: Drive the pin high to turn the lights on
        """
        self.pin = pin
        self.active_high = active_high
        self.logger = logging.getLogger(f"GpioOutputLine_{pin}")
        self.state: Optional[bool] = None

        import RPi.GPIO as GPIO  # type: ignore

        self._gpio = GPIO
        self._gpio.setmode(GPIO.BCM)
        self._gpio.setup(pin, GPIO.OUT, initial=self._level(False))
        self.logger.info(f"GPIO pin {pin} configured as indicator output")

    def set(self, value: bool) -> None:
        self._gpio.output(self.pin, self._level(value))
        self.state = value

    def close(self) -> None:
        self.set(False)
        self._gpio.cleanup(self.pin)
        self.logger.info(f"GPIO pin {self.pin} released")

    def _level(self, value: bool) -> int:
        on = value if self.active_high else not value
        return self._gpio.HIGH if on else self._gpio.LOW
