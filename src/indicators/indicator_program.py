"""
Indicator light programs.

Each mode of the indicator is one immutable program. A program is run by
awaiting run(); patterned programs loop until their task is cancelled.
Every hold goes through the supplied sleep coroutine, which is where
cancellation lands.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from .output_line import OutputLine


Sleep = Callable[[float], Awaitable]

DASH = '-'
DOT = '.'

# Encoded message timing (seconds)
DASH_ON_TIME = 1.333
DOT_ON_TIME = 0.667
SYMBOL_OFF_TIME = 1.0


class IndicatorMode(Enum):
    """Indicator light control modes."""
    ON = "on"
    OFF = "off"
    FLASH = "flash"
    MORSE = "morse"


@dataclass(frozen=True)
class SteadyOn:
    """Lights held on."""
    mode = IndicatorMode.ON

    @property
    def is_patterned(self) -> bool:
        return False

    def apply(self, output: OutputLine) -> None:
        output.set(True)

    async def run(self, output: OutputLine, sleep: Sleep) -> None:
        self.apply(output)


@dataclass(frozen=True)
class SteadyOff:
    """Lights held off."""
    mode = IndicatorMode.OFF

    @property
    def is_patterned(self) -> bool:
        return False

    def apply(self, output: OutputLine) -> None:
        output.set(False)

    async def run(self, output: OutputLine, sleep: Sleep) -> None:
        self.apply(output)


@dataclass(frozen=True)
class PulseTrain:
    """
    Repeating sets of pulses.

    Attributes:
        interval: Gap reference between pulses; after each pulse's off
            time the lights stay off for max(0, interval - off_duration)
        on_duration: Time each pulse is on (seconds)
        off_duration: Time each pulse is off (seconds)
        pulse_count: Pulses per cycle
    """
    interval: float = 1.0
    on_duration: float = 1.0
    off_duration: float = 1.0
    pulse_count: int = 1
    mode = IndicatorMode.FLASH

    @property
    def is_patterned(self) -> bool:
        return True

    @property
    def gap(self) -> float:
        return max(0.0, self.interval - self.off_duration)

    async def run(self, output: OutputLine, sleep: Sleep) -> None:
        while True:
            for _ in range(self.pulse_count):
                output.set(True)
                await sleep(self.on_duration)
                output.set(False)
                await sleep(self.off_duration)
                await sleep(self.gap)

            # Keep a zero-pulse train cancellable
            await asyncio.sleep(0)


@dataclass(frozen=True)
class EncodedMessage:
    """
    Message flashed as long and short pulses.

    Attributes:
        message: '-' for a long flash, '.' for a short flash; any other
            character is skipped without output or delay
    """
    message: str = ""
    mode = IndicatorMode.MORSE

    @property
    def is_patterned(self) -> bool:
        return True

    async def run(self, output: OutputLine, sleep: Sleep) -> None:
        while True:
            for symbol in self.message:
                if symbol == DASH:
                    on_time = DASH_ON_TIME
                elif symbol == DOT:
                    on_time = DOT_ON_TIME
                else:
                    continue

                output.set(True)
                await sleep(on_time)
                output.set(False)
                await sleep(SYMBOL_OFF_TIME)

            # Keep an empty message cancellable
            await asyncio.sleep(0)
