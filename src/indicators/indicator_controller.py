"""
Indicator light controller.

Drives one output line with exactly one active program. Steady modes are
applied immediately; patterned modes run as a background asyncio task
that is cancelled and replaced whenever the mode changes.

Flash timing and the message are read when a mode is entered. Changing
them while a pattern runs takes effect on the next set_mode() call.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Union

from .indicator_program import (
    EncodedMessage,
    IndicatorMode,
    PulseTrain,
    SteadyOff,
    SteadyOn,
)
from .output_line import OutputLine


IndicatorProgram = Union[SteadyOn, SteadyOff, PulseTrain, EncodedMessage]


class IndicatorController:
    """
    Controller for indicator lights on a single output line.

    Defaults to flashing one pulse per cycle, 1 second on then 1 second
    off, and starts in ON mode.
    """

    def __init__(
        self,
        output: OutputLine,
        mode: Union[IndicatorMode, str] = IndicatorMode.ON,
        interval: float = 1.0,
        on_duration: float = 1.0,
        off_duration: float = 1.0,
        pulse_count: int = 1,
        message: str = "",
        name: str = "leds",
        sleep: Callable[[float], Awaitable] = asyncio.sleep
    ):
        """
        Initialize the controller and apply the initial mode.

        Patterned initial modes need a running event loop.

        Args:
            output: Output line the lights are wired to
            mode: Initial mode
            interval: Flash interval in seconds
            on_duration: Flash on time in seconds
            off_duration: Flash off time between pulses in seconds
            pulse_count: Pulses per flash cycle
            message: Message for MORSE mode
            name: Name used in log messages
            sleep: Coroutine used for every hold
        """
        self.output = output
        self.name = name
        self.logger = logging.getLogger(f"IndicatorController_{name}")

        self.interval = interval
        self.on_duration = on_duration
        self.off_duration = off_duration
        self.pulse_count = pulse_count
        self.message = message

        self._sleep = sleep
        self._program: IndicatorProgram = SteadyOff()
        self._task: Optional[asyncio.Task] = None
        self.mode_changes = 0

        self.set_mode(mode)

    @property
    def mode(self) -> IndicatorMode:
        return self._program.mode

    @property
    def program(self) -> IndicatorProgram:
        return self._program

    def set_flash_interval(self, interval: float) -> None:
        """
        Set the time between the last pulse turning off and the next on.

        Args:
            interval: Interval in seconds
        """
        self.interval = interval

    def set_flash_pulses(self, pulses: int) -> None:
        self.pulse_count = pulses

    def set_pulse_timing(
        self,
        interval: float,
        on_duration: float,
        off_duration: float,
        pulse_count: int
    ) -> None:
        """
        Set all flash parameters.

        Args:
            interval: Interval in seconds
            on_duration: On time per pulse in seconds
            off_duration: Off time per pulse in seconds
            pulse_count: Pulses per cycle
        """
        self.interval = interval
        self.on_duration = on_duration
        self.off_duration = off_duration
        self.pulse_count = pulse_count

    def set_message(self, message: str) -> None:
        """
        Set the message for MORSE mode.

        Args:
            message: '-' for long flashes and '.' for short flashes; other
                characters are ignored
        """
        self.message = message

    def set_mode(self, mode: Union[IndicatorMode, str]) -> None:
        """
        Switch the lights to a mode using the current settings.

        Args:
            mode: Mode to switch to (enum or its string value)
        """
        self.set_program(self.build_program(IndicatorMode(mode)))

    def build_program(self, mode: IndicatorMode) -> IndicatorProgram:
        if mode == IndicatorMode.ON:
            return SteadyOn()
        elif mode == IndicatorMode.OFF:
            return SteadyOff()
        elif mode == IndicatorMode.FLASH:
            return PulseTrain(
                interval=self.interval,
                on_duration=self.on_duration,
                off_duration=self.off_duration,
                pulse_count=self.pulse_count
            )
        return EncodedMessage(message=self.message)

    def set_program(self, program: IndicatorProgram) -> None:
        """
        Install a program, retiring the one that is running.

        The old task is cancelled before anything else touches the line,
        and the new task waits for it to finish unwinding.

        Args:
            program: Program to run
        """
        previous = self._cancel_task()
        self._program = program
        self.mode_changes += 1

        if program.is_patterned:
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(
                self._run(program, previous),
                name=f"indicator_{self.name}_{program.mode.value}"
            )
        else:
            program.apply(self.output)

        self.logger.info(f"Mode set to {program.mode.value}")

    def is_running(self) -> bool:
        """Whether a patterned program task is live."""
        return self._task is not None and not self._task.done()

    def get_status(self) -> Dict:
        return {
            'name': self.name,
            'mode': self.mode.value,
            'running': self.is_running(),
            'interval': self.interval,
            'on_duration': self.on_duration,
            'off_duration': self.off_duration,
            'pulse_count': self.pulse_count,
            'message': self.message
        }

    async def shutdown(self) -> None:
        """Cancel any pattern, wait for it and turn the lights off."""
        previous = self._cancel_task()
        if previous is not None:
            await asyncio.wait({previous})
        self._program = SteadyOff()
        self.output.set(False)
        self.logger.info("Indicator shut down")

    def _cancel_task(self) -> Optional[asyncio.Task]:
        task = self._task
        self._task = None
        if task is None or task.done():
            return None
        task.cancel()
        return task

    async def _run(self, program: IndicatorProgram, previous: Optional[asyncio.Task]) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        await program.run(self.output, self._sleep)
