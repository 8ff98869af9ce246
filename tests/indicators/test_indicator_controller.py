"""
Tests for the indicator light controller and its programs.
"""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..', 'src'))

import asyncio

import pytest
from indicators.indicator_controller import IndicatorController
from indicators.indicator_program import (
    DASH_ON_TIME,
    DOT_ON_TIME,
    SYMBOL_OFF_TIME,
    EncodedMessage,
    IndicatorMode,
    PulseTrain,
    SteadyOff,
    SteadyOn,
)
from core.hardware_mock import MockOutputLine


class VirtualClock:
    """Clock advanced by the holds it is asked to sleep."""

    def __init__(self):
        self.now = 0.0
        self.holds = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, duration: float) -> None:
        self.holds.append(duration)
        self.now += max(0.0, duration)
        await asyncio.sleep(0)


async def run_until(predicate, max_steps: int = 10000):
    """Let background tasks run until predicate() holds."""
    for _ in range(max_steps):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("Condition not reached")


async def settle(steps: int = 20):
    for _ in range(steps):
        await asyncio.sleep(0)


def indicator_tasks():
    return [
        task for task in asyncio.all_tasks()
        if task.get_name().startswith('indicator_') and not task.done()
    ]


def approx_timeline(transitions):
    return [(pytest.approx(t), state) for t, state in transitions]


class TestIndicatorProgram:
    """Test suite for program variants."""

    def test_modes(self):
        """Test each program reports its mode."""
        assert SteadyOn().mode == IndicatorMode.ON
        assert SteadyOff().mode == IndicatorMode.OFF
        assert PulseTrain().mode == IndicatorMode.FLASH
        assert EncodedMessage().mode == IndicatorMode.MORSE

    def test_patterned(self):
        """Test only flash and morse need a background task."""
        assert not SteadyOn().is_patterned
        assert not SteadyOff().is_patterned
        assert PulseTrain().is_patterned
        assert EncodedMessage("-").is_patterned

    def test_pulse_gap(self):
        """Test the inter-pulse gap never goes negative."""
        assert PulseTrain(interval=0.2, off_duration=0.05).gap == pytest.approx(0.15)
        assert PulseTrain(interval=0.1, off_duration=0.5).gap == 0.0

    def test_programs_immutable(self):
        """Test running programs cannot be changed."""
        program = PulseTrain()
        with pytest.raises(AttributeError):
            program.pulse_count = 4


class TestIndicatorControllerSteady:
    """Test suite for steady modes."""

    @pytest.fixture
    def output(self):
        return MockOutputLine(name='test')

    def test_default_mode_on(self, output):
        """Test the controller starts on by default."""
        controller = IndicatorController(output)
        assert controller.mode == IndicatorMode.ON
        assert output.state is True

    def test_default_flash_settings(self, output):
        """Test default flash settings are 1s on, 1s off, one pulse."""
        controller = IndicatorController(output)
        assert controller.interval == 1.0
        assert controller.on_duration == 1.0
        assert controller.off_duration == 1.0
        assert controller.pulse_count == 1
        assert controller.message == ""

    def test_set_mode_off_and_on(self, output):
        """Test steady modes drive the line immediately."""
        controller = IndicatorController(output, mode=IndicatorMode.OFF)
        assert output.state is False

        controller.set_mode(IndicatorMode.ON)
        assert output.state is True
        assert controller.is_running() is False

    def test_set_mode_from_string(self, output):
        """Test modes can be given by name."""
        controller = IndicatorController(output, mode='off')
        assert controller.mode == IndicatorMode.OFF

        with pytest.raises(ValueError):
            controller.set_mode('strobe')

    def test_get_status(self, output):
        """Test status report contents."""
        controller = IndicatorController(output, mode='off', message='.-')
        status = controller.get_status()
        assert status['mode'] == 'off'
        assert status['running'] is False
        assert status['message'] == '.-'


class TestIndicatorControllerPatterns:
    """Test suite for flashing and encoded message modes."""

    @pytest.fixture
    def clock(self):
        return VirtualClock()

    @pytest.fixture
    def output(self, clock):
        return MockOutputLine(name='test', clock=clock)

    @pytest.fixture
    def controller(self, output, clock):
        return IndicatorController(output, mode=IndicatorMode.OFF, sleep=clock.sleep)

    @pytest.mark.asyncio
    async def test_pulse_train_cycle(self, controller, output, clock):
        """Test 3 pulses of 100ms on, 50ms off, 150ms gap, then repeat."""
        output.transitions.clear()
        controller.set_pulse_timing(interval=0.2, on_duration=0.1,
                                    off_duration=0.05, pulse_count=3)
        controller.set_mode(IndicatorMode.FLASH)
        try:
            await run_until(lambda: len(output.transitions) >= 7)

            assert approx_timeline(output.transitions[:7]) == [
                (0.0, True), (0.1, False),
                (0.3, True), (0.4, False),
                (0.6, True), (0.7, False),
                (0.9, True),
            ]
            assert clock.holds[:9] == pytest.approx([0.1, 0.05, 0.15] * 3)
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_pulse_train_gap_clamped(self, controller, output, clock):
        """Test an interval shorter than the off time adds no gap."""
        controller.set_pulse_timing(interval=0.01, on_duration=0.2,
                                    off_duration=0.3, pulse_count=1)
        controller.set_mode(IndicatorMode.FLASH)
        try:
            await run_until(lambda: len(clock.holds) >= 6)
            assert clock.holds[:6] == pytest.approx([0.2, 0.3, 0.0] * 2)
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_encoded_message_sequence(self, controller, output, clock):
        """Test '-.-' flashes long, short, long and then repeats."""
        output.transitions.clear()
        controller.set_message("-.-")
        controller.set_mode(IndicatorMode.MORSE)
        try:
            await run_until(lambda: len(output.transitions) >= 8)

            assert clock.holds[:6] == pytest.approx([
                DASH_ON_TIME, SYMBOL_OFF_TIME,
                DOT_ON_TIME, SYMBOL_OFF_TIME,
                DASH_ON_TIME, SYMBOL_OFF_TIME,
            ])
            assert approx_timeline(output.transitions[:8]) == [
                (0.0, True), (1.333, False),
                (2.333, True), (3.0, False),
                (4.0, True), (5.333, False),
                (6.333, True), (7.666, False),
            ]
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_encoded_message_ignores_other_symbols(self, controller, output, clock):
        """Test unknown symbols produce no output and no delay."""
        output.transitions.clear()
        controller.set_message("a- b")
        controller.set_mode(IndicatorMode.MORSE)
        try:
            await run_until(lambda: len(output.transitions) >= 4)
            assert approx_timeline(output.transitions[:4]) == [
                (0.0, True), (1.333, False),
                (2.333, True), (3.666, False),
            ]
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_empty_message_stays_cancellable(self, controller, output):
        """Test an empty message spins without blocking the event loop."""
        output.transitions.clear()
        controller.set_message("")
        controller.set_mode(IndicatorMode.MORSE)
        await settle()
        assert controller.is_running()
        assert output.transitions == []

        controller.set_mode(IndicatorMode.OFF)
        await settle()
        assert indicator_tasks() == []

    @pytest.mark.asyncio
    async def test_zero_pulses_stays_cancellable(self, controller, output):
        """Test a zero pulse count spins without blocking the event loop."""
        output.transitions.clear()
        controller.set_flash_pulses(0)
        controller.set_mode(IndicatorMode.FLASH)
        await settle()
        assert output.transitions == []

        controller.set_mode(IndicatorMode.ON)
        await settle()
        assert indicator_tasks() == []
        assert output.state is True

    @pytest.mark.asyncio
    async def test_rapid_mode_switching_single_task(self, controller, output):
        """Test many quick switches leave one task and the final mode."""
        modes = [IndicatorMode.FLASH, IndicatorMode.MORSE, IndicatorMode.ON,
                 IndicatorMode.OFF]
        controller.set_message("-")
        for i in range(40):
            controller.set_mode(modes[i % len(modes)])
            if i % 3 == 0:
                await asyncio.sleep(0)
        controller.set_mode(IndicatorMode.FLASH)

        try:
            await settle()
            tasks = indicator_tasks()
            assert len(tasks) == 1
            assert tasks[0].get_name() == 'indicator_leds_flash'
            assert controller.mode == IndicatorMode.FLASH
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_switch_to_steady_stops_output(self, controller, output):
        """Test no transitions follow a switch to a steady mode."""
        controller.set_message("-.")
        controller.set_mode(IndicatorMode.MORSE)
        await run_until(lambda: len(output.transitions) >= 5)

        controller.set_mode(IndicatorMode.ON)
        count = len(output.transitions)
        await settle()

        assert len(output.transitions) == count
        assert output.state is True
        assert output.states()[-1] is True
        assert indicator_tasks() == []

    @pytest.mark.asyncio
    async def test_settings_read_on_mode_entry(self, controller, output, clock):
        """Test new flash settings apply only when the mode is re-entered."""
        controller.set_pulse_timing(interval=0.3, on_duration=0.1,
                                    off_duration=0.1, pulse_count=1)
        controller.set_mode(IndicatorMode.FLASH)
        try:
            await run_until(lambda: len(clock.holds) >= 3)
            controller.set_pulse_timing(interval=0.9, on_duration=0.5,
                                        off_duration=0.4, pulse_count=2)
            held = len(clock.holds)
            await run_until(lambda: len(clock.holds) >= held + 6)
            assert controller.program.on_duration == 0.1
            assert all(
                hold == pytest.approx(0.1) or hold == pytest.approx(0.2)
                for hold in clock.holds
            )

            controller.set_mode(IndicatorMode.FLASH)
            assert controller.program == PulseTrain(interval=0.9, on_duration=0.5,
                                                    off_duration=0.4, pulse_count=2)
            clock.holds.clear()
            await run_until(lambda: len(clock.holds) >= 6)
            assert clock.holds[:6] == pytest.approx([0.5, 0.4, 0.5] * 2)
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_message_read_on_mode_entry(self, controller, output, clock):
        """Test a new message applies only when the mode is re-entered."""
        controller.set_message(".")
        controller.set_mode(IndicatorMode.MORSE)
        try:
            await run_until(lambda: len(clock.holds) >= 2)
            controller.set_message("-")
            assert controller.program == EncodedMessage(".")

            controller.set_mode(IndicatorMode.MORSE)
            assert controller.program == EncodedMessage("-")
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown(self, controller, output):
        """Test shutdown cancels the pattern and turns the lights off."""
        controller.set_mode(IndicatorMode.FLASH)
        await run_until(lambda: output.state is True)
        await controller.shutdown()

        assert output.state is False
        assert controller.mode == IndicatorMode.OFF
        assert controller.is_running() is False
        assert indicator_tasks() == []


class TestIndicatorControllerRealTime:
    """Test cancellation against real holds."""

    @pytest.mark.asyncio
    async def test_cancel_interrupts_hold(self):
        """Test a mode change cuts a long hold short."""
        output = MockOutputLine(name='test')
        controller = IndicatorController(output, mode=IndicatorMode.OFF, message="-")
        controller.set_mode(IndicatorMode.MORSE)

        await asyncio.sleep(0.05)
        assert output.state is True

        loop = asyncio.get_running_loop()
        started = loop.time()
        controller.set_mode(IndicatorMode.OFF)
        await settle()

        assert indicator_tasks() == []
        assert output.state is False
        assert loop.time() - started < 0.5
