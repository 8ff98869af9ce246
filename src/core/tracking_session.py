"""
Tracking session: vision sensor plus its indicator lights.

Starting a session launches the sensor read loop and turns the lights
on so the sensor can see the target; stopping it cancels the loop and
turns the lights off to save power.
"""
import asyncio
import logging
import os
import sys
from typing import Dict, Optional, Union

from perception.byte_channel import ByteChannel, SerialByteChannel
from perception.frame_protocol import TrackedObject
from perception.frame_reader import SensorFrameReader
from indicators.indicator_controller import IndicatorController
from indicators.indicator_program import IndicatorMode
from indicators.output_line import GpioOutputLine, OutputLine

from .config_loader import load_config
from .hardware_mock import MockByteChannel, MockOutputLine, simulate_sensor
from .status_reporter import StatusReporter


DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__),
    '../../config/tracking_config.yaml'
)


class TrackingSession:
    """
    Pairs a frame reader with the indicator lighting the target.
    """

    def __init__(self, reader: SensorFrameReader, indicator: IndicatorController):
        """
        Initialize the session.

        Args:
            reader: Frame reader for the sensor
            indicator: Controller for the sensor's lights
        """
        self.reader = reader
        self.indicator = indicator
        self.logger = logging.getLogger(f"TrackingSession_{reader.name}")

    def start_tracking(self) -> None:
        """Start the read loop and turn the lights on (no-op if running)."""
        if self.reader.is_running():
            return
        self.reader.start()
        self.indicator.set_mode(IndicatorMode.ON)
        self.logger.info("Tracking started")

    def stop_tracking(self) -> None:
        """Cancel the read loop and turn the lights off."""
        was_running = self.reader.is_running()
        self.reader.stop()
        self.indicator.set_mode(IndicatorMode.OFF)
        if was_running:
            self.logger.info("Tracking stopped")

    def is_active(self) -> bool:
        return self.reader.is_running()

    def current_reading(self) -> TrackedObject:
        return self.reader.current_reading()

    def is_tracking(self) -> bool:
        return self.reader.is_tracking()

    def estimate_angle(self) -> int:
        return self.reader.estimate_angle()

    def set_mode(self, mode: Union[IndicatorMode, str]) -> None:
        self.indicator.set_mode(mode)

    def set_message(self, message: str) -> None:
        self.indicator.set_message(message)

    def set_pulse_timing(
        self,
        interval: float,
        on_duration: float,
        off_duration: float,
        pulse_count: int
    ) -> None:
        self.indicator.set_pulse_timing(interval, on_duration, off_duration, pulse_count)

    def get_status(self) -> Dict:
        return {
            'active': self.is_active(),
            'sensor': self.reader.get_status(),
            'indicator': self.indicator.get_status()
        }

    async def close(self) -> None:
        """Stop everything, wait for background tasks and release hardware."""
        await self.reader.close()
        await self.indicator.shutdown()
        self.indicator.output.close()
        self.logger.info("Session closed")


def create_tracking_session(
    config: Dict,
    channel: Optional[ByteChannel] = None,
    output: Optional[OutputLine] = None
) -> TrackingSession:
    """
    Factory function to create a TrackingSession from configuration.

    Hardware comes from the config unless channel or output are given.
    A patterned initial indicator mode needs a running event loop.

    Args:
        config: Configuration dictionary (see config_loader)
        channel: Byte channel to use instead of the configured one
        output: Output line to use instead of the configured one

    Returns:
        Initialized TrackingSession
    """
    sensor_cfg = config['sensor']
    indicator_cfg = config['indicator']
    simulation = config.get('simulation_mode', False)

    if channel is None:
        if simulation:
            channel = MockByteChannel(name=sensor_cfg['name'])
        else:
            channel = SerialByteChannel(
                port=sensor_cfg['port'],
                baudrate=sensor_cfg['baudrate'],
                timeout=sensor_cfg['timeout']
            )

    if output is None:
        if simulation:
            output = MockOutputLine(name=indicator_cfg['name'])
        else:
            output = GpioOutputLine(
                pin=indicator_cfg['pin'],
                active_high=indicator_cfg.get('active_high', True)
            )

    reader = SensorFrameReader(
        channel,
        name=sensor_cfg['name'],
        poll_interval=sensor_cfg['poll_interval'],
        freshness_window=sensor_cfg['freshness_window'],
        sync_warning_after=sensor_cfg['sync_warning_after']
    )
    indicator = IndicatorController(
        output,
        mode=indicator_cfg['mode'],
        interval=indicator_cfg['interval'],
        on_duration=indicator_cfg['on_duration'],
        off_duration=indicator_cfg['off_duration'],
        pulse_count=indicator_cfg['pulse_count'],
        message=indicator_cfg['message'],
        name=indicator_cfg['name']
    )
    return TrackingSession(reader, indicator)


async def main(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Main entry point: run a tracking session for the configured time."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_config(config_path)
    session = create_tracking_session(config)

    feeder: Optional[asyncio.Task] = None
    if isinstance(session.reader.channel, MockByteChannel):
        feeder = asyncio.create_task(simulate_sensor(session.reader.channel))

    reporter: Optional[StatusReporter] = None
    if config['status'].get('enabled', True):
        reporter = StatusReporter(
            session.get_status,
            interval=config['status']['priority'],
            name=session.reader.name
        )

    session.start_tracking()
    if reporter is not None:
        reporter.start()

    try:
        await asyncio.sleep(config['run_duration'])
        tracking = session.is_tracking()
        angle = session.estimate_angle()
    finally:
        if reporter is not None:
            reporter.stop()
        if feeder is not None:
            feeder.cancel()
        session.stop_tracking()
        await session.close()

    if tracking:
        print(f"\n✓ Tracking target at {angle} degrees")
    else:
        print("\n✗ No target in view")

    return tracking


def run() -> None:
    """Console script entry point."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH
    asyncio.run(main(config_path))


if __name__ == '__main__':
    run()
