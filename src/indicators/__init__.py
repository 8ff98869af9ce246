"""
Indicator lighting module.

Provides the output line abstraction, the indicator programs (steady,
flashing and encoded message) and the controller that runs them.
"""

from .output_line import OutputLine, GpioOutputLine
from .indicator_program import IndicatorMode, SteadyOn, SteadyOff, PulseTrain, EncodedMessage
from .indicator_controller import IndicatorController

__all__ = [
    'OutputLine',
    'GpioOutputLine',
    'IndicatorMode',
    'SteadyOn',
    'SteadyOff',
    'PulseTrain',
    'EncodedMessage',
    'IndicatorController',
]
