# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC device emulator.

Provides a simple emulation of a Gree HVAC device on UDP.
"""

from .emulator_impl import GreeHvacEmulator, DEFAULT_DEVICE_KEY, DEFAULT_PROPERTIES
