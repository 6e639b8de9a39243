# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC client.

Provides discovery, binding, polling and commanding of a single device
over UDP.
"""

from .client_config import GreeHvacClientConfig, derive_local_port
from .session import DeviceSession, SessionState
from .state_machine import GreeHvacStateMachine, SessionCallbacks
from .udp_transport import GreeHvacUdpTransport
from .client_impl import GreeHvacClient
from .simple import gree_hvac_connect
