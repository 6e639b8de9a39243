# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC simple client connection API.

Provides a one-call way to create a client and start connecting to a device.
"""

from __future__ import annotations

from ..internal_types import *
from .client_config import GreeHvacClientConfig
from .client_impl import GreeHvacClient
from .state_machine import SessionCallback

async def gree_hvac_connect(
        host: Optional[str]=None,
        config: Optional[GreeHvacClientConfig]=None,
        *,
        wait_timeout_secs: Optional[float]=None,
        on_connected: Optional[SessionCallback]=None,
        on_status: Optional[SessionCallback]=None,
        on_update: Optional[SessionCallback]=None,
        on_error: Optional[SessionCallback]=None,
        on_disconnected: Optional[SessionCallback]=None,
      ) -> GreeHvacClient:
    """Create a Gree HVAC client and start discovery and binding.

    Args:
        host: The IPv4 address of the device. If None, the host will be
                taken from the config, or the GREE_HVAC_HOST environment
                variable.
        config: A GreeHvacClientConfig object that specifies the poll
                interval, ports, command table, etc. to use.
                If None, a default config will be created.
        wait_timeout_secs:
                If not None, waits up to this many seconds for binding to
                complete before returning; the client is closed and
                asyncio.TimeoutError raised if it does not.
        on_connected, on_status, on_update, on_error, on_disconnected:
                Session callbacks; see GreeHvacClient.
    """
    client = await GreeHvacClient.create(
        host,
        config,
        on_connected=on_connected,
        on_status=on_status,
        on_update=on_update,
        on_error=on_error,
        on_disconnected=on_disconnected,
      )
    if wait_timeout_secs is not None:
        try:
            await client.wait_connected(wait_timeout_secs)
        except BaseException:
            await client.aclose()
            raise
    return client
