# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV simple client connection API.

Provides a simple API for creating a started client for a TV.
"""

from __future__ import annotations

from ..internal_types import *
from ..protocol import RandomSource
from .client_config import LgTvClientConfig
from .client_impl import LgTvClient

async def lg_tv_connect(
        host: Optional[str]=None,
        keycode: Optional[str]=None,
        mac_address: Optional[str]=None,
        config: Optional[LgTvClientConfig]=None,
        on_message: Optional[MessageSink]=None,
        random_source: Optional[RandomSource]=None,
      ) -> LgTvClient:
    """Create and start an LG TV client from a configuration.

    The key is derived and, if the configuration has auto_connect set, a
    connection is requested. Use LgTvClient.wait_online() to wait for the
    session to come up.

    Args:
        host: The hostname or IPV4 address of the TV.
                may optionally be prefixed with "tcp://".
                May be suffixed with ":<port>" to specify a
                non-default port.
                If None, the host will be taken from the config, or from the
                LG_TV_HOST environment variable.
        keycode:
                The 8-character keycode from the TV's service menu.
                If None, the keycode will be taken from the config.
        mac_address:
                The TV's hardware address, for power_on(). If None, it
                will be taken from the config.
        config: A LgTvClientConfig object that specifies
                the default host, keycode, etc. to use.
                If None, a default config will be created.
        on_message: Called with each decoded message from the TV.
        random_source: IV source for the crypto engine.
    """
    config = LgTvClientConfig(
        default_host=host,
        keycode=keycode,
        mac_address=mac_address,
        base_config=config
      )
    client = LgTvClient(config=config, on_message=on_message, random_source=random_source)
    try:
        await client.start()
    except BaseException:
        await client.aclose()
        raise

    return client
