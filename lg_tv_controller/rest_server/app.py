#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an LG TV.

Configuration is read from the JSON file named by the LG_TV_CONFIG environment
variable, or from lg_tv_config.json in the current directory if it exists.
Keys missing from the file fall back to the LG_TV_* environment variables.
"""

from __future__ import annotations

from fastapi import FastAPI

import time
import os
import json

from contextlib import asynccontextmanager

from .logger import logger
from ..internal_types import *
from .. import (
    LgTvClient,
    LgTvClientConfig,
    lg_tv_connect,
  )

from .api import router as api_router

def load_raw_config() -> JsonableDict:
    """Loads the JSON configuration file, if any."""
    config_file = os.environ.get("LG_TV_CONFIG", None)
    if config_file is None:
        if os.path.exists("lg_tv_config.json"):
            config_file = "lg_tv_config.json"
    if config_file is None:
        return {}
    with open(config_file, "r") as f:
        raw_config: JsonableDict = json.load(f)
    return raw_config

@asynccontextmanager
async def fastapi_lifetime(app: FastAPI) -> AsyncIterator[None]:
    """
    A context manager that initializes and cleans up for FastAPI.
    """

    tv_client: Optional[LgTvClient] = None
    try:
        logger.info("LG TV REST server starting up--initializing...")
        raw_config = load_raw_config()
        app.state.raw_config = raw_config
        tv_config = LgTvClientConfig.from_jsonable(raw_config)
        app.state.tv_config = tv_config
        app.state.launch_time = time.monotonic()
        tv_client = await lg_tv_connect(config=tv_config)
        app.state.tv_client = tv_client
        logger.info(f"Serving API for TV at {tv_client}...")

        logger.info("LG TV REST server initialization done; starting server...")
        yield
    finally:
        logger.info("LG TV REST server shutting down--cleaning up...")
        if tv_client is not None:
            await tv_client.aclose()

tv_api = FastAPI(lifespan=fastapi_lifetime)
tv_api.include_router(api_router)

def get_tv_client() -> LgTvClient:
    return tv_api.state.tv_client

def get_tv_config() -> LgTvClientConfig:
    return tv_api.state.tv_config

def get_raw_config() -> JsonableDict:
    return tv_api.state.raw_config
