# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an LG TV.
"""
from .app import tv_api, get_tv_client, get_tv_config, get_raw_config
