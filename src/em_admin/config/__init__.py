"""
配置模块
=======

包含协议常量定义和配置管理功能。
"""

from .constants import *
from .settings import *

__all__ = [
    # 常量
    "FrameMarker",
    "ControlField",
    "ControlInfo",
    "SubCommand",
    "SettingsFlag",
    "DEFAULT_ADDRESS",
    "DEFAULT_BAUDRATE",
    "DEFAULT_TIMEOUT",
    "COMMAND_NAMES",
    # 配置
    "SerialConfig",
    "MeterConfig",
]
