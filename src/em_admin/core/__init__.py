"""
核心模块
========

包含数据帧处理、记录解码、串口管理和校验算法等核心功能。
"""

from .frame_handler import FrameHandler, MBusFrame
from .checksum import checksum_long, checksum_short
from .records import decode_records
from .serial_manager import SerialManager
from .protocol import MBusProtocol

__all__ = [
    "FrameHandler",
    "MBusFrame",
    "checksum_long",
    "checksum_short",
    "decode_records",
    "SerialManager",
    "MBusProtocol",
]
