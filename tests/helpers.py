"""
测试辅助工具
============

提供模拟串口和常用应答帧的构造函数。
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from em_admin.config.constants import ControlInfo
from em_admin.core.frame_handler import FrameHandler
from em_admin.core.structures import ResponseHeader


class DummySerialPort:
    """极简串口模拟，记录写入的数据并按FIFO返回预置的应答。"""

    def __init__(self):
        self.written = []  # 记录写入的数据帧
        self.to_read = []  # 预置的应答（FIFO），每次read消耗一项
        self.is_open = True
        self.timeout = None
        self.baudrate = 2400
        self.parity = "N"
        self.settings_history = []  # (baudrate, parity) 变更记录

    # pyserial API
    def write(self, data: bytes):
        self.written.append(bytes(data))
        return len(data)

    def read(self, size: int) -> bytes:
        if not self.to_read or size <= 0:
            return b""
        first = self.to_read.pop(0)
        return first[:size]

    def close(self):
        self.is_open = False

    def __setattr__(self, name, value):
        if name == "parity" and "settings_history" in self.__dict__:
            self.settings_history.append((self.baudrate, value))
        super().__setattr__(name, value)


def make_header(manufacturer: int = 0x12FA) -> ResponseHeader:
    """构造一个RSP_UD固定头"""
    return ResponseHeader(
        secondary_address=0x12345678,
        manufacturer=manufacturer,
        version=0x01,
        medium=0x07,
        access_count=0x2A,
        status=0x00,
        signature=0x0000,
    )


def rsp_ud(data: bytes = b"", header: ResponseHeader = None) -> bytes:
    """构造一个RSP_UD长帧应答，data为固定头之后的应用数据"""
    header = header or make_header()
    return FrameHandler.build_long(0x08, 0xFE, ControlInfo.RSP_UD, header.pack() + data)
