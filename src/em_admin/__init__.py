"""
水表红外管理工具
================

通过红外M-Bus接口读写水表的无线参数，并读取各种信息。

主要功能：
- M-Bus短帧/长帧封装与校验
- DIF/VIF记录解码
- 参数块读写
- 时间与结算日设置
- 月度读数与高精度计数读取

作者: lanford
版本: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "lanford"
__email__ = ""
__description__ = "通过红外M-Bus接口管理水表的工具"

# 导出主要类
from .core.frame_handler import FrameHandler
from .core.protocol import MBusProtocol
from .core.serial_manager import SerialManager
from .commands.meter_commands import MeterAdmin

__all__ = [
    "FrameHandler",
    "MBusProtocol",
    "SerialManager",
    "MeterAdmin",
]
