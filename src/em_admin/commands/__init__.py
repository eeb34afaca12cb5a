"""
命令模块
========

提供水表的读写命令。
"""

from .meter_commands import MeterAdmin, InfoReading

__all__ = [
    "MeterAdmin",
    "InfoReading",
]
