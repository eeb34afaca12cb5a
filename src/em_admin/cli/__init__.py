"""
命令行接口模块
==============

提供水表管理的命令行接口。
"""

from .meter_cli import MeterCLI

__all__ = [
    "MeterCLI",
]
