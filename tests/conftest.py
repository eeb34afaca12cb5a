"""
测试公共夹具
============
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from em_admin.config.settings import SerialConfig
from em_admin.core.protocol import MBusProtocol
from em_admin.core.serial_manager import SerialManager

from tests.helpers import DummySerialPort


@pytest.fixture
def dummy_port():
    return DummySerialPort()


@pytest.fixture
def serial_manager(dummy_port):
    """已打开的串口管理器，底层为模拟串口"""
    manager = SerialManager(SerialConfig(port="COM1", wakeup_settle_time=0))
    manager._port = dummy_port
    return manager


@pytest.fixture
def protocol(serial_manager):
    return MBusProtocol(serial_manager)
