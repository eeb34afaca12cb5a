#!/usr/bin/env python3
"""
串口管理器测试
==============

这个文件测试 em_admin.core.serial_manager 模块中的串口管理功能。

由于串口测试涉及硬件设备，我们使用mock对象来模拟串口行为。
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch
import serial

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from em_admin.core.serial_manager import SerialManager
from em_admin.core.exceptions import TransportError
from em_admin.config.settings import SerialConfig


def open_manager(mock_serial_class, **port_attrs):
    """创建并打开一个底层为mock的串口管理器"""
    mock_serial_instance = MagicMock()
    mock_serial_instance.is_open = True
    for name, value in port_attrs.items():
        setattr(mock_serial_instance, name, value)
    mock_serial_class.return_value = mock_serial_instance

    manager = SerialManager(SerialConfig(port="COM1"))
    assert manager.open() is True
    return manager, mock_serial_instance


class TestSerialManager:
    """
    测试SerialManager类的基本功能
    """

    def test_init(self):
        """
        测试SerialManager的初始化

        验证构造函数正确设置配置和初始状态
        """
        config = SerialConfig(port="COM1")
        manager = SerialManager(config)

        assert manager.config == config
        assert manager.port is None
        assert manager.is_open is False

    @patch('serial.Serial')
    def test_open_success(self, mock_serial_class):
        """
        测试成功打开串口

        默认以 2400 波特 8N1 打开
        """
        manager, mock_serial_instance = open_manager(mock_serial_class)

        assert manager.is_open is True
        assert manager.port == mock_serial_instance
        mock_serial_class.assert_called_once_with(**manager.config.to_serial_kwargs())
        kwargs = mock_serial_class.call_args.kwargs
        assert kwargs["baudrate"] == 2400
        assert kwargs["parity"] == serial.PARITY_NONE

    @patch('serial.Serial')
    def test_open_failure(self, mock_serial_class):
        """
        测试打开串口失败的情况
        """
        mock_serial_class.side_effect = serial.SerialException("无法打开串口")

        manager = SerialManager(SerialConfig(port="COM1"))

        assert manager.open() is False
        assert manager.is_open is False
        assert manager.port is None

    @patch('serial.Serial')
    def test_open_already_open(self, mock_serial_class):
        """
        测试重复打开已经打开的串口

        应该返回True但不重新创建串口对象
        """
        manager, _ = open_manager(mock_serial_class)

        assert manager.open() is True
        assert mock_serial_class.call_count == 1

    def test_close_when_not_open(self):
        """
        测试关闭未打开的串口
        """
        manager = SerialManager(SerialConfig(port="COM1"))
        manager.close()  # 不应该抛出异常

        assert manager.port is None
        assert manager.is_open is False

    @patch('serial.Serial')
    def test_close_success(self, mock_serial_class):
        manager, mock_serial_instance = open_manager(mock_serial_class)
        manager.close()

        mock_serial_instance.close.assert_called_once()
        assert manager.port is None

    @patch('serial.Serial')
    def test_close_with_exception(self, mock_serial_class):
        """
        测试关闭串口时发生异常的情况

        即使关闭时出错，也应该清理内部状态
        """
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.close.side_effect = serial.SerialException("关闭失败")

        manager.close()

        assert manager.port is None
        assert manager.is_open is False


class TestSerialManagerConfigure:
    """测试修改串口参数"""

    @patch('serial.Serial')
    def test_configure(self, mock_serial_class):
        manager, mock_serial_instance = open_manager(mock_serial_class)

        manager.configure(2400, serial.PARITY_EVEN)

        assert mock_serial_instance.baudrate == 2400
        assert mock_serial_instance.parity == serial.PARITY_EVEN

    def test_configure_when_not_open(self):
        manager = SerialManager(SerialConfig(port="COM1"))
        with pytest.raises(TransportError):
            manager.configure(2400, serial.PARITY_EVEN)


class TestSerialManagerIO:
    """
    测试SerialManager的输入输出功能
    """

    @patch('serial.Serial')
    def test_write_success(self, mock_serial_class):
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.write.return_value = 5

        assert manager.write(b'hello') == 5
        mock_serial_instance.write.assert_called_once_with(b'hello')

    @patch('serial.Serial')
    def test_write_partial(self, mock_serial_class):
        """
        测试部分写入的情况

        写入的字节数少于预期时按传输错误处理
        """
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.write.return_value = 3

        with pytest.raises(TransportError, match="写入不完整"):
            manager.write(b'hello')

    def test_write_when_not_open(self):
        manager = SerialManager(SerialConfig(port="COM1"))
        with pytest.raises(TransportError):
            manager.write(b'test')

    @patch('serial.Serial')
    def test_write_exception(self, mock_serial_class):
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.write.side_effect = serial.SerialException("写入失败")

        with pytest.raises(TransportError, match="写入失败"):
            manager.write(b'test')

    @patch('serial.Serial')
    def test_read_with_timeout(self, mock_serial_class):
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.read.return_value = b'hello'

        assert manager.read_with_timeout(64, timeout=0.5) == b'hello'
        mock_serial_instance.read.assert_called_once_with(64)
        assert mock_serial_instance.timeout == 0.5

    @patch('serial.Serial')
    def test_read_default_timeout(self, mock_serial_class):
        """未指定超时时间时使用配置值"""
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.read.return_value = b''

        assert manager.read_with_timeout(8) == b''
        assert mock_serial_instance.timeout == 1.0

    def test_read_when_not_open(self):
        manager = SerialManager(SerialConfig(port="COM1"))
        with pytest.raises(TransportError):
            manager.read_with_timeout(10)

    @patch('serial.Serial')
    def test_read_exception(self, mock_serial_class):
        manager, mock_serial_instance = open_manager(mock_serial_class)
        mock_serial_instance.read.side_effect = serial.SerialException("读取失败")

        with pytest.raises(TransportError):
            manager.read_with_timeout(10)


class TestSerialManagerContextManager:
    """
    测试SerialManager的上下文管理器功能
    """

    @patch('serial.Serial')
    def test_context_manager_success(self, mock_serial_class):
        mock_serial_instance = MagicMock()
        mock_serial_instance.is_open = True
        mock_serial_class.return_value = mock_serial_instance

        manager = SerialManager(SerialConfig(port="COM1"))

        with manager as ctx_manager:
            assert ctx_manager is manager
            assert manager.is_open is True

        assert manager.port is None

    @patch('serial.Serial')
    def test_context_manager_open_failure(self, mock_serial_class):
        """
        测试上下文管理器打开失败的情况

        如果无法打开串口，应该抛出TransportError
        """
        mock_serial_class.side_effect = serial.SerialException("无法打开串口")

        manager = SerialManager(SerialConfig(port="COM1"))

        with pytest.raises(TransportError, match="无法打开串口"):
            with manager:
                pass

    @patch('serial.Serial')
    def test_connection_closes_on_exception(self, mock_serial_class):
        """
        测试在with块内发生异常的情况

        即使with块内发生异常，串口也应该被正确关闭
        """
        mock_serial_instance = MagicMock()
        mock_serial_instance.is_open = True
        mock_serial_class.return_value = mock_serial_instance

        manager = SerialManager(SerialConfig(port="COM1"))

        with pytest.raises(ValueError, match="测试异常"):
            with manager.connection():
                raise ValueError("测试异常")

        mock_serial_instance.close.assert_called_once()
        assert manager.port is None


class TestListPorts:
    """测试串口枚举"""

    @patch('em_admin.core.serial_manager.list_ports.comports')
    def test_list_available_ports(self, mock_comports):
        port_info = MagicMock()
        port_info.device = "/dev/ttyUSB0"
        port_info.description = "USB IR head"
        port_info.hwid = "USB VID:PID=0403:6001"
        mock_comports.return_value = [port_info]

        ports = SerialManager.list_available_ports()

        assert ports == [
            {
                "device": "/dev/ttyUSB0",
                "description": "USB IR head",
                "hwid": "USB VID:PID=0403:6001",
            }
        ]

    @patch('em_admin.core.serial_manager.list_ports.comports', return_value=[])
    def test_print_no_ports(self, mock_comports, capsys):
        SerialManager.print_available_ports()
        assert "没有找到可用的串口" in capsys.readouterr().out
