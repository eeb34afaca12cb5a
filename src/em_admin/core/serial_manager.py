"""
串口管理模块
============

提供串口的统一管理和操作接口。整个命令执行期间串口只打开一次，
先以 8N1 发送唤醒序列，再切换为 8E1 进行数据交换。
"""

import serial
from serial.tools import list_ports
from typing import List, Optional, Dict
from contextlib import contextmanager

from ..config.settings import SerialConfig
from .exceptions import TransportError
from ..utils.logger import get_logger, format_hex

logger = get_logger(__name__)


class SerialManager:
    """串口管理器"""

    def __init__(self, config: SerialConfig):
        """
        初始化串口管理器

        Args:
            config: 串口配置对象
        """
        self.config = config
        self._port: Optional[serial.Serial] = None

    @property
    def port(self) -> Optional[serial.Serial]:
        """获取串口对象"""
        return self._port

    @property
    def is_open(self) -> bool:
        """检查串口是否已打开"""
        return self._port is not None and self._port.is_open

    def open(self) -> bool:
        """
        打开串口连接

        Returns:
            成功返回True，失败返回False
        """
        try:
            if self.is_open:
                logger.warning(f"串口 {self.config.port} 已经打开")
                return True

            self._port = serial.Serial(**self.config.to_serial_kwargs())

            logger.info(f"成功打开串口 {self.config.port}")
            return True

        except (serial.SerialException, ValueError) as e:
            logger.error(f"打开串口 {self.config.port} 失败: {e}")
            self._port = None
            return False

    def close(self) -> None:
        """关闭串口连接"""
        try:
            if self._port and self._port.is_open:
                self._port.close()
                logger.info(f"已关闭串口 {self.config.port}")
        except serial.SerialException as e:
            logger.error(f"关闭串口失败: {e}")
        finally:
            self._port = None

    def configure(self, baudrate: int, parity: str) -> None:
        """
        修改已打开串口的波特率和校验位

        Args:
            baudrate: 波特率
            parity: serial.PARITY_NONE / serial.PARITY_EVEN 等

        Raises:
            TransportError: 串口未打开或参数无法生效时抛出
        """
        if not self.is_open:
            raise TransportError("串口未打开，无法配置")
        try:
            self._port.baudrate = baudrate
            self._port.parity = parity
        except (serial.SerialException, ValueError) as e:
            logger.error(f"配置串口失败: {e}")
            raise TransportError(f"配置串口失败: {e}") from e

        logger.info(f"串口设置为 {baudrate} 波特 8{parity}1")

    def write(self, data: bytes) -> int:
        """
        向串口写入数据

        Args:
            data: 要写入的字节数据

        Returns:
            写入的字节数

        Raises:
            TransportError: 串口未打开、写入异常或写入不完整时抛出
        """
        if not self.is_open:
            logger.error("串口未打开，无法写入数据")
            raise TransportError("串口未打开，无法写入数据")

        logger.debug(f"UART>{len(data):03d}> {format_hex(data)}")
        try:
            bytes_written = self._port.write(data)
        except serial.SerialException as e:
            logger.error(f"写入数据失败: {e}")
            raise TransportError(f"写入数据失败: {e}") from e

        if bytes_written is not None and bytes_written != len(data):
            raise TransportError(f"写入不完整: {bytes_written}/{len(data)}")
        return len(data)

    def read_with_timeout(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        """
        在超时时间内读取最多 max_bytes 字节

        Args:
            max_bytes: 最多读取的字节数
            timeout: 超时时间(秒)，None表示使用配置值

        Returns:
            读取到的数据，超时时可能为空

        Raises:
            TransportError: 串口未打开或读取异常时抛出
        """
        if not self.is_open:
            logger.error("串口未打开，无法读取数据")
            raise TransportError("串口未打开，无法读取数据")

        timeout = self.config.timeout if timeout is None else timeout
        try:
            self._port.timeout = timeout
            data = self._port.read(max_bytes)
        except serial.SerialException as e:
            logger.error(f"读取数据失败: {e}")
            raise TransportError(f"读取数据失败: {e}") from e

        if data:
            logger.debug(f"UART<{len(data):03d}< {format_hex(data)}")
        else:
            logger.debug("UART< (读取超时)")
        return data

    @contextmanager
    def connection(self):
        """
        上下文管理器，自动管理串口连接

        Examples:
            >>> config = SerialConfig(port='/dev/ttyUSB0')
            >>> manager = SerialManager(config)
            >>> with manager.connection():
            ...     # 在这里使用串口
            ...     pass
        """
        try:
            if not self.open():
                raise TransportError(f"无法打开串口 {self.config.port}")
            yield self
        finally:
            self.close()

    @staticmethod
    def list_available_ports() -> List[Dict[str, str]]:
        """
        获取系统可用的串口列表

        Returns:
            串口信息列表，每个元素包含device、description等字段
        """
        ports = []
        for port_info in list_ports.comports():
            ports.append({
                'device': port_info.device,
                'description': port_info.description or '未知设备',
                'hwid': port_info.hwid or '未知硬件ID'
            })
        return ports

    @staticmethod
    def print_available_ports() -> None:
        """打印系统可用的串口信息"""
        ports = SerialManager.list_available_ports()

        if not ports:
            print("没有找到可用的串口。")
            return

        print("可用的串口：")
        for port in ports:
            print(f"  {port['device']} - {port['description']}")

    def __enter__(self):
        """支持with语句"""
        if not self.open():
            raise TransportError(f"无法打开串口 {self.config.port}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支持with语句"""
        self.close()
