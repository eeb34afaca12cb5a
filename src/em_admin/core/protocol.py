"""
协议交互模块
============

在串口之上实现半双工的请求/应答交互：一次只有一个请求在进行，
每次交互只读取一次，超时即失败，不在内部重试。
"""

import time

from ..config.constants import (
    FrameMarker,
    WAKEUP_CHAR,
    WAKEUP_BLOCK_SIZE,
    WAKEUP_REPEAT,
    REPLY_CAPACITY_ACK,
    REPLY_CAPACITY_LARGE,
)
from .exceptions import ReadTimeout, ShortReply, UnexpectedAck
from .frame_handler import FrameHandler, MBusFrame
from .serial_manager import SerialManager
from ..utils.logger import get_logger, format_hex

logger = get_logger(__name__)


class MBusProtocol:
    """M-Bus请求/应答交互"""

    def __init__(self, serial_manager: SerialManager):
        """
        初始化协议交互

        Args:
            serial_manager: 已打开的串口管理器
        """
        self.serial_manager = serial_manager

    @property
    def timeout(self) -> float:
        return self.serial_manager.config.timeout

    def bootstrap_link(self) -> None:
        """
        激活红外链路

        以 8N1 发送唤醒字符，等待设备就绪后切换为 8E1。
        """
        config = self.serial_manager.config
        self.serial_manager.configure(config.baudrate, config.wakeup_parity)

        logger.info("发送唤醒字节")
        block = bytes([WAKEUP_CHAR]) * WAKEUP_BLOCK_SIZE
        for _ in range(WAKEUP_REPEAT):
            self.serial_manager.write(block)
        time.sleep(config.wakeup_settle_time)

        self.serial_manager.configure(config.baudrate, config.data_parity)

    def exchange(self, frame: bytes, reply_capacity: int = REPLY_CAPACITY_LARGE) -> bytes:
        """
        发送一帧并读取应答

        Args:
            frame: 已封装好的帧
            reply_capacity: 最多读取的字节数

        Returns:
            收到的全部字节（不保证是完整帧）

        Raises:
            TransportError: 写入或读取失败
            ReadTimeout: 超时时间内没有收到任何字节
        """
        self.serial_manager.write(frame)
        reply = self.serial_manager.read_with_timeout(reply_capacity, self.timeout)
        if not reply:
            logger.error(f"等待应答超时 ({self.timeout}s)")
            raise ReadTimeout(f"{self.timeout}s 内没有收到应答")
        return reply

    def exchange_acked(self, frame: bytes) -> None:
        """
        发送一帧并要求单字节ACK应答

        Raises:
            ReadTimeout: 没有收到任何字节
            UnexpectedAck: 应答不是单个0xE5
        """
        reply = self.exchange(frame, REPLY_CAPACITY_ACK)
        if len(reply) != 1 or reply[0] != FrameMarker.ACK:
            logger.error(
                f"M-Bus协议错误，收到 {len(reply)} 字节无法处理的数据: {format_hex(reply)}"
            )
            raise UnexpectedAck(f"期望ACK，收到 {len(reply)} 字节: {format_hex(reply)}")

    def exchange_framed_long(
        self,
        frame: bytes,
        min_reply_len: int,
        reply_capacity: int = REPLY_CAPACITY_LARGE,
    ) -> MBusFrame:
        """
        发送一帧并要求长帧应答

        Args:
            frame: 已封装好的帧
            min_reply_len: 应答帧的最小总长度
            reply_capacity: 最多读取的字节数

        Returns:
            校验通过的应答帧

        Raises:
            ReadTimeout: 没有收到任何字节
            MalformedFrame: 应答帧结构错误
            ShortReply: 应答帧短于 min_reply_len
        """
        reply = self.exchange(frame, reply_capacity)
        reply_frame, consumed = FrameHandler.validate_long(reply)
        if consumed < min_reply_len:
            logger.error(
                f"M-Bus协议错误，应答帧长度 {consumed} 小于要求的 {min_reply_len}"
            )
            raise ShortReply(f"应答帧长度 {consumed} 小于要求的 {min_reply_len}")
        if consumed < len(reply):
            logger.debug(f"忽略帧后多余的 {len(reply) - consumed} 字节")
        return reply_frame
