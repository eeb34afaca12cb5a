"""
数据帧处理模块
==============

负责M-Bus短帧、长帧的封装和校验解析。

短帧: | 0x10 | C | A | CHK | 0x16 |
长帧: | 0x68 | L | L | 0x68 | C | A | CI | 用户数据(L-3字节) | CHK | 0x16 |

L 为 C、A、CI 与用户数据的总长度，在帧中重复出现两次，
接收方必须确认两份一致后才能使用。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ..config.constants import (
    FrameMarker,
    ControlInfo,
    SHORT_FRAME_LENGTH,
    LONG_FRAME_HEADER_LENGTH,
    LONG_FRAME_OVERHEAD,
    MIN_LONG_FRAME_LENGTH,
    MAX_LONG_PAYLOAD_LENGTH,
    RESPONSE_HEADER_LENGTH,
)
from .checksum import checksum_long, checksum_short
from .exceptions import (
    InvalidPayload,
    MalformedFrame,
    FrameTooSmall,
    BadStart,
    BadStop,
    LengthMismatch,
    BufferTooSmall,
    BadChecksum,
)
from .structures import ResponseHeader
from ..utils.logger import get_logger, format_hex

logger = get_logger(__name__)


class FrameKind(Enum):
    """帧类型"""

    SHORT = "short"
    LONG = "long"


@dataclass
class MBusFrame:
    """校验通过的M-Bus帧"""

    kind: FrameKind
    control: int
    address: int
    control_info: Optional[int] = None  # 短帧没有CI域
    payload: bytes = b""  # CI之后的用户数据
    raw: bytes = b""  # 帧的原始字节

    @property
    def header(self) -> Optional[ResponseHeader]:
        """RSP_UD应答的12字节固定头，其他帧返回None"""
        if self.control_info != ControlInfo.RSP_UD:
            return None
        return ResponseHeader.unpack(self.payload)

    @property
    def application_data(self) -> bytes:
        """固定头之后的应用数据"""
        return self.payload[RESPONSE_HEADER_LENGTH:]

    def __len__(self) -> int:
        return len(self.raw)


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise InvalidPayload(f"{name}超出单字节范围: {value}")


def _reject(error_class, message: str, buf: bytes) -> MalformedFrame:
    """记录错误和原始数据，返回待抛出的异常"""
    logger.error(message)
    logger.debug(f"被拒绝的数据({len(buf)}字节): {format_hex(buf)}")
    return error_class(message)


class FrameHandler:
    """数据帧处理器"""

    @staticmethod
    def build_short(control: int, address: int) -> bytes:
        """
        封装短帧

        Args:
            control: C域
            address: A域

        Returns:
            5字节短帧

        Examples:
            >>> FrameHandler.build_short(0x7B, 0xFE).hex()
            '107bfe7916'
        """
        _check_byte("C域", control)
        _check_byte("A域", address)
        return bytes([
            FrameMarker.SHORT_START,
            control,
            address,
            checksum_short(control, address),
            FrameMarker.STOP,
        ])

    @staticmethod
    def build_long(control: int, address: int, control_info: int, payload: bytes) -> bytes:
        """
        封装长帧

        Args:
            control: C域
            address: A域
            control_info: CI域
            payload: 用户数据，最多252字节

        Returns:
            完整长帧，长度为 len(payload) + 9

        Raises:
            InvalidPayload: 负载过长，长度字节无法表示时抛出
        """
        if payload is None:
            raise InvalidPayload("负载为空")
        _check_byte("C域", control)
        _check_byte("A域", address)
        _check_byte("CI域", control_info)
        if len(payload) > MAX_LONG_PAYLOAD_LENGTH:
            raise InvalidPayload(
                f"负载过长: {len(payload)}字节，最多{MAX_LONG_PAYLOAD_LENGTH}字节"
            )

        length = 3 + len(payload)
        frame = bytearray([
            FrameMarker.LONG_START,
            length,
            length,
            FrameMarker.LONG_START,
            control,
            address,
            control_info,
        ])
        frame += payload
        # 校验和占位，计算时不参与
        frame += bytes([0x00, FrameMarker.STOP])
        frame[-2] = checksum_long(bytes(frame))
        return bytes(frame)

    @staticmethod
    def validate_short(buf: bytes) -> MBusFrame:
        """
        校验并解析短帧

        Args:
            buf: 接收到的数据

        Returns:
            解析后的帧

        Raises:
            FrameTooSmall, BadStart, BadStop, BadChecksum
        """
        if len(buf) < SHORT_FRAME_LENGTH:
            raise _reject(FrameTooSmall, f"M-Bus短帧: 长度不足 {len(buf)}", buf)
        if buf[0] != FrameMarker.SHORT_START:
            raise _reject(BadStart, f"M-Bus短帧: 起始符错误 0x{buf[0]:02x}", buf)
        if buf[SHORT_FRAME_LENGTH - 1] != FrameMarker.STOP:
            raise _reject(
                BadStop, f"M-Bus短帧: 结束符错误 0x{buf[SHORT_FRAME_LENGTH - 1]:02x}", buf
            )
        expected = checksum_short(buf[1], buf[2])
        if buf[3] != expected:
            raise _reject(
                BadChecksum, f"M-Bus短帧: 校验和错误 接收=0x{buf[3]:02x}, 计算=0x{expected:02x}", buf
            )

        logger.info(f"MBUS C: 0x{buf[1]:02x}")
        logger.info(f"MBUS A: {buf[2]}")
        return MBusFrame(
            kind=FrameKind.SHORT,
            control=buf[1],
            address=buf[2],
            raw=bytes(buf[:SHORT_FRAME_LENGTH]),
        )

    @staticmethod
    def validate_long(buf: bytes) -> Tuple[MBusFrame, int]:
        """
        校验并解析长帧

        只解析声明长度内的字节，缓冲区末尾多余的数据被忽略。
        单个比特错误一定会被累加校验发现；多个比特错误恰好相互抵消时
        校验和仍然一致，这是累加校验固有的漏检，不视为缺陷。

        Args:
            buf: 接收到的数据，可以比帧长

        Returns:
            元组(帧, 消耗的字节数)，消耗字节数 = L + 6

        Raises:
            FrameTooSmall, BadStart, LengthMismatch, BufferTooSmall,
            BadStop, BadChecksum
        """
        if len(buf) < MIN_LONG_FRAME_LENGTH:
            raise _reject(FrameTooSmall, f"M-Bus长帧: 长度不足 {len(buf)}", buf)
        if buf[0] != FrameMarker.LONG_START or buf[3] != FrameMarker.LONG_START:
            raise _reject(BadStart, "M-Bus长帧: 起始符错误", buf)
        if buf[1] != buf[2]:
            raise _reject(
                LengthMismatch, f"M-Bus长帧: 长度字节不一致 {buf[1]} != {buf[2]}", buf
            )
        if buf[1] < 3:
            raise _reject(LengthMismatch, f"M-Bus长帧: 声明长度过小 {buf[1]}", buf)

        frame_length = buf[1] + LONG_FRAME_OVERHEAD
        if frame_length > len(buf):
            raise _reject(
                BufferTooSmall,
                f"M-Bus长帧: 帧长度 {frame_length} 超过缓冲区大小 {len(buf)}",
                buf,
            )
        if buf[frame_length - 1] != FrameMarker.STOP:
            raise _reject(
                BadStop, f"M-Bus长帧: 结束符错误 0x{buf[frame_length - 1]:02x}", buf
            )

        raw = bytes(buf[:frame_length])
        expected = checksum_long(raw)
        if raw[-2] != expected:
            raise _reject(
                BadChecksum,
                f"M-Bus长帧: 校验和错误 接收=0x{raw[-2]:02x}, 计算=0x{expected:02x}",
                buf,
            )

        frame = MBusFrame(
            kind=FrameKind.LONG,
            control=raw[4],
            address=raw[5],
            control_info=raw[6],
            payload=raw[LONG_FRAME_HEADER_LENGTH:-2],
            raw=raw,
        )

        logger.info(f"MBUS C: 0x{frame.control:02x}")
        logger.info(f"MBUS A: {frame.address}")
        logger.info(f"MBUS CI: 0x{frame.control_info:02x}")
        header = frame.header
        if header is not None:
            header.log()

        return frame, frame_length


# 模块级别名
def build_short(control: int, address: int) -> bytes:
    """FrameHandler.build_short 的函数别名"""
    return FrameHandler.build_short(control, address)


def build_long(control: int, address: int, control_info: int, payload: bytes) -> bytes:
    """FrameHandler.build_long 的函数别名"""
    return FrameHandler.build_long(control, address, control_info, payload)


def validate_short(buf: bytes) -> MBusFrame:
    """FrameHandler.validate_short 的函数别名"""
    return FrameHandler.validate_short(buf)


def validate_long(buf: bytes) -> Tuple[MBusFrame, int]:
    """FrameHandler.validate_long 的函数别名"""
    return FrameHandler.validate_long(buf)
