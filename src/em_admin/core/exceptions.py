"""
异常定义
========

协议引擎使用的全部异常。每个异常携带 exit_code，命令行据此返回进程退出码。
"""

import errno

from ..config.constants import AES_GATE_EXIT_CODE


class MeterError(RuntimeError):
    """所有错误的基类，代码中不直接抛出"""

    exit_code = 1


class TransportError(MeterError):
    """串口打开、配置或写入失败"""

    exit_code = errno.EIO


class ReadTimeout(MeterError):
    """读取窗口内没有收到任何字节"""

    exit_code = errno.EIO


class MalformedFrame(MeterError):
    """收到的帧结构错误"""

    exit_code = errno.EPROTO


class FrameTooSmall(MalformedFrame):
    """缓冲区小于最小帧长度"""


class BadStart(MalformedFrame):
    """起始符错误"""


class BadStop(MalformedFrame):
    """结束符错误"""


class LengthMismatch(MalformedFrame):
    """两个长度字节不一致或长度过小"""


class BufferTooSmall(MalformedFrame):
    """声明的帧长度超过缓冲区"""


class BadChecksum(MalformedFrame):
    """校验和错误"""


class ShortReply(MeterError):
    """帧结构正确，但长度低于操作要求的最小值"""

    exit_code = errno.EPROTO


class UnexpectedAck(MeterError):
    """需要单字节ACK时收到了其他内容"""

    exit_code = errno.EPROTO


class InvalidPayload(MeterError, ValueError):
    """负载无法编码进长帧"""

    exit_code = errno.EINVAL


class AesKeyNotConfirmed(MeterError):
    """未经操作员确认，拒绝写入AES密钥"""

    exit_code = AES_GATE_EXIT_CODE
