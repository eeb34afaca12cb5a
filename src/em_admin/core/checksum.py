"""
校验算法模块
============

提供M-Bus帧使用的单字节累加校验。
"""

from ..config.constants import FRAME_FOOTER_LENGTH


def checksum_long(frame: bytes) -> int:
    """
    计算长帧的校验和

    对 C、A、CI 及用户数据累加后取低8位，即帧中偏移 [4, len-2) 的字节。
    前面的起始符、两个长度字节和末尾的校验和、结束符都不参与计算。

    Args:
        frame: 完整的长帧（校验和字节的值不影响结果）

    Returns:
        校验和值，8位无符号整数

    Raises:
        TypeError: 当输入不是bytes类型时抛出

    Examples:
        >>> checksum_long(bytes([0x68, 3, 3, 0x68, 0x53, 0xFE, 0x51, 0x00, 0x16]))
        162
    """
    if not isinstance(frame, (bytes, bytearray)):
        raise TypeError("输入数据必须是bytes类型")

    return sum(frame[4:len(frame) - FRAME_FOOTER_LENGTH]) & 0xFF


def checksum_short(control: int, address: int) -> int:
    """
    计算短帧的校验和

    Args:
        control: C域
        address: A域

    Returns:
        (control + address) 的低8位
    """
    return (control + address) & 0xFF
