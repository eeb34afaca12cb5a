"""
数据记录解码模块
================

解析应答中 DIF[,DIFE] VIF[,VIFE] 数据 形式的自描述记录流。

遇到不支持的数据格式（DIF低4位大于7）时停止解码。这是对未知记录类型的
容错处理，而不是错误：之前已解码的记录仍然有效。
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Union

from ..config.constants import DATA_FORMAT_WIDTHS, VIF_DATE, VIF_DATETIME
from .structures import MeterDate, MeterDateTime
from ..utils.logger import get_logger

logger = get_logger(__name__)

EXTENSION_BIT = 0x80
STORAGE_BIT = 0x40
DATA_FORMAT_MASK = 0x0F

RecordValue = Union[int, MeterDate, MeterDateTime, None]


class RecordTruncated(Exception):
    """记录超出数据末尾"""


class RecordCursor:
    """带边界检查的读取游标"""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def read_byte(self) -> int:
        if self.at_end():
            raise RecordTruncated(f"偏移 {self._pos} 处没有数据")
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read(self, size: int) -> bytes:
        if size > self.remaining:
            raise RecordTruncated(
                f"偏移 {self._pos} 处需要 {size} 字节，剩余 {self.remaining} 字节"
            )
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk


@dataclass
class Record:
    """一条解码后的数据记录"""

    dif: int
    vif: int
    raw: bytes
    dife: Optional[int] = None
    vife: Optional[int] = None
    value: RecordValue = None

    @property
    def data_format(self) -> int:
        return self.dif & DATA_FORMAT_MASK

    @property
    def storage_number(self) -> int:
        """DIF的bit6为最低位，DIFE的低4位依次向上排列"""
        number = (self.dif & STORAGE_BIT) >> 6
        if self.dife is not None:
            number |= (self.dife & 0x0F) << 1
        return number


def interpret_value(data_format: int, vif: int, raw: bytes) -> RecordValue:
    """
    按数据格式和VIF解释记录数据

    Args:
        data_format: DIF低4位（0-7）
        vif: VIF
        raw: 数据字节，长度与数据格式对应

    Returns:
        整数、MeterDate、MeterDateTime，无法解释时返回None
    """
    if data_format == 4 and vif == VIF_DATETIME:
        return MeterDateTime.unpack_type_f(raw)
    if data_format == 2 and vif == VIF_DATE:
        return MeterDate.unpack_type_g(raw)
    # 0 = 无数据, 5 = 32位实数，不作解释
    if data_format in (0, 5):
        return None
    return int.from_bytes(raw, "little")


def decode_records(payload: bytes) -> Iterator[Record]:
    """
    逐条解码记录流

    生成器只能遍历一次。负载耗尽、遇到不支持的数据格式或记录被截断时停止。

    Args:
        payload: 应答固定头之后的应用数据

    Yields:
        Record
    """
    cursor = RecordCursor(payload)
    index = 0

    while not cursor.at_end():
        start = cursor.position
        try:
            dif = cursor.read_byte()
            dife = cursor.read_byte() if dif & EXTENSION_BIT else None
            vif = cursor.read_byte()
            vife = cursor.read_byte() if vif & EXTENSION_BIT else None

            data_format = dif & DATA_FORMAT_MASK
            if data_format >= len(DATA_FORMAT_WIDTHS):
                logger.debug(f"记录{index:02d}: 不支持的数据格式 DIF=0x{dif:02x}，停止解码")
                return

            raw = cursor.read(DATA_FORMAT_WIDTHS[data_format])
        except RecordTruncated as e:
            logger.debug(f"记录{index:02d}: 从偏移 {start} 开始的记录不完整，停止解码: {e}")
            return

        yield Record(
            dif=dif,
            vif=vif,
            raw=raw,
            dife=dife,
            vife=vife,
            value=interpret_value(data_format, vif, raw),
        )
        index += 1


def format_record(index: int, record: Record) -> str:
    """
    将记录格式化为一行日志

    Examples:
        >>> format_record(0, Record(dif=0x04, vif=0x13, raw=bytes([1, 0, 0, 0]), value=1))
        '00: DIF: 04    VIF: 13    SN: 0 RAW: 01 00 00 00 VAL: 1'
    """
    dife = f"-{record.dife:02x}" if record.dife is not None else "   "
    vife = f"-{record.vife:02x}" if record.vife is not None else "   "
    raw = " ".join(f"{byte:02x}" for byte in record.raw)
    line = (
        f"{index:02d}: DIF: {record.dif:02x}{dife} VIF: {record.vif:02x}{vife}"
        f" SN: {record.storage_number} RAW: {raw}"
    )
    if record.value is not None:
        line += f" VAL: {record.value}"
    return line
