"""
协议数据结构定义
================

定义应答固定头、日期/时间的位压缩格式、20字节参数块和月度读数。
"""

import struct
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from ..config.constants import (
    SettingsFlag,
    SETTINGS_BLOCK_SIZE,
    RESPONSE_HEADER_LENGTH,
    MONTHLY_READING_SIZE,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

BASE_YEAR = 2000


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name}必须在{low}到{high}之间: {value}")


def bit_string(value: int, width: int) -> str:
    """按位输出掩码，最高位在左"""
    return format(value & ((1 << width) - 1), f"0{width}b")


@dataclass(frozen=True)
class MeterDate:
    """
    设备日期

    设备可能上报0日或0月，因此不直接使用 datetime.date。
    """

    year: int
    month: int
    day: int

    @classmethod
    def from_date(cls, value: date) -> "MeterDate":
        """从 datetime.date 创建"""
        return cls(value.year, value.month, value.day)

    def to_date(self) -> date:
        """转换为 datetime.date，日期非法时抛出 ValueError"""
        return date(self.year, self.month, self.day)

    def pack_word(self) -> int:
        """
        压缩为参数块/月度读数使用的16位格式

        位布局: bit15..9 = 年-2000, bit8..5 = 月, bit4..0 = 日
        """
        _check_range("年份", self.year, BASE_YEAR, BASE_YEAR + 0x7F)
        _check_range("月份", self.month, 0, 15)
        _check_range("日期", self.day, 0, 31)
        return (self.year - BASE_YEAR) << 9 | self.month << 5 | self.day

    @classmethod
    def unpack_word(cls, value: int) -> "MeterDate":
        """从16位压缩格式解包"""
        return cls(
            year=BASE_YEAR + ((value >> 9) & 0x7F),
            month=(value >> 5) & 0x0F,
            day=value & 0x1F,
        )

    def pack_type_g(self) -> bytes:
        """
        压缩为EN 13757-3 G型日期（2字节）

        字节0: bit7..5 = 年的低3位, bit4..0 = 日
        字节1: bit7..4 = 年的高4位, bit3..0 = 月
        """
        _check_range("年份", self.year, BASE_YEAR, BASE_YEAR + 0x7F)
        _check_range("月份", self.month, 0, 15)
        _check_range("日期", self.day, 0, 31)
        years = self.year - BASE_YEAR
        return bytes([
            (years & 0x07) << 5 | self.day,
            (years & 0x78) << 1 | self.month,
        ])

    @classmethod
    def unpack_type_g(cls, data: bytes) -> "MeterDate":
        """从G型日期解包"""
        if len(data) != 2:
            raise ValueError(f"G型日期必须是2字节: {len(data)}")
        return cls(
            year=BASE_YEAR + (data[0] >> 5 | (data[1] & 0xF0) >> 1),
            month=data[1] & 0x0F,
            day=data[0] & 0x1F,
        )

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class MeterDateTime:
    """设备日期时间（F型，精确到分钟）"""

    year: int
    month: int
    day: int
    hour: int
    minute: int

    @classmethod
    def from_datetime(cls, value: datetime) -> "MeterDateTime":
        """从 datetime 创建"""
        return cls(value.year, value.month, value.day, value.hour, value.minute)

    def to_datetime(self) -> datetime:
        """转换为 datetime，值非法时抛出 ValueError"""
        return datetime(self.year, self.month, self.day, self.hour, self.minute)

    @property
    def date(self) -> MeterDate:
        return MeterDate(self.year, self.month, self.day)

    def pack_type_f(self) -> bytes:
        """
        压缩为F型日期时间（4字节）

        字节0 = 分, 字节1 = 时, 字节2..3 同G型日期
        """
        _check_range("小时", self.hour, 0, 23)
        _check_range("分钟", self.minute, 0, 59)
        return bytes([self.minute, self.hour]) + self.date.pack_type_g()

    @classmethod
    def unpack_type_f(cls, data: bytes) -> "MeterDateTime":
        """从F型日期时间解包，分和时按原始字节取值"""
        if len(data) != 4:
            raise ValueError(f"F型日期时间必须是4字节: {len(data)}")
        day = MeterDate.unpack_type_g(data[2:4])
        return cls(day.year, day.month, day.day, data[1], data[0])

    def __str__(self) -> str:
        return f"{self.date} {self.hour:02d}:{self.minute:02d}"


@dataclass
class ResponseHeader:
    """RSP_UD应答的12字节固定头"""

    secondary_address: int  # 4字节二级地址
    manufacturer: int  # 2字节厂商代码
    version: int
    medium: int  # 0x07 = 水
    access_count: int
    status: int
    signature: int

    FORMAT = "<IHBBBBH"

    @property
    def manufacturer_code(self) -> str:
        """三个字母的厂商代码，每个字母5位，例如 0x12FA = DWZ"""
        return "".join(
            chr(64 + ((self.manufacturer >> shift) & 0x1F)) for shift in (10, 5, 0)
        )

    def pack(self) -> bytes:
        """打包成字节数据"""
        return struct.pack(
            self.FORMAT,
            self.secondary_address,
            self.manufacturer,
            self.version,
            self.medium,
            self.access_count,
            self.status,
            self.signature,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Optional["ResponseHeader"]:
        """从字节数据解包，长度不足时返回None"""
        if len(data) < RESPONSE_HEADER_LENGTH:
            return None
        return cls(*struct.unpack(cls.FORMAT, data[:RESPONSE_HEADER_LENGTH]))

    def log(self) -> None:
        """输出所有字段"""
        logger.info(f"二级地址: 0x{self.secondary_address:08x}")
        logger.info(f"厂商: 0x{self.manufacturer:04X} ({self.manufacturer_code})")
        logger.info(f"版本: {self.version}")
        logger.info(f"介质: 0x{self.medium:02x}")
        logger.info(f"访问计数: {self.access_count}")
        logger.info(f"状态: 0x{self.status:02x}")
        logger.info(f"签名: 0x{self.signature:04X}")


@dataclass
class DeviceSettings:
    """
    20字节设备参数块

    偏移  字段               编码
    0     flags              SettingsFlag
    1     oms_mode           u8
    2     frame_type         u8
    3-4   interval           u16 LE，秒
    5-6   months             12位掩码，bit0 = 一月
    7-10  weeks_of_month     31位掩码，bit0 = 1日
    11    days_of_week       7位掩码，bit0 = 周一
    12-14 hours              24位掩码，bit0 = 0点
    15-16 start_date         MeterDate 16位压缩格式
    17-18 start_volume       u16 LE，升
    19    operational_years  u8
    """

    flags: SettingsFlag
    oms_mode: int
    frame_type: int
    interval: int
    months: int
    weeks_of_month: int
    days_of_week: int
    hours: int
    start_date: MeterDate
    start_volume: int
    operational_years: int

    def pack(self) -> bytes:
        """
        打包成20字节参数块

        Raises:
            ValueError: 字段超出其位宽时抛出
        """
        _check_range("flags", int(self.flags), 0, 0xFF)
        _check_range("oms_mode", self.oms_mode, 0, 0xFF)
        _check_range("frame_type", self.frame_type, 0, 0xFF)
        _check_range("interval", self.interval, 0, 0xFFFF)
        _check_range("months", self.months, 0, 0x0FFF)
        _check_range("weeks_of_month", self.weeks_of_month, 0, 0x7FFFFFFF)
        _check_range("days_of_week", self.days_of_week, 0, 0x7F)
        _check_range("hours", self.hours, 0, 0xFFFFFF)
        _check_range("start_volume", self.start_volume, 0, 0xFFFF)
        _check_range("operational_years", self.operational_years, 0, 0xFF)

        return (
            struct.pack(
                "<BBBHHIB",
                int(self.flags),
                self.oms_mode,
                self.frame_type,
                self.interval,
                self.months,
                self.weeks_of_month,
                self.days_of_week,
            )
            + self.hours.to_bytes(3, "little")
            + struct.pack(
                "<HHB",
                self.start_date.pack_word(),
                self.start_volume,
                self.operational_years,
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> "DeviceSettings":
        """
        从20字节参数块解包，各掩码按文档位宽截取

        Raises:
            ValueError: 数据长度不是20字节时抛出
        """
        if len(data) != SETTINGS_BLOCK_SIZE:
            raise ValueError(f"参数块必须是{SETTINGS_BLOCK_SIZE}字节: {len(data)}")

        flags, oms_mode, frame_type, interval, months, weeks, days = struct.unpack(
            "<BBBHHIB", data[:12]
        )
        hours = int.from_bytes(data[12:15], "little")
        start_date, start_volume, operational_years = struct.unpack("<HHB", data[15:20])

        return cls(
            flags=SettingsFlag(flags),
            oms_mode=oms_mode,
            frame_type=frame_type,
            interval=interval,
            months=months & 0x0FFF,
            weeks_of_month=weeks & 0x7FFFFFFF,
            days_of_week=days & 0x7F,
            hours=hours,
            start_date=MeterDate.unpack_word(start_date),
            start_volume=start_volume,
            operational_years=operational_years,
        )

    def dump(self) -> None:
        """输出参数块内容"""
        start_date_state = "active" if self.flags & SettingsFlag.START_ON_DATE else "inactive"
        start_volume_state = "active" if self.flags & SettingsFlag.START_ON_VOLUME else "inactive"

        logger.info(f"标志位: 0x{int(self.flags):02x}")
        logger.info(f"OMS模式: {self.oms_mode}")
        logger.info(f"帧类型: {self.frame_type}")
        logger.info(f"发送间隔: {self.interval} s")
        logger.info(f"月份: 0b{bit_string(self.months, 12)} (Dec .. Jan)")
        logger.info(f"月内日期: 0b{bit_string(self.weeks_of_month, 31)} (31 .. 1)")
        logger.info(f"星期: 0b{bit_string(self.days_of_week, 7)} (Sun .. Mon)")
        logger.info(f"小时: 0b{bit_string(self.hours, 24)} (23 .. 00)")
        logger.info(f"起始日期: {self.start_date} ({start_date_state})")
        logger.info(f"起始用水量: {self.start_volume} l ({start_volume_state})")
        logger.info(f"运行年限: {self.operational_years}")


@dataclass
class MonthlyReading:
    """6字节月度读数：16位压缩日期 + 32位读数"""

    date: MeterDate
    volume: int

    def pack(self) -> bytes:
        """打包成字节数据"""
        return struct.pack("<HI", self.date.pack_word(), self.volume)

    @classmethod
    def unpack(cls, data: bytes) -> "MonthlyReading":
        """从6字节数据解包"""
        if len(data) != MONTHLY_READING_SIZE:
            raise ValueError(f"月度读数必须是{MONTHLY_READING_SIZE}字节: {len(data)}")
        packed_date, volume = struct.unpack("<HI", data)
        return cls(MeterDate.unpack_word(packed_date), volume)

    @classmethod
    def unpack_many(cls, data: bytes, count: int) -> List["MonthlyReading"]:
        """按固定步长连续解包 count 条读数"""
        needed = count * MONTHLY_READING_SIZE
        if len(data) < needed:
            raise ValueError(f"月度读数数据不足: 需要{needed}字节，实际{len(data)}字节")
        return [
            cls.unpack(data[i * MONTHLY_READING_SIZE:(i + 1) * MONTHLY_READING_SIZE])
            for i in range(count)
        ]
