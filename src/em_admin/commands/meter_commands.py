"""
水表命令模块
============

每个命令由一个请求构造函数和一个应答解释函数组成。构造与解释都是
纯函数，MeterAdmin 负责通过 MBusProtocol 把它们串起来。

命令            请求                         应答
read_info       短帧 REQ_UD2                 长帧 >= 71 字节，记录流
get_params      长帧 子命令 0x04             长帧 >= 45 字节，20字节参数块
set_params      长帧 子命令 0x81 + 参数块    ACK
set_time        长帧 DIF 04 VIF ED 00        ACK
set_keyday      长帧 DIF 02 VIF EC           ACK
read_months     长帧 子命令 0x02 / 0x03      长帧 >= 111 字节，15条读数
read_highres    长帧 子命令 0x01             长帧 >= 25 字节，32位读数
set_aes         长帧 子命令 0x83 + 16字节    ACK，需要确认才会发送
"""

import struct
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..config.constants import (
    ControlField,
    ControlInfo,
    SubCommand,
    DEFAULT_ADDRESS,
    DIF_MANUFACTURER,
    SUBCOMMAND_SUFFIX,
    RESERVED_BLOCK,
    VIF_SET_TIME,
    VIF_SET_KEYDAY,
    MIN_REPLY_READ_INFO,
    MIN_REPLY_GET_PARAMS,
    MIN_REPLY_READ_MONTHS,
    MIN_REPLY_READ_HIGHRES,
    REPLY_CAPACITY_SMALL,
    REPLY_CAPACITY_LARGE,
    MONTHLY_READING_COUNT,
    SETTINGS_BLOCK_SIZE,
    AES_KEY_SIZE,
    SAMPLE_AES_KEY,
    COMMAND_NAMES,
)
from ..config.settings import MeterConfig
from ..core.exceptions import AesKeyNotConfirmed, InvalidPayload
from ..core.frame_handler import FrameHandler, MBusFrame
from ..core.protocol import MBusProtocol
from ..core.records import Record, decode_records, format_record
from ..core.structures import (
    DeviceSettings,
    MeterDateTime,
    MonthlyReading,
    ResponseHeader,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

# 两种月度读数的名称与子命令
MONTHLY_SERIES = (
    ("end_of_month", SubCommand.READ_END_OF_MONTH),
    ("mid_month", SubCommand.READ_MID_MONTH),
)


@dataclass
class InfoReading:
    """read_info 的结果"""

    header: Optional[ResponseHeader]
    records: List[Record] = field(default_factory=list)


# ---------------------------------------------------------------------------
# 请求构造
# ---------------------------------------------------------------------------

def _send_user_data(payload: bytes, address: int) -> bytes:
    return FrameHandler.build_long(ControlField.SND_UD, address, ControlInfo.DATA_SEND, payload)


def _sub_command(sub_command: int, extra: bytes = b"") -> bytes:
    return bytes([DIF_MANUFACTURER, sub_command]) + SUBCOMMAND_SUFFIX + extra


def build_read_info_request(address: int = DEFAULT_ADDRESS) -> bytes:
    """REQ_UD2 短帧"""
    return FrameHandler.build_short(ControlField.REQ_UD2, address)


def build_get_params_request(address: int = DEFAULT_ADDRESS) -> bytes:
    return _send_user_data(_sub_command(SubCommand.GET_PARAMS), address)


def build_set_params_request(settings: DeviceSettings, address: int = DEFAULT_ADDRESS) -> bytes:
    """参数块前后各有4个保留字节"""
    block = RESERVED_BLOCK + settings.pack() + RESERVED_BLOCK
    return _send_user_data(_sub_command(SubCommand.SET_PARAMS, block), address)


def build_set_time_request(moment: MeterDateTime, address: int = DEFAULT_ADDRESS) -> bytes:
    """DIF 0x04, VIF 0xED, VIFE 0x00，后跟F型日期时间"""
    try:
        packed = moment.pack_type_f()
    except ValueError as e:
        raise InvalidPayload(f"无法编码设备时间 {moment}: {e}") from e
    payload = bytes([0x04, VIF_SET_TIME, 0x00]) + packed
    return _send_user_data(payload, address)


def build_set_keyday_request(month: int, day: int, address: int = DEFAULT_ADDRESS) -> bytes:
    """
    结算日请求

    日和月各占一个字节的低位，高位固定为1。
    """
    if not 1 <= month <= 12:
        raise InvalidPayload(f"结算日月份必须在1到12之间: {month}")
    if not 1 <= day <= 31:
        raise InvalidPayload(f"结算日日期必须在1到31之间: {day}")
    payload = bytes([0x02, VIF_SET_KEYDAY, 0x00, day | 0b11100000, month | 0b11110000])
    return _send_user_data(payload, address)


def build_read_months_request(sub_command: int, address: int = DEFAULT_ADDRESS) -> bytes:
    return _send_user_data(_sub_command(sub_command), address)


def build_read_highres_request(address: int = DEFAULT_ADDRESS) -> bytes:
    return _send_user_data(_sub_command(SubCommand.READ_HIGHRES), address)


def build_set_aes_request(key: bytes, address: int = DEFAULT_ADDRESS) -> bytes:
    """密钥前有4个保留字节"""
    if len(key) != AES_KEY_SIZE:
        raise InvalidPayload(f"AES密钥必须是{AES_KEY_SIZE}字节: {len(key)}")
    return _send_user_data(_sub_command(SubCommand.SET_AES_KEY, RESERVED_BLOCK + key), address)


# ---------------------------------------------------------------------------
# 应答解释
# ---------------------------------------------------------------------------

def parse_info_reply(frame: MBusFrame) -> InfoReading:
    """解码固定头之后的记录流"""
    return InfoReading(
        header=ResponseHeader.unpack(frame.payload),
        records=list(decode_records(frame.application_data)),
    )


def parse_settings_reply(frame: MBusFrame) -> DeviceSettings:
    return DeviceSettings.unpack(frame.application_data[:SETTINGS_BLOCK_SIZE])


def parse_monthly_readings(frame: MBusFrame) -> List[MonthlyReading]:
    """固定头之后是15条6字节读数"""
    return MonthlyReading.unpack_many(frame.application_data, MONTHLY_READING_COUNT)


def parse_highres_reading(frame: MBusFrame) -> int:
    """固定头之后的32位读数，单位毫升"""
    return struct.unpack("<I", frame.application_data[:4])[0]


def standard_time(timestamp: Optional[float] = None) -> datetime:
    """
    返回本地标准时间（不含夏令时）

    设备时间应为标准时间，处于夏令时时减去一小时。
    """
    timestamp = time.time() if timestamp is None else timestamp
    local = time.localtime(timestamp)
    if local.tm_isdst > 0:
        local = time.localtime(timestamp - 60 * 60)
    return datetime(*local[:6])


# ---------------------------------------------------------------------------
# 命令执行
# ---------------------------------------------------------------------------

class MeterAdmin:
    """水表管理命令"""

    def __init__(self, protocol: MBusProtocol, config: Optional[MeterConfig] = None):
        """
        初始化水表管理命令

        Args:
            protocol: 已激活链路的协议交互对象
            config: 写入设备的参数配置（可选）
        """
        self.protocol = protocol
        self.config = config or MeterConfig()

    @property
    def address(self) -> int:
        return self.config.address

    def read_info(self) -> InfoReading:
        """读取设备信息和记录"""
        logger.info("读取设备信息")
        frame = self.protocol.exchange_framed_long(
            build_read_info_request(self.address), MIN_REPLY_READ_INFO, REPLY_CAPACITY_LARGE
        )
        reading = parse_info_reply(frame)
        for index, record in enumerate(reading.records):
            logger.info(format_record(index, record))
        return reading

    def get_params(self) -> DeviceSettings:
        """读取设备参数块"""
        logger.info("读取设备参数")
        frame = self.protocol.exchange_framed_long(
            build_get_params_request(self.address), MIN_REPLY_GET_PARAMS, REPLY_CAPACITY_SMALL
        )
        settings = parse_settings_reply(frame)
        settings.dump()
        return settings

    def set_params(self, settings: Optional[DeviceSettings] = None) -> DeviceSettings:
        """
        写入设备参数块

        Args:
            settings: 要写入的参数，None表示使用配置中的参数

        Returns:
            已写入的参数
        """
        settings = settings or self.config.to_device_settings()
        logger.info("写入设备参数")
        settings.dump()
        self.protocol.exchange_acked(build_set_params_request(settings, self.address))
        return settings

    def set_time(self, moment: Optional[datetime] = None) -> MeterDateTime:
        """
        设置设备时间

        Args:
            moment: 要设置的时间，None表示当前标准时间

        Returns:
            已写入的时间

        Raises:
            InvalidPayload: 时间超出设备可表示的范围时抛出
        """
        meter_time = MeterDateTime.from_datetime(moment or standard_time())
        logger.info(f"设置设备时间: {meter_time} (不含夏令时)")
        self.protocol.exchange_acked(build_set_time_request(meter_time, self.address))
        return meter_time

    def set_keyday(self, month: Optional[int] = None, day: Optional[int] = None) -> None:
        """设置结算日，默认使用配置中的日期"""
        month = self.config.keyday_month if month is None else month
        day = self.config.keyday_day if day is None else day
        logger.info(f"设置结算日: {day:02d}.{month:02d}.")
        self.protocol.exchange_acked(build_set_keyday_request(month, day, self.address))

    def read_months(self) -> Dict[str, List[MonthlyReading]]:
        """依次读取月末和月中读数"""
        results = {}
        for index, (name, sub_command) in enumerate(MONTHLY_SERIES):
            logger.info(f"读取月度用水量 ({index})")
            frame = self.protocol.exchange_framed_long(
                build_read_months_request(sub_command, self.address),
                MIN_REPLY_READ_MONTHS,
                REPLY_CAPACITY_LARGE,
            )
            readings = parse_monthly_readings(frame)
            for reading in readings:
                logger.info(f"月度读数 {reading.date}: {reading.volume}")
            results[name] = readings
        return results

    def read_highres(self) -> int:
        """读取高精度计数，单位毫升"""
        logger.info("读取高精度计数")
        frame = self.protocol.exchange_framed_long(
            build_read_highres_request(self.address), MIN_REPLY_READ_HIGHRES, REPLY_CAPACITY_SMALL
        )
        reading = parse_highres_reading(frame)
        logger.info(f"高精度读数: {reading} ml")
        return reading

    def set_aes(self, key: bytes = SAMPLE_AES_KEY, confirm: bool = False) -> None:
        """
        写入AES密钥

        该命令未经实测。没有操作员明确确认时不会向串口写入任何数据。

        Args:
            key: 16字节密钥，低字节在前
            confirm: 操作员已确认

        Raises:
            AesKeyNotConfirmed: 未确认时抛出
            InvalidPayload: 密钥长度错误时抛出
        """
        if not confirm:
            logger.warning("写入AES密钥未经测试，需要明确确认后才会发送")
            raise AesKeyNotConfirmed("写入AES密钥需要明确确认")

        request = build_set_aes_request(key, self.address)
        logger.info("写入AES密钥")
        self.protocol.exchange_acked(request)

    def run(self, command: str, **kwargs):
        """
        按名称执行命令

        Args:
            command: COMMAND_NAMES 中的命令名
            **kwargs: 传给命令方法的参数

        Returns:
            命令的结果
        """
        if command not in COMMAND_NAMES:
            raise ValueError(f"未知命令: {command}")
        result = getattr(self, command)(**kwargs)
        logger.info("操作成功完成")
        return result
