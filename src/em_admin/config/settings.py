"""
配置管理
========

提供串口链路和水表参数相关的配置类。
"""

from dataclasses import dataclass, field
from datetime import date
import serial

from .constants import (
    DEFAULT_ADDRESS,
    DEFAULT_BAUDRATE,
    DEFAULT_TIMEOUT,
    ALL_MONTHS,
    ALL_WEEKS_OF_MONTH,
    ALL_DAYS_OF_WEEK,
    ALL_HOURS,
    OmsMode,
    RadioFrameType,
    SettingsFlag,
    WAKEUP_SETTLE_TIME,
)


@dataclass
class SerialConfig:
    """串口配置类"""

    port: str  # 串口号
    baudrate: int = DEFAULT_BAUDRATE  # 波特率
    bytesize: int = serial.EIGHTBITS  # 数据位
    parity: str = serial.PARITY_NONE  # 打开串口时的校验位
    stopbits: float = serial.STOPBITS_ONE  # 停止位
    timeout: float = DEFAULT_TIMEOUT  # 读取超时时间
    wakeup_parity: str = serial.PARITY_NONE  # 唤醒阶段 8N1
    data_parity: str = serial.PARITY_EVEN  # 数据交换阶段 8E1
    wakeup_settle_time: float = WAKEUP_SETTLE_TIME  # 唤醒后等待时间

    def __post_init__(self):
        """参数验证"""
        if self.baudrate <= 0:
            raise ValueError("baudrate必须大于0")
        if self.timeout <= 0:
            raise ValueError("timeout必须大于0")
        if self.wakeup_settle_time < 0:
            raise ValueError("wakeup_settle_time不能为负数")

    def to_serial_kwargs(self) -> dict:
        """转换为serial.Serial的参数字典"""
        return {
            "port": self.port,
            "baudrate": self.baudrate,
            "bytesize": self.bytesize,
            "parity": self.parity,
            "stopbits": self.stopbits,
            "timeout": self.timeout,
        }


@dataclass
class MeterConfig:
    """
    写入水表的参数配置

    默认值对应一台全年全天候发送的C1模式水表。发送间隔设置过小且不限制
    时间窗口时，电池会在水表寿命结束前耗尽。
    """

    flags: SettingsFlag = (
        SettingsFlag.RADIO_AVAILABLE | SettingsFlag.RADIO_ON | SettingsFlag.AES
    )
    oms_mode: int = OmsMode.C1_OMS3_ENC5
    frame_type: int = RadioFrameType.LONG
    interval: int = 7 * 60  # 发送间隔(秒)
    months: int = ALL_MONTHS
    weeks_of_month: int = ALL_WEEKS_OF_MONTH
    days_of_week: int = ALL_DAYS_OF_WEEK
    hours: int = ALL_HOURS
    start_date: date = field(default_factory=lambda: date(2024, 1, 1))  # 仅在START_ON_DATE时生效
    start_volume: int = 1000  # 仅在START_ON_VOLUME时生效(升)
    operational_years: int = 10
    keyday_month: int = 10  # 结算日
    keyday_day: int = 3
    address: int = DEFAULT_ADDRESS

    def __post_init__(self):
        """参数验证"""
        if not 0 < self.interval <= 0xFFFF:
            raise ValueError("interval必须在1到65535秒之间")
        if not 1 <= self.keyday_month <= 12:
            raise ValueError("keyday_month必须在1到12之间")
        if not 1 <= self.keyday_day <= 31:
            raise ValueError("keyday_day必须在1到31之间")
        if not 0 <= self.address <= 0xFF:
            raise ValueError("address必须在0到255之间")
        if not 2000 <= self.start_date.year <= 2127:
            raise ValueError("start_date年份必须在2000到2127之间")

    def to_device_settings(self):
        """
        转换为可写入设备的参数块

        Returns:
            DeviceSettings 实例
        """
        from ..core.structures import DeviceSettings, MeterDate

        return DeviceSettings(
            flags=SettingsFlag(self.flags),
            oms_mode=int(self.oms_mode),
            frame_type=int(self.frame_type),
            interval=self.interval,
            months=self.months,
            weeks_of_month=self.weeks_of_month,
            days_of_week=self.days_of_week,
            hours=self.hours,
            start_date=MeterDate.from_date(self.start_date),
            start_volume=self.start_volume,
            operational_years=self.operational_years,
        )
