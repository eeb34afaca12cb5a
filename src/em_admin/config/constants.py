"""
系统常量定义
============

定义M-Bus红外接口协议中使用的各种常量，以及水表参数块的位定义。
"""

from enum import IntEnum, IntFlag
from typing import Final, Tuple


class FrameMarker(IntEnum):
    """M-Bus帧标识字节"""

    SHORT_START = 0x10  # 短帧起始符
    LONG_START = 0x68  # 长帧起始符
    STOP = 0x16  # 结束符
    ACK = 0xE5  # 单字节确认


class ControlField(IntEnum):
    """C域（控制域）"""

    SND_UD = 0x53  # 向从站发送用户数据
    REQ_UD2 = 0x7B  # 请求2类用户数据


class ControlInfo(IntEnum):
    """CI域（控制信息域）"""

    DATA_SEND = 0x51  # 主站发送数据
    RSP_UD = 0x72  # 从站响应（带12字节固定头）


class SubCommand(IntEnum):
    """厂商子命令（SND_UD负载中 DIF=0x0F 之后的字节）"""

    READ_HIGHRES = 0x01  # 读取高精度计数
    READ_END_OF_MONTH = 0x02  # 读取月末读数
    READ_MID_MONTH = 0x03  # 读取月中读数
    GET_PARAMS = 0x04  # 读取参数块
    SET_PARAMS = 0x81  # 写入参数块
    SET_AES_KEY = 0x83  # 写入AES密钥


class OmsMode(IntEnum):
    """无线OMS模式"""

    T1_OMS3_ENC5 = 1
    C1_OMS3_ENC5 = 3
    T1_OMS4_ENC7 = 17
    C1_OMS4_ENC7 = 19


class RadioFrameType(IntEnum):
    """无线帧类型"""

    SHORT = 17
    LONG = 18


class SettingsFlag(IntFlag):
    """参数块第0字节的使能位"""

    RADIO_AVAILABLE = 1 << 0  # 允许打开无线
    RADIO_ON = 1 << 1  # 无线已打开
    AES = 1 << 2  # 启用AES加密
    START_ON_VOLUME = 1 << 3  # 用水量达到阈值后启动无线
    START_ON_DATE = 1 << 4  # 到达起始日期后启动无线


# 月份掩码（bit0 = 一月）
MONTH_JAN: Final[int] = 1 << 0
MONTH_FEB: Final[int] = 1 << 1
MONTH_MAR: Final[int] = 1 << 2
MONTH_APR: Final[int] = 1 << 3
MONTH_MAY: Final[int] = 1 << 4
MONTH_JUN: Final[int] = 1 << 5
MONTH_JUL: Final[int] = 1 << 6
MONTH_AUG: Final[int] = 1 << 7
MONTH_SEP: Final[int] = 1 << 8
MONTH_OCT: Final[int] = 1 << 9
MONTH_NOV: Final[int] = 1 << 10
MONTH_DEC: Final[int] = 1 << 11
ALL_MONTHS: Final[int] = 0x0FFF

# 月内日期掩码（bit0 = 1日）
WEEK_OF_MONTH_1: Final[int] = 0b00000000000000000000000011111111  # 1-8日
WEEK_OF_MONTH_2: Final[int] = 0b00000000000000000111111100000000  # 9-15日
WEEK_OF_MONTH_3: Final[int] = 0b00000000011111111000000000000000  # 16-23日
WEEK_OF_MONTH_4: Final[int] = 0b01111111100000000000000000000000  # 24-31日
ALL_WEEKS_OF_MONTH: Final[int] = 0x7FFFFFFF

# 星期掩码（bit0 = 周一）
DAY_MON: Final[int] = 1 << 0
DAY_TUE: Final[int] = 1 << 1
DAY_WED: Final[int] = 1 << 2
DAY_THU: Final[int] = 1 << 3
DAY_FRI: Final[int] = 1 << 4
DAY_SAT: Final[int] = 1 << 5
DAY_SUN: Final[int] = 1 << 6
ALL_DAYS_OF_WEEK: Final[int] = 0x7F

# 小时掩码（bit0 = 0点）
ALL_HOURS: Final[int] = 0xFFFFFF


def hour_mask(hour: int) -> int:
    """返回指定小时对应的掩码位"""
    if not 0 <= hour <= 23:
        raise ValueError(f"小时必须在0到23之间: {hour}")
    return 1 << hour


# 帧结构长度
SHORT_FRAME_LENGTH: Final[int] = 5  # START C A CHK STOP
LONG_FRAME_HEADER_LENGTH: Final[int] = 7  # START L L START C A CI
FRAME_FOOTER_LENGTH: Final[int] = 2  # CHK STOP
LONG_FRAME_OVERHEAD: Final[int] = 6  # 长帧总长 = L + 6
MIN_LONG_FRAME_LENGTH: Final[int] = LONG_FRAME_HEADER_LENGTH + FRAME_FOOTER_LENGTH
MAX_LENGTH_FIELD: Final[int] = 0xFF
MAX_LONG_PAYLOAD_LENGTH: Final[int] = MAX_LENGTH_FIELD - 3  # 252字节
RESPONSE_HEADER_LENGTH: Final[int] = 12  # AD(4) MAN(2) VER MED ACC STAT SIG(2)

# 设备地址（点对点红外链路使用254）
DEFAULT_ADDRESS: Final[int] = 254

# 记录解码
DATA_FORMAT_WIDTHS: Final[Tuple[int, ...]] = (0, 1, 2, 3, 4, 4, 6, 8)
VIF_DATE: Final[int] = 0x6C  # G型日期
VIF_DATETIME: Final[int] = 0x6D  # F型日期时间
VIF_SET_TIME: Final[int] = 0xED  # 写时间（带VIFE 0x00）
VIF_SET_KEYDAY: Final[int] = 0xEC  # 写结算日
DIF_MANUFACTURER: Final[int] = 0x0F  # 厂商专用数据
SUBCOMMAND_SUFFIX: Final[bytes] = bytes([0x00, 0x00, 0x60])  # 未知或保留
RESERVED_BLOCK: Final[bytes] = bytes(4)  # 参数/密钥前后的保留字节

# 串口配置默认值
DEFAULT_BAUDRATE: Final[int] = 2400
DEFAULT_TIMEOUT: Final[float] = 1.0  # 单次读取超时(秒)

# 红外唤醒
WAKEUP_CHAR: Final[int] = 0x55
WAKEUP_BLOCK_SIZE: Final[int] = 25
WAKEUP_REPEAT: Final[int] = 20
WAKEUP_SETTLE_TIME: Final[float] = 3.0  # 唤醒后等待(秒)

# 各操作的最小应答长度
MIN_REPLY_READ_INFO: Final[int] = 71
MIN_REPLY_GET_PARAMS: Final[int] = 45
MIN_REPLY_READ_MONTHS: Final[int] = 111
MIN_REPLY_READ_HIGHRES: Final[int] = 25

# 各操作的读取缓冲大小
REPLY_CAPACITY_ACK: Final[int] = 8
REPLY_CAPACITY_SMALL: Final[int] = 64
REPLY_CAPACITY_LARGE: Final[int] = 256

# 月度读数
MONTHLY_READING_COUNT: Final[int] = 15
MONTHLY_READING_SIZE: Final[int] = 6

SETTINGS_BLOCK_SIZE: Final[int] = 20
AES_KEY_SIZE: Final[int] = 16

# 示例密钥 BC1066EA5BFFDCAB4193D1CD349F4F89（低字节在前）
SAMPLE_AES_KEY: Final[bytes] = bytes.fromhex("894f9f34cdd19341abdcff5bea6610bc")

# 未确认时拒绝写入AES密钥的退出码
AES_GATE_EXIT_CODE: Final[int] = 7

COMMAND_NAMES: Final[Tuple[str, ...]] = (
    "get_params",
    "set_params",
    "set_time",
    "set_aes",
    "set_keyday",
    "read_months",
    "read_info",
    "read_highres",
)
DEFAULT_COMMAND: Final[str] = "get_params"
