"""
水表管理命令行接口
==================

打开串口、激活红外链路、执行单个命令，并把结果映射为进程退出码。
"""

from typing import Optional, Tuple

from ..config.settings import SerialConfig, MeterConfig
from ..config.constants import COMMAND_NAMES, DEFAULT_COMMAND, AES_KEY_SIZE
from ..core.exceptions import MeterError, ReadTimeout, AesKeyNotConfirmed
from ..core.serial_manager import SerialManager
from ..core.protocol import MBusProtocol
from ..commands.meter_commands import MeterAdmin
from ..utils.logger import get_logger
from ..utils.retry import retry_call

logger = get_logger(__name__)

RETRY_BASE_DELAY = 1.0


class MeterCLI:
    """水表管理命令行接口"""

    @staticmethod
    def show_available_ports() -> None:
        """显示可用的串口"""
        SerialManager.print_available_ports()

    @staticmethod
    def parse_keyday(text: str) -> Tuple[int, int]:
        """
        解析 "日.月" 格式的结算日

        Returns:
            元组(月, 日)

        Examples:
            >>> MeterCLI.parse_keyday("03.10")
            (10, 3)
        """
        try:
            day_text, month_text = text.strip().rstrip(".").split(".")
            day, month = int(day_text), int(month_text)
        except ValueError:
            raise ValueError(f"结算日格式应为 日.月: {text}") from None
        if not 1 <= month <= 12 or not 1 <= day <= 31:
            raise ValueError(f"结算日超出范围: {text}")
        return month, day

    @staticmethod
    def parse_aes_key(text: str) -> bytes:
        """
        解析十六进制AES密钥

        密钥按通常书写顺序（高字节在前）输入，发送时低字节在前。
        """
        try:
            key = bytes.fromhex(text.replace(" ", ""))
        except ValueError:
            raise ValueError(f"AES密钥不是有效的十六进制: {text}") from None
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"AES密钥必须是{AES_KEY_SIZE}字节: {len(key)}")
        return key[::-1]

    @staticmethod
    def _command_kwargs(command: str, confirm_aes: bool, aes_key: Optional[bytes]) -> dict:
        if command != "set_aes":
            return {}
        kwargs = {"confirm": confirm_aes}
        if aes_key is not None:
            kwargs["key"] = aes_key
        return kwargs

    @classmethod
    def run(
        cls,
        port: str,
        command: str = DEFAULT_COMMAND,
        *,
        retries: int = 0,
        confirm_aes: bool = False,
        aes_key: Optional[bytes] = None,
        meter_config: Optional[MeterConfig] = None,
        serial_config: Optional[SerialConfig] = None,
    ) -> int:
        """
        执行单个命令

        Args:
            port: 串口号
            command: 命令名
            retries: 读取超时后重新执行命令的次数
            confirm_aes: 确认写入AES密钥
            aes_key: 要写入的AES密钥（低字节在前）
            meter_config: 写入设备的参数配置
            serial_config: 串口配置，None表示使用默认值

        Returns:
            进程退出码，成功为0
        """
        if command not in COMMAND_NAMES:
            logger.error(f"未知命令: {command}")
            return 1
        if retries < 0:
            logger.error(f"重试次数不能为负数: {retries}")
            return 1

        serial_config = serial_config or SerialConfig(port=port)
        manager = SerialManager(serial_config)
        kwargs = cls._command_kwargs(command, confirm_aes, aes_key)

        try:
            # 未确认时连唤醒字节也不发送
            if command == "set_aes" and not confirm_aes:
                raise AesKeyNotConfirmed("写入AES密钥未经测试，请使用 --confirm-aes 确认")

            with manager.connection():
                protocol = MBusProtocol(manager)
                protocol.bootstrap_link()
                admin = MeterAdmin(protocol, meter_config)
                retry_call(
                    lambda: admin.run(command, **kwargs),
                    max_retry=retries,
                    base_delay=RETRY_BASE_DELAY,
                    retry_on=(ReadTimeout,),
                    logger=logger,
                )
        except MeterError as e:
            logger.error(f"命令 {command} 失败: {e}")
            return e.exit_code

        return 0
