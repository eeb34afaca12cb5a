#!/usr/bin/env python3
"""
水表红外管理工具 - 模块CLI入口
==============================

支持通过 python -m em_admin 调用
"""

import sys
import argparse
import logging

from .cli.meter_cli import MeterCLI
from .config.constants import COMMAND_NAMES, DEFAULT_COMMAND
from .config.settings import MeterConfig
from .utils.logger import get_logger, configure_logging

logger = get_logger(__name__)

# 版本信息
VERSION = "1.0.0"
PROGRAM_NAME = "水表红外管理工具"


def non_negative_int(text: str) -> int:
    """argparse 类型：非负整数"""
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"不是整数: {text}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"不能为负数: {value}")
    return value


def create_parser():
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        description=f"{PROGRAM_NAME} v{VERSION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用示例：
  # 读取设备参数（默认命令）
  python -m em_admin /dev/ttyUSB0

  # 读取月度读数
  python -m em_admin /dev/ttyUSB0 read_months

  # 写入参数，发送间隔15分钟
  python -m em_admin /dev/ttyUSB0 set_params --interval 900

发送间隔过短且不限制时间窗口会提前耗尽电池，红外读取同样耗电。
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"{PROGRAM_NAME} v{VERSION}"
    )
    parser.add_argument("port", nargs="?", help="串口号（如 /dev/ttyUSB0, COM3）")
    parser.add_argument(
        "command",
        nargs="?",
        default=DEFAULT_COMMAND,
        choices=COMMAND_NAMES,
        help=f"要执行的命令（默认{DEFAULT_COMMAND}）",
    )
    parser.add_argument("--list-ports", action="store_true", help="列出可用串口后退出")
    parser.add_argument("--retries", type=non_negative_int, default=0, help="读取超时后重试次数（默认0）")
    parser.add_argument("--interval", type=int, help="set_params: 发送间隔(秒)")
    parser.add_argument("--keyday", help="set_keyday: 结算日，格式 日.月（默认03.10）")
    parser.add_argument("--aes-key", help="set_aes: 32位十六进制密钥（高字节在前）")
    parser.add_argument(
        "--confirm-aes", action="store_true", help="set_aes: 确认写入未经测试的AES密钥"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="输出帧的十六进制内容")
    parser.add_argument("--log-file", help="同时写入日志文件")

    return parser


def build_meter_config(args) -> MeterConfig:
    """根据命令行参数创建写入设备的参数配置"""
    overrides = {}
    if args.interval is not None:
        overrides["interval"] = args.interval
    if args.keyday:
        overrides["keyday_month"], overrides["keyday_day"] = MeterCLI.parse_keyday(args.keyday)
    return MeterConfig(**overrides)


def main():
    """主函数"""
    parser = create_parser()
    args = parser.parse_args()

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    if args.list_ports:
        MeterCLI.show_available_ports()
        return

    if not args.port:
        parser.error("需要指定串口号")

    try:
        meter_config = build_meter_config(args)
        aes_key = MeterCLI.parse_aes_key(args.aes_key) if args.aes_key else None
    except ValueError as e:
        parser.error(str(e))

    try:
        code = MeterCLI.run(
            args.port,
            args.command,
            retries=args.retries,
            confirm_aes=args.confirm_aes,
            aes_key=aes_key,
            meter_config=meter_config,
        )
    except KeyboardInterrupt:
        print("\n\n👋 用户中断程序，退出")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
