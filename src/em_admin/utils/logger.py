"""
日志记录模块
============

提供统一的日志记录功能，支持彩色输出、函数调用追踪和帧的十六进制转储。
"""

import datetime
import logging
import sys
from typing import Optional
from pathlib import Path


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器"""

    # ANSI颜色代码
    COLORS = {
        'DEBUG': '\033[36m',    # 青色
        'INFO': '\033[0m',      # 默认色
        'WARNING': '\033[33m',  # 黄色
        'ERROR': '\033[31m',    # 红色
        'CRITICAL': '\033[35m', # 紫色
        'RESET': '\033[0m'      # 重置
    }

    def format(self, record):
        """格式化日志记录"""
        # 日志记录本身已带调用位置，无需再遍历栈帧
        caller_filename = Path(record.pathname).name if record.pathname else "unknown"
        caller_function = record.funcName or "unknown"
        caller_line = record.lineno

        # 添加毫秒精度的时间戳
        now = datetime.datetime.fromtimestamp(record.created)
        milliseconds = now.microsecond // 1000
        timestamp = now.strftime(f"%Y-%m-%d %H:%M:%S.{milliseconds:03d}")

        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        formatted_message = (
            f"{color}[{timestamp}] {record.getMessage()} "
            f"[{caller_filename}.{caller_function}():{caller_line}]{reset}"
        )

        return formatted_message


# 全局日志器字典
_loggers = {}

# 新建日志器使用的默认设置，可由 configure_logging 修改
_defaults = {"level": logging.INFO, "log_file": None}


def setup_logger(
    name: str = "em_admin",
    level: Optional[int] = None,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    设置日志器

    Args:
        name: 日志器名称
        level: 日志级别，None表示使用当前默认级别
        log_file: 日志文件路径，None表示使用当前默认设置
        console_output: 是否输出到控制台

    Returns:
        配置好的日志器
    """
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else _defaults["level"])

    # 清除已有的处理器
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # 控制台处理器
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter())
        logger.addHandler(console_handler)

    # 文件处理器
    log_file = log_file or _defaults["log_file"]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # 防止重复输出
    logger.propagate = False

    return logger


def get_logger(name: str = "em_admin") -> logging.Logger:
    """
    获取日志器实例

    Args:
        name: 日志器名称

    Returns:
        日志器实例
    """
    if name not in _loggers:
        _loggers[name] = setup_logger(name)
    return _loggers[name]


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    重新配置所有已创建的日志器

    命令行的 --verbose 和 --log-file 选项通过此函数生效。

    Args:
        level: 日志级别
        log_file: 日志文件路径，None表示不写入文件
    """
    _defaults["level"] = level
    _defaults["log_file"] = log_file
    for name in list(_loggers):
        _loggers[name] = setup_logger(name, level=level, log_file=log_file)


def format_hex(data: bytes, limit: int = 64) -> str:
    """
    将字节数据格式化为十六进制字符串

    超过 limit 字节的部分不显示，只给出省略的字节数。

    Args:
        data: 字节数据
        limit: 最多显示的字节数

    Returns:
        形如 "68 03 03 68 ..." 的字符串

    Examples:
        >>> format_hex(bytes([0x10, 0x7B, 0xFE]))
        '10 7b fe'
        >>> format_hex(bytes(5), limit=2)
        '00 00 (3 bytes not shown)'
    """
    shown = " ".join(f"{byte:02x}" for byte in data[:limit])
    hidden = len(data) - limit
    if hidden > 0:
        return f"{shown} ({hidden} bytes not shown)"
    return shown


# 默认设置根日志器
_default_logger = get_logger()
