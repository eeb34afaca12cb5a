"""重试与退避工具
====================

协议引擎本身不重试。命令行可以选择在读取超时后整体重新执行一次操作，
这里提供带指数退避的重试辅助函数。
"""

from __future__ import annotations

import time
import random
from typing import Callable, TypeVar, Tuple, Type

_T = TypeVar("_T")


def exponential_backoff(base: float, attempt: int, jitter_ratio: float = 0.1) -> float:
    """计算指数退避时间

    Args:
        base: 基础延时（秒）
        attempt: 第 *attempt* 次重试（从 0 开始）
        jitter_ratio: 抖动比例，默认 10%

    Returns:
        等待时间，秒
    """
    delay = base * (2 ** attempt)
    jitter = random.uniform(0, delay * jitter_ratio)
    return delay + jitter


def retry_call(
    func: Callable[[], _T],
    *,
    max_retry: int,
    base_delay: float,
    retry_on: Tuple[Type[BaseException], ...],
    logger=None,
) -> _T:
    """带退避的同步重试调用

    Args:
        func: 无参可调用对象
        max_retry: 最大重试次数，0表示只调用一次
        base_delay: 指数退避基础时间，秒
        retry_on: 触发重试的异常类型，其他异常直接抛出
        logger: 可选日志记录器

    Returns:
        func 的返回值

    Raises:
        最后一次调用抛出的异常
    """
    if max_retry < 0:
        raise ValueError("max_retry不能为负数")

    for attempt in range(max_retry + 1):
        try:
            return func()
        except retry_on as e:
            if attempt == max_retry:
                raise
            wait = exponential_backoff(base_delay, attempt)
            if logger:
                logger.warning(f"{e}，重试第{attempt + 1}次将在 {wait:.2f}s 后进行 …")
            time.sleep(wait)
