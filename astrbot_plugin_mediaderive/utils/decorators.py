"""
工具层 - AOP装饰器
记录编排操作的开始、耗时和失败
"""

import asyncio
import functools
import time
from typing import Callable, TypeVar

from astrbot.api import logger

T = TypeVar("T")

LOG_PREFIX = "[MediaDerive]"


def log_execution(func: Callable[..., T]) -> Callable[..., T]:
    """日志装饰器 - 记录函数执行，异常原样抛出"""

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs) -> T:
        func_name = func.__name__
        logger.debug(f"{LOG_PREFIX} {func_name} 开始执行")
        start_time = time.monotonic()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.error(
                f"{LOG_PREFIX} {func_name} 执行失败，耗时: {elapsed:.2f}s, "
                f"错误: {type(e).__name__}: {e}"
            )
            raise
        elapsed = time.monotonic() - start_time
        logger.debug(f"{LOG_PREFIX} {func_name} 执行完成，耗时: {elapsed:.2f}s")
        return result

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs) -> T:
        func_name = func.__name__
        logger.debug(f"{LOG_PREFIX} {func_name} 开始执行")
        start_time = time.monotonic()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.error(
                f"{LOG_PREFIX} {func_name} 执行失败，耗时: {elapsed:.2f}s, "
                f"错误: {type(e).__name__}: {e}"
            )
            raise
        elapsed = time.monotonic() - start_time
        logger.debug(f"{LOG_PREFIX} {func_name} 执行完成，耗时: {elapsed:.2f}s")
        return result

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper
