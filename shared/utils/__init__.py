"""
共享工具模块
提供日志和异常处理等通用功能
"""

from .logger import get_logger

__all__ = ['get_logger']
