"""
数据库模块
包含SQLAlchemy配置、ORM模型、行存储客户端和行级访问策略
"""

from .connection import Base, DatabaseManager, get_database_manager
from .row_store import Row, RowStore
from .policy import AccessPolicy

__all__ = [
    "Base",
    "DatabaseManager",
    "get_database_manager",
    "Row",
    "RowStore",
    "AccessPolicy",
]
