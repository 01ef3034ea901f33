"""
数据库连接配置模块
管理异步数据库连接、会话和事务
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from shared.config.settings import get_settings
from shared.utils.logger import get_logger

logger = get_logger(__name__)


# ==================== 基础模型类 ====================
class Base(DeclarativeBase):
    """SQLAlchemy基础模型类"""
    pass


# ==================== 数据库引擎配置 ====================
class DatabaseManager:
    """数据库管理器"""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        settings = get_settings()
        self.database_url = database_url or settings.DATABASE_URL
        self.echo = settings.DATABASE_ECHO if echo is None else echo
        self._async_engine: Optional[AsyncEngine] = None
        self._async_session_factory: Optional[async_sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def get_async_engine(self) -> AsyncEngine:
        """获取异步数据库引擎"""
        if self._async_engine is None:
            if self.is_sqlite:
                # 内存库必须共享同一个连接，否则每个会话看到的是空库
                self._async_engine = create_async_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=self.echo,
                )
            else:
                settings = get_settings()
                self._async_engine = create_async_engine(
                    self.database_url,
                    pool_size=settings.DATABASE_POOL_SIZE,
                    max_overflow=settings.DATABASE_MAX_OVERFLOW,
                    pool_pre_ping=True,
                    pool_recycle=3600,
                    echo=self.echo,
                )
            self._setup_engine_events(self._async_engine)

        return self._async_engine

    def get_async_session_factory(self) -> async_sessionmaker:
        """获取异步会话工厂"""
        if self._async_session_factory is None:
            self._async_session_factory = async_sessionmaker(
                bind=self.get_async_engine(),
                class_=AsyncSession,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._async_session_factory

    def _setup_engine_events(self, engine: AsyncEngine):
        """设置引擎事件监听器"""

        @event.listens_for(engine.sync_engine, "connect")
        def on_connect(dbapi_connection, connection_record):
            if "mysql" in str(engine.url):
                cursor = dbapi_connection.cursor()
                cursor.execute("SET NAMES utf8mb4")
                cursor.execute("SET time_zone = '+00:00'")
                cursor.close()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """获取异步数据库会话"""
        async with self.get_async_session_factory()() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """获取异步数据库事务（自动提交/回滚）"""
        async with self.session() as session:
            yield session
            await session.commit()

    async def create_tables(self):
        """创建数据库表"""
        # 导入所有ORM模型以确保表被注册
        from shared.database import models  # noqa: F401

        async with self.get_async_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("数据库表创建完成")

    async def drop_tables(self):
        """删除数据库表（危险操作）"""
        from shared.database import models  # noqa: F401

        async with self.get_async_engine().begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("数据库表已删除")

    async def check_connection(self) -> bool:
        """检查数据库连接"""
        try:
            async with self.session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"数据库连接检查失败: {e}")
            return False

    async def close(self):
        """关闭数据库连接"""
        if self._async_engine:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None
            logger.info("数据库连接已关闭")


# ==================== 全局数据库管理器 ====================
_db_manager: Optional[DatabaseManager] = None


def get_database_manager() -> DatabaseManager:
    """获取全局数据库管理器"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
