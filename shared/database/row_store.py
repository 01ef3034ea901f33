"""
行存储客户端
把按外键过滤的查询、插入、修改、删除翻译成 SQLAlchemy 语句，
并把数据库异常归类为领域异常；插入成功后向变更源推送新行
"""

import asyncio
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select as sql_select
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)

from shared.database.connection import Base, DatabaseManager
from shared.errors import (
    DuplicateEntry,
    NotFound,
    TransientStoreError,
    TravelPlannerError,
    ValidationError,
)
from shared.monitoring.metrics import ROW_STORE_OPERATIONS
from shared.realtime.change_feed import ChangeFeed, Subscription
from shared.utils.logger import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]
ModelType = Type[Base]

# MySQL 1062 / PostgreSQL 23505 / SQLite 文本
_UNIQUE_MARKERS = ("UNIQUE constraint failed", "Duplicate entry", "duplicate key value")


def is_unique_violation(error: IntegrityError) -> bool:
    """判断是否为唯一约束冲突"""
    orig = error.orig
    args = getattr(orig, "args", ())
    if args and args[0] == 1062:
        return True
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    text = str(orig)
    return any(marker in text for marker in _UNIQUE_MARKERS)


def row_to_dict(obj: Base) -> Row:
    """ORM 对象转普通字典，枚举取值"""
    data: Row = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.key)
        if isinstance(value, Enum):
            value = value.value
        data[column.key] = value
    return data


class RowStore:
    """行存储客户端"""

    def __init__(self, db: DatabaseManager, change_feed: Optional[ChangeFeed] = None):
        self.db = db
        self.change_feed = change_feed

    @asynccontextmanager
    async def _operation(self, table: str, operation: str):
        """统一异常归类和指标记录"""
        try:
            yield
        except TravelPlannerError as e:
            ROW_STORE_OPERATIONS.labels(table=table, operation=operation, outcome=e.code.lower()).inc()
            raise
        except IntegrityError as e:
            if is_unique_violation(e):
                ROW_STORE_OPERATIONS.labels(table=table, operation=operation, outcome="duplicate").inc()
                logger.info(f"{table} {operation} 违反唯一约束")
                raise DuplicateEntry(table) from e
            ROW_STORE_OPERATIONS.labels(table=table, operation=operation, outcome="invalid").inc()
            logger.error(f"{table} {operation} 违反完整性约束: {e.orig}")
            raise ValidationError(f"Invalid {table} row") from e
        except (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError,
                asyncio.TimeoutError, OSError) as e:
            ROW_STORE_OPERATIONS.labels(table=table, operation=operation, outcome="transient").inc()
            logger.error(f"{table} {operation} 存储连接失败: {e}")
            raise TransientStoreError(f"Storage temporarily unavailable ({table})") from e
        except DBAPIError as e:
            ROW_STORE_OPERATIONS.labels(table=table, operation=operation, outcome="error").inc()
            logger.error(f"{table} {operation} 执行失败: {e}")
            raise
        else:
            ROW_STORE_OPERATIONS.labels(table=table, operation=operation, outcome="ok").inc()

    @staticmethod
    def _where(model: ModelType, stmt, filters: Optional[Dict[str, Any]]):
        for name, value in (filters or {}).items():
            column = getattr(model, name)
            if value is None:
                stmt = stmt.where(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        return stmt

    # ==================== 查询 ====================
    async def select(
        self,
        model: ModelType,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Union[str, Sequence[str], None] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """按等值条件查询，按指定列排序"""
        table = model.__tablename__
        stmt = self._where(model, sql_select(model), filters)
        if order_by:
            names = [order_by] if isinstance(order_by, str) else list(order_by)
            for name in names:
                column = getattr(model, name)
                stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit:
            stmt = stmt.limit(limit)

        async with self._operation(table, "select"):
            async with self.db.session() as session:
                result = await session.execute(stmt)
                return [row_to_dict(obj) for obj in result.scalars().all()]

    async def select_in(self, model: ModelType, column: str, values: Iterable[Any]) -> List[Row]:
        """按一组值批量查询（一次往返）"""
        values = list(dict.fromkeys(v for v in values if v is not None))
        if not values:
            return []
        return await self.select(model, {column: values})

    async def find_one(self, model: ModelType, filters: Dict[str, Any]) -> Optional[Row]:
        rows = await self.select(model, filters, limit=1)
        return rows[0] if rows else None

    async def get(self, model: ModelType, row_id: str) -> Row:
        table = model.__tablename__
        async with self._operation(table, "get"):
            async with self.db.session() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    raise NotFound(table, row_id)
                return row_to_dict(obj)

    async def count(self, model: ModelType, filters: Optional[Dict[str, Any]] = None) -> int:
        table = model.__tablename__
        stmt = self._where(model, sql_select(func.count()).select_from(model), filters)
        async with self._operation(table, "count"):
            async with self.db.session() as session:
                result = await session.execute(stmt)
                return int(result.scalar() or 0)

    # ==================== 写入 ====================
    async def insert(self, model: ModelType, values: Dict[str, Any]) -> Row:
        """插入一行并推送变更"""
        table = model.__tablename__
        async with self._operation(table, "insert"):
            async with self.db.transaction() as session:
                obj = model(**values)
                session.add(obj)
                await session.flush()
                row = row_to_dict(obj)
        await self._publish(table, row)
        return row

    async def insert_many(self, model: ModelType, rows: Sequence[Dict[str, Any]]) -> List[Row]:
        """在一个事务中批量插入"""
        if not rows:
            return []
        table = model.__tablename__
        async with self._operation(table, "insert_many"):
            async with self.db.transaction() as session:
                objs = [model(**values) for values in rows]
                session.add_all(objs)
                await session.flush()
                inserted = [row_to_dict(obj) for obj in objs]
        for row in inserted:
            await self._publish(table, row)
        return inserted

    async def update(self, model: ModelType, row_id: str, patch: Dict[str, Any]) -> Row:
        table = model.__tablename__
        async with self._operation(table, "update"):
            async with self.db.transaction() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    raise NotFound(table, row_id)
                for name, value in patch.items():
                    setattr(obj, name, value)
                await session.flush()
                return row_to_dict(obj)

    async def delete(self, model: ModelType, row_id: str):
        table = model.__tablename__
        async with self._operation(table, "delete"):
            async with self.db.transaction() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    raise NotFound(table, row_id)
                await session.delete(obj)

    async def delete_where(self, model: ModelType, filters: Dict[str, Any]) -> int:
        """按条件删除，返回删除行数"""
        table = model.__tablename__
        stmt = self._where(model, sql_delete(model), filters)
        async with self._operation(table, "delete"):
            async with self.db.transaction() as session:
                result = await session.execute(stmt)
                return result.rowcount or 0

    # ==================== 订阅 ====================
    async def subscribe(self, table: str, group_id: str) -> Subscription:
        if self.change_feed is None:
            raise TransientStoreError("Realtime updates are not enabled")
        return await self.change_feed.subscribe(table, group_id)

    async def _publish(self, table: str, row: Row):
        # 行已提交，推送失败只影响实时订阅者，订阅方断线后会重新拉取
        if self.change_feed is None or row.get("group_id") is None:
            return
        try:
            await self.change_feed.publish(table, row)
        except TransientStoreError as e:
            logger.error(f"推送 {table} 变更失败: {e}")
