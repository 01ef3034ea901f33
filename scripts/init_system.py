#!/usr/bin/env python3
"""
预算旅行规划系统初始化脚本
创建（或重建）数据库表并检查Redis连接
"""

import argparse
import asyncio
import sys
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.cache.redis_client import close_all_redis_connections, get_redis_client
from shared.config.settings import get_settings
from shared.database.connection import DatabaseManager
from shared.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class SystemInitializer:
    """系统初始化器"""

    def __init__(self, reset: bool = False, skip_redis: bool = False):
        self.reset = reset
        self.skip_redis = skip_redis
        self.db = DatabaseManager()

    async def initialize(self):
        """初始化系统"""
        logger.info("开始初始化预算旅行规划系统...")

        try:
            await self._init_database()
            if not self.skip_redis:
                await self._init_redis()
            logger.info("系统初始化完成")
        finally:
            await self.db.close()
            await close_all_redis_connections()

    async def _init_database(self):
        """创建数据库表"""
        if not await self.db.check_connection():
            raise RuntimeError(f"无法连接数据库: {settings.DATABASE_URL}")

        if self.reset:
            logger.warning("重建模式：删除全部数据表")
            await self.db.drop_tables()
        await self.db.create_tables()

    async def _init_redis(self):
        """检查Redis连接"""
        logger.info("连接Redis...")
        if not await get_redis_client().ping():
            raise RuntimeError(f"无法连接Redis: {settings.REDIS_URL}")
        logger.info("Redis连接成功")


async def main():
    """主函数"""
    parser = argparse.ArgumentParser(description="初始化数据库表和缓存连接")
    parser.add_argument("--reset", action="store_true", help="先删除所有表再重新创建")
    parser.add_argument("--skip-redis", action="store_true", help="不检查Redis")
    args = parser.parse_args()

    try:
        await SystemInitializer(reset=args.reset, skip_redis=args.skip_redis).initialize()
    except RuntimeError as e:
        print(f"\n初始化失败: {e}")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("预算旅行规划系统初始化完成!")
    print("=" * 60)
    print("服务端点:")
    print(f"  - 协作服务: http://localhost:{settings.COLLAB_SERVICE_PORT}/docs")
    print(f"  - 推荐服务: http://localhost:{settings.RECOMMENDATION_SERVICE_PORT}/docs")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
