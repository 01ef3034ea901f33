"""
用户资料关联
一组去重后的用户ID只发起一次批量查询
"""

from typing import Dict, Iterable, List, Optional

from shared.database.models import ProfileORM
from shared.database.row_store import Row, RowStore
from shared.models.group import ProfileSummary
from shared.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_USER = "Unknown User"
UNKNOWN_NAME = "Unknown"


def display_name(full_name: Optional[str], email: Optional[str]) -> str:
    """优先姓名，其次邮箱 @ 前的部分，否则 Unknown"""
    if full_name and full_name.strip():
        return full_name.strip()
    if email:
        local_part = email.split("@", 1)[0]
        if local_part:
            return local_part
    return UNKNOWN_NAME


class ProfileJoiner:
    """把行上的 user_id 关联为展示用的用户资料"""

    def __init__(self, store: RowStore):
        self.store = store

    async def resolve(self, user_ids: Iterable[Optional[str]]) -> Dict[str, ProfileSummary]:
        ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not ids:
            return {}

        rows = await self.store.select_in(ProfileORM, "id", ids)
        profiles = {
            row["id"]: ProfileSummary(
                user_id=row["id"],
                email=row.get("email") or "",
                display_name=display_name(row.get("full_name"), row.get("email")),
            )
            for row in rows
        }

        missing = [uid for uid in ids if uid not in profiles]
        if missing:
            logger.debug(f"{len(missing)} 个用户没有资料记录")
        for uid in missing:
            profiles[uid] = ProfileSummary(user_id=uid, email="", display_name=UNKNOWN_USER)
        return profiles

    async def join(self, rows: List[Row], key: str = "user_id") -> List[Row]:
        """返回附带 profile 字段的新行列表"""
        profiles = await self.resolve(row.get(key) for row in rows)
        return [{**row, "profile": profiles.get(row.get(key))} for row in rows]

    async def join_one(self, row: Row, key: str = "user_id") -> Row:
        joined = await self.join([row], key)
        return joined[0]
