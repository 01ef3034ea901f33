"""
行级访问策略测试
"""

import pytest

from shared.database.models import GroupMemberORM, TripGroupORM
from shared.errors import NotAuthorized

pytestmark = pytest.mark.unit


@pytest.fixture
async def group(store):
    group = await store.insert(TripGroupORM, {"name": "Jaipur", "created_by": "owner"})
    members = {}
    for user_id, role in (("owner", "owner"), ("admin", "admin"), ("m1", "member"), ("m2", "member")):
        members[user_id] = await store.insert(
            GroupMemberORM, {"group_id": group["id"], "user_id": user_id, "role": role}
        )
    return {"id": group["id"], "members": members}


async def test_no_identity_is_unauthenticated(policy, group):
    with pytest.raises(NotAuthorized) as exc_info:
        await policy.require_member(group["id"], None)
    assert exc_info.value.status_code == 401


async def test_non_member_is_forbidden(policy, group):
    with pytest.raises(NotAuthorized) as exc_info:
        await policy.require_member(group["id"], "stranger")
    assert exc_info.value.status_code == 403
    assert exc_info.value.retryable is False


async def test_member_row_is_returned(policy, group):
    member = await policy.require_member(group["id"], "m1")
    assert member["role"] == "member"


async def test_manager_roles(policy, group):
    assert (await policy.require_manager(group["id"], "owner"))["role"] == "owner"
    assert (await policy.require_manager(group["id"], "admin"))["role"] == "admin"
    with pytest.raises(NotAuthorized):
        await policy.require_manager(group["id"], "m1")


async def test_author_or_manager(policy, group):
    row = {"user_id": "m1"}
    await policy.require_author_or_manager(group["id"], "m1", row)
    await policy.require_author_or_manager(group["id"], "admin", row)
    with pytest.raises(NotAuthorized):
        await policy.require_author_or_manager(group["id"], "m2", row)


async def test_payment_right(policy, group):
    split = {"user_id": "m2"}
    await policy.require_payment_right(group["id"], "m2", split)
    await policy.require_payment_right(group["id"], "owner", split)
    with pytest.raises(NotAuthorized):
        await policy.require_payment_right(group["id"], "m1", split)


async def test_member_removal_rules(policy, group):
    members = group["members"]

    with pytest.raises(NotAuthorized, match="owner cannot be removed"):
        await policy.check_member_removal(group["id"], "admin", members["owner"])
    with pytest.raises(NotAuthorized, match="owner cannot be removed"):
        await policy.check_member_removal(group["id"], "owner", members["owner"])
    with pytest.raises(NotAuthorized):
        await policy.check_member_removal(group["id"], "m1", members["m2"])

    # 退出小组
    await policy.check_member_removal(group["id"], "m1", members["m1"])
    await policy.check_member_removal(group["id"], "admin", members["m2"])
