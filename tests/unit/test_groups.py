"""
行程小组、成员与邀请仓库测试
"""

from datetime import date

import pytest

from shared.database.models import GroupMemberORM, InvitationORM
from shared.errors import DuplicateEntry, NotAuthorized, NotFound, TransientStoreError, ValidationError
from shared.models.group import InvitationCreate, TripGroupCreate, TripGroupUpdate

pytestmark = pytest.mark.unit


async def create_group(container, owner, **overrides):
    data = {"name": "Rajasthan loop", "total_budget": 90000, **overrides}
    return await container.groups.create(owner, TripGroupCreate(**data))


async def invite_and_accept(container, group_id, inviter, invitee_id, email):
    invitation = await container.invitations.send(group_id, inviter, InvitationCreate(invitee_email=email))
    return await container.invitations.accept(invitation.id, invitee_id)


class TestGroups:

    async def test_create_makes_creator_owner(self, container, profiles):
        group = await create_group(container, profiles["alice"])

        assert group.user_role == "owner"
        assert group.member_count == 1
        members = await container.members.list_by_group(group.id, profiles["alice"])
        assert [(m.user_id, m.role) for m in members] == [(profiles["alice"], "owner")]
        assert members[0].profile.display_name == "Alice Sharma"

    async def test_create_requires_identity(self, container):
        with pytest.raises(NotAuthorized) as exc_info:
            await create_group(container, None)
        assert exc_info.value.status_code == 401

    async def test_create_rejects_reversed_dates(self, container, profiles):
        with pytest.raises(ValidationError):
            await create_group(container, profiles["alice"],
                               start_date=date(2024, 6, 10), end_date=date(2024, 6, 1))

    async def test_failed_owner_insert_removes_group(self, container, profiles, monkeypatch):
        store = container.groups.store
        original = store.insert

        async def failing_insert(model, values):
            if model is GroupMemberORM:
                raise TransientStoreError("store down")
            return await original(model, values)

        monkeypatch.setattr(store, "insert", failing_insert)
        with pytest.raises(TransientStoreError):
            await create_group(container, profiles["alice"])

        monkeypatch.undo()
        assert await container.groups.list_for_user(profiles["alice"]) == []
        assert await container.store.count(GroupMemberORM, {}) == 0

    async def test_list_for_user_newest_first_with_counts(self, container, profiles):
        first = await create_group(container, profiles["alice"], name="First")
        second = await create_group(container, profiles["bob"], name="Second")
        await invite_and_accept(container, second.id, profiles["bob"], profiles["alice"], "alice@example.com")

        groups = await container.groups.list_for_user(profiles["alice"])

        assert [g.id for g in groups] == [second.id, first.id]
        assert [g.user_role for g in groups] == ["member", "owner"]
        assert [g.member_count for g in groups] == [2, 1]
        assert await container.groups.list_for_user(profiles["dave"]) == []

    async def test_get_requires_membership(self, container, profiles):
        group = await create_group(container, profiles["alice"])

        assert (await container.groups.get(group.id, profiles["alice"])).name == "Rajasthan loop"
        with pytest.raises(NotAuthorized):
            await container.groups.get(group.id, profiles["bob"])

    async def test_update_by_manager_only(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        await invite_and_accept(container, group.id, profiles["alice"], profiles["bob"], "bob@example.com")

        updated = await container.groups.update(group.id, profiles["alice"], TripGroupUpdate(total_budget=120000))
        assert updated.total_budget == 120000
        assert updated.name == "Rajasthan loop"

        with pytest.raises(NotAuthorized, match="owner or admins"):
            await container.groups.update(group.id, profiles["bob"], TripGroupUpdate(name="Mine"))

    async def test_update_rejects_blank_name(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        with pytest.raises(ValidationError):
            await container.groups.update(group.id, profiles["alice"], TripGroupUpdate(name="   "))


class TestMembers:

    async def test_owner_cannot_be_removed(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        owner = (await container.members.list_by_group(group.id, profiles["alice"]))[0]

        with pytest.raises(NotAuthorized, match="owner cannot be removed"):
            await container.members.remove(group.id, profiles["alice"], owner.id)

    async def test_member_can_leave_but_not_remove_others(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        await invite_and_accept(container, group.id, profiles["alice"], profiles["bob"], "bob@example.com")
        await invite_and_accept(container, group.id, profiles["alice"], profiles["dave"], "dave@example.com")
        members = {m.user_id: m for m in await container.members.list_by_group(group.id, profiles["alice"])}

        with pytest.raises(NotAuthorized):
            await container.members.remove(group.id, profiles["bob"], members[profiles["dave"]].id)

        await container.members.remove(group.id, profiles["bob"], members[profiles["bob"]].id)
        await container.members.remove(group.id, profiles["alice"], members[profiles["dave"]].id)

        remaining = await container.members.list_by_group(group.id, profiles["alice"])
        assert [m.user_id for m in remaining] == [profiles["alice"]]

    async def test_member_from_other_group_is_not_found(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        other = await create_group(container, profiles["bob"])
        bob_member = (await container.members.list_by_group(other.id, profiles["bob"]))[0]

        with pytest.raises(NotFound):
            await container.members.remove(group.id, profiles["alice"], bob_member.id)


class TestInvitations:

    async def test_invite_accept_flow(self, container, profiles):
        group = await create_group(container, profiles["alice"])

        invitation = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="Bob@Example.com")
        )
        assert invitation.invitee_email == "bob@example.com"
        assert invitation.invitee_id == profiles["bob"]
        assert invitation.status == "pending"

        pending = await container.invitations.list_pending_for_user(profiles["bob"])
        assert [i.id for i in pending] == [invitation.id]

        accepted = await container.invitations.accept(invitation.id, profiles["bob"])
        assert accepted.status == "accepted"

        members = await container.members.list_by_group(group.id, profiles["bob"])
        assert [(m.user_id, m.role) for m in members] == [
            (profiles["alice"], "owner"),
            (profiles["bob"], "member"),
        ]
        assert await container.invitations.list_pending_for_user(profiles["bob"]) == []

    async def test_only_managers_invite(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        await invite_and_accept(container, group.id, profiles["alice"], profiles["bob"], "bob@example.com")

        with pytest.raises(NotAuthorized):
            await container.invitations.send(group.id, profiles["bob"], InvitationCreate(invitee_email="x@example.com"))

    async def test_duplicate_invitations(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        await container.invitations.send(group.id, profiles["alice"], InvitationCreate(invitee_email="new@example.com"))

        with pytest.raises(DuplicateEntry, match="already been sent"):
            await container.invitations.send(group.id, profiles["alice"],
                                             InvitationCreate(invitee_email="new@example.com"))
        with pytest.raises(DuplicateEntry, match="already a member"):
            await container.invitations.send(group.id, profiles["alice"],
                                             InvitationCreate(invitee_email="alice@example.com"))

    async def test_only_invitee_can_answer(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        invitation = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="bob@example.com")
        )

        with pytest.raises(NotAuthorized):
            await container.invitations.accept(invitation.id, profiles["dave"])

    async def test_invitee_id_comes_from_matching_profile(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        invitation = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="carol@example.com")
        )
        assert invitation.invitee_id == profiles["carol"]

        fresh = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="erin@example.com")
        )
        assert fresh.invitee_id is None

    async def test_answered_invitation_cannot_be_answered_again(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        accepted = await invite_and_accept(container, group.id, profiles["alice"], profiles["bob"], "bob@example.com")

        with pytest.raises(ValidationError):
            await container.invitations.accept(accepted.id, profiles["bob"])
        with pytest.raises(ValidationError):
            await container.invitations.decline(accepted.id, profiles["bob"])

    async def test_decline_then_reinvite_reopens(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        invitation = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="dave@example.com")
        )

        declined = await container.invitations.decline(invitation.id, profiles["dave"])
        assert declined.status == "declined"

        reopened = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="dave@example.com")
        )
        assert reopened.id == invitation.id
        assert reopened.status == "pending"

    async def test_existing_membership_counts_as_accepted(self, container, profiles):
        group = await create_group(container, profiles["alice"])
        invitation = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="bob@example.com")
        )
        await container.store.insert(GroupMemberORM, {"group_id": group.id, "user_id": profiles["bob"],
                                                      "role": "member"})

        accepted = await container.invitations.accept(invitation.id, profiles["bob"])

        assert accepted.status == "accepted"
        assert await container.store.count(GroupMemberORM, {"group_id": group.id}) == 2

    async def test_failed_membership_insert_reverts_to_pending(self, container, profiles, monkeypatch):
        group = await create_group(container, profiles["alice"])
        invitation = await container.invitations.send(
            group.id, profiles["alice"], InvitationCreate(invitee_email="bob@example.com")
        )

        store = container.invitations.store
        original = store.insert

        async def failing_insert(model, values):
            if model is GroupMemberORM:
                raise TransientStoreError("store down")
            return await original(model, values)

        monkeypatch.setattr(store, "insert", failing_insert)
        with pytest.raises(TransientStoreError):
            await container.invitations.accept(invitation.id, profiles["bob"])

        row = await container.store.get(InvitationORM, invitation.id)
        assert row["status"] == "pending"
        assert await container.store.count(GroupMemberORM, {"group_id": group.id}) == 1
