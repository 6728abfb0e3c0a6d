"""UserService tests: avatar bootstrap, self-only updates, search privacy, stats, activities."""

import httpx
import pytest

from fake_supabase import api_error
from vibestack.users.defaults import default_profile
from vibestack.users.schemas import PrivacySettingsUpdate, ProfileUpdate


def _seed_profile(fake, user_id, username, visibility="public", show_activity=True, display_name=None):
    row = default_profile(user_id, username, display_name)
    row["privacy_settings"]["profile_visibility"] = visibility
    row["privacy_settings"]["show_activity"] = show_activity
    return fake.add("profiles", row)


class TestGetUserProfile:
    @pytest.mark.asyncio
    async def test_missing_profile(self, user_service):
        result = await user_service().get_user_profile("ghost")
        assert result.code == "USER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_avatar_is_created_once(self, user_service, fake):
        _seed_profile(fake, "alice-id", "alice")
        service = user_service()

        first = await service.get_user_profile("alice-id")
        inserts_after_first = fake.writes().count(("avatars", "insert"))
        second = await service.get_user_profile("alice-id")

        assert first.success is True
        assert first.data["avatar"]["name"] == "My Avatar"
        assert first.data["avatar"]["mood"] == 80
        assert second.data["avatar"] == first.data["avatar"]
        assert inserts_after_first == 1
        assert fake.writes().count(("avatars", "insert")) == 1


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_requires_authentication(self, user_service, fake):
        _seed_profile(fake, "alice-id", "alice")
        result = await user_service().update_profile("alice-id", ProfileUpdate(bio="hi"))
        assert result.code == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_cannot_update_someone_else(self, user_service, fake, alice):
        _seed_profile(fake, "bob-id", "bob")
        _, token = alice
        result = await user_service(token).update_profile("bob-id", ProfileUpdate(bio="pwned"))
        assert result.code == "FORBIDDEN"
        assert fake.writes() == []

    @pytest.mark.asyncio
    async def test_username_taken(self, user_service, fake, alice):
        _seed_profile(fake, "alice-id", "alice")
        _seed_profile(fake, "bob-id", "bob")
        _, token = alice
        result = await user_service(token).update_profile("alice-id", ProfileUpdate(username="bob"))
        assert result.code == "USERNAME_TAKEN"

    @pytest.mark.asyncio
    async def test_keeping_own_username_is_fine(self, user_service, fake, alice):
        _seed_profile(fake, "alice-id", "alice")
        _, token = alice
        result = await user_service(token).update_profile("alice-id", ProfileUpdate(username="alice", bio="x"))
        assert result.success is True
        assert result.data["bio"] == "x"

    @pytest.mark.asyncio
    async def test_unique_violation_maps_to_username_taken(self, user_service, fake, alice):
        _seed_profile(fake, "alice-id", "alice")
        fake.fail_on("profiles", "update", api_error("duplicate key", "23505"))
        _, token = alice
        result = await user_service(token).update_profile("alice-id", ProfileUpdate(username="racer"))
        assert result.code == "USERNAME_TAKEN"

    @pytest.mark.asyncio
    async def test_privacy_settings_are_merged(self, user_service, fake, alice):
        _seed_profile(fake, "alice-id", "alice")
        _, token = alice
        update = ProfileUpdate(privacy_settings=PrivacySettingsUpdate(show_stats=False))
        result = await user_service(token).update_profile("alice-id", update)

        privacy = result.data["privacy_settings"]
        assert privacy["show_stats"] is False
        assert privacy["profile_visibility"] == "public"
        assert privacy["show_activity"] is True

    @pytest.mark.asyncio
    async def test_empty_update(self, user_service, fake, alice):
        _seed_profile(fake, "alice-id", "alice")
        _, token = alice
        result = await user_service(token).update_profile("alice-id", ProfileUpdate())
        assert result.code == "INVALID_INPUT"


class TestSearchUsers:
    @pytest.mark.asyncio
    async def test_only_public_profiles_match(self, user_service, fake):
        _seed_profile(fake, "u1", "runner_one")
        _seed_profile(fake, "u2", "runner_two", visibility="private")
        _seed_profile(fake, "u3", "walker", display_name="Weekend Runner")
        _seed_profile(fake, "u4", "runner_four", visibility="friends")

        result = await user_service().search_users("RUNNER")
        names = sorted(p["username"] for p in result.data)
        assert names == ["runner_one", "walker"]

    @pytest.mark.asyncio
    async def test_filter_syntax_characters_are_stripped(self, user_service, fake):
        _seed_profile(fake, "u1", "runner")
        result = await user_service().search_users("run,(ner)")
        assert [p["username"] for p in result.data] == ["runner"]


class TestUserStats:
    @pytest.mark.asyncio
    async def test_counts_and_streak(self, user_service, fake):
        fake.add("habits", {"user_id": "alice-id", "is_active": True})
        fake.add("habits", {"user_id": "alice-id", "is_active": False})
        fake.add("habits", {"user_id": "bob-id", "is_active": True})
        fake.add("user_achievements", {"user_id": "alice-id"})
        fake.add("friends", {"user_id": "alice-id", "friend_id": "bob-id", "status": "accepted"})
        fake.add("friends", {"user_id": "carol-id", "friend_id": "alice-id", "status": "accepted"})
        fake.add("friends", {"user_id": "dave-id", "friend_id": "alice-id", "status": "pending"})
        fake.rpc_handlers["calculate_max_streak"] = [{"max_streak": 7}]

        result = await user_service().get_user_stats("alice-id")
        assert result.data == {
            "totalHabits": 2,
            "activeHabits": 1,
            "totalAchievements": 1,
            "totalFriends": 2,
            "currentStreak": 7,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [api_error("function missing", "42883"), httpx.ConnectError("connection refused")],
    )
    async def test_streak_failure_defaults_to_zero(self, user_service, fake, error):
        fake.rpc_handlers["calculate_max_streak"] = error
        result = await user_service().get_user_stats("alice-id")
        assert result.success is True
        assert result.data["currentStreak"] == 0

    @pytest.mark.asyncio
    async def test_stats_reject_filter_syntax_in_id(self, user_service, fake):
        fake.add("friends", {"user_id": "carol-id", "friend_id": "dave-id", "status": "accepted"})
        result = await user_service().get_user_stats("x,user_id.neq.x")
        assert result.code == "INVALID_INPUT"
        assert fake.log == []


class TestDeleteAccount:
    @pytest.mark.asyncio
    async def test_self_only(self, user_service, fake, alice):
        _, token = alice
        result = await user_service(token).delete_account("bob-id")
        assert result.code == "FORBIDDEN"
        assert fake.rpc_calls == []

    @pytest.mark.asyncio
    async def test_delegates_to_rpc(self, user_service, fake, alice):
        _, token = alice
        result = await user_service(token).delete_account("alice-id")
        assert result.success is True
        assert fake.rpc_calls == [("delete_user_account", {"user_id": "alice-id"})]


class TestUserActivities:
    @pytest.mark.asyncio
    async def test_private_activity_hidden_from_others(self, user_service, fake, bob):
        _seed_profile(fake, "alice-id", "alice", show_activity=False)
        _, token = bob
        result = await user_service(token).get_user_activities("alice-id")
        assert result.code == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_private_activity_visible_to_self(self, user_service, fake, alice):
        _seed_profile(fake, "alice-id", "alice", show_activity=False)
        fake.add("activities", {"user_id": "alice-id", "kind": "habit_completed"})
        _, token = alice
        result = await user_service(token).get_user_activities("alice-id")
        assert len(result.data) == 1

    @pytest.mark.asyncio
    async def test_missing_table_is_empty_list(self, user_service, fake):
        _seed_profile(fake, "alice-id", "alice")
        fake.fail_on("activities", "select", api_error('relation "activities" does not exist', "42P01"))
        result = await user_service().get_user_activities("alice-id")
        assert result.success is True
        assert result.data == []
