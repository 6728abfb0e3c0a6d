"""NotificationService tests: delivery gating, quiet hours, preferences, devices, inbox."""

from datetime import datetime, timezone

import pytest

from vibestack.notifications.schemas import (
    DeviceRegister,
    NotificationCreate,
    NotificationFilters,
    NotificationType,
    PreferencesUpdate,
    preference_key,
)
from vibestack.notifications.service import DEFAULT_PREFERENCES, in_quiet_hours


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 10, hour, minute, tzinfo=timezone.utc)


def _message(user_id="bob-id", type_=NotificationType.HABIT_REMINDER):
    return NotificationCreate(user_id=user_id, type=type_, title="Time to run", message="Go!", data={"habit_id": "h1"})


def _seed_preferences(fake, user_id="bob-id", **overrides):
    return fake.add("notification_preferences", {"user_id": user_id, **DEFAULT_PREFERENCES, **overrides})


class TestQuietHours:
    def test_same_day_window(self):
        assert in_quiet_hours(_at(13), "12:00", "14:00")
        assert not in_quiet_hours(_at(14), "12:00", "14:00")
        assert not in_quiet_hours(_at(11, 59), "12:00", "14:00")

    def test_window_wraps_midnight(self):
        assert in_quiet_hours(_at(23), "22:00", "08:00")
        assert in_quiet_hours(_at(7, 59), "22:00", "08:00")
        assert not in_quiet_hours(_at(9), "22:00", "08:00")

    def test_unset_window_never_quiet(self):
        assert not in_quiet_hours(_at(3), None, "08:00")
        assert not in_quiet_hours(_at(3), None, None)


class TestPreferenceKey:
    @pytest.mark.parametrize(
        ("type_", "key"),
        [
            (NotificationType.HABIT_REMINDER, "habit_reminders"),
            (NotificationType.CHALLENGE_INVITE, "challenge_updates"),
            (NotificationType.FRIEND_REQUEST_ACCEPTED, "friend_requests"),
            (NotificationType.SYSTEM, "system_notifications"),
        ],
    )
    def test_mapping(self, type_, key):
        assert preference_key(type_) == key

    def test_every_type_maps_to_a_preference(self):
        for type_ in NotificationType:
            assert preference_key(type_) in DEFAULT_PREFERENCES


class TestSendNotification:
    @pytest.mark.asyncio
    async def test_quiet_hours_store_without_push(self, notification_service, fake, clock, alice):
        _seed_preferences(fake, quiet_hours_start="22:00", quiet_hours_end="08:00")
        fake.add("devices", {"user_id": "bob-id", "token": "tok-1", "platform": "ios", "is_active": True})
        clock.set(23)

        result = await notification_service(alice[1]).send_notification(_message())

        assert result.success is True
        assert len(fake.rows("notifications", user_id="bob-id")) == 1
        assert "send_push_notification" not in fake.rpc_names()

    @pytest.mark.asyncio
    async def test_outside_quiet_hours_pushes_once_to_all_devices(self, notification_service, fake, clock, alice):
        _seed_preferences(fake, quiet_hours_start="22:00", quiet_hours_end="08:00")
        fake.add("devices", {"user_id": "bob-id", "token": "tok-1", "platform": "ios", "is_active": True})
        fake.add("devices", {"user_id": "bob-id", "token": "tok-2", "platform": "web", "is_active": True})
        fake.add("devices", {"user_id": "bob-id", "token": "old", "platform": "android", "is_active": False})
        clock.set(9)

        result = await notification_service(alice[1]).send_notification(_message())

        assert fake.rpc_names() == ["send_push_notification"]
        _, params = fake.rpc_calls[0]
        assert params["notification_id"] == result.data["id"]
        assert sorted(params["tokens"]) == ["tok-1", "tok-2"]
        assert params["title"] == "Time to run"
        assert params["body"] == "Go!"

    @pytest.mark.asyncio
    async def test_disabled_type_is_refused_without_writes(self, notification_service, fake, alice):
        _seed_preferences(fake, habit_reminders=False)

        result = await notification_service(alice[1]).send_notification(_message())

        assert result.code == "NOTIFICATIONS_DISABLED"
        assert fake.writes() == []

    @pytest.mark.asyncio
    async def test_other_types_still_delivered(self, notification_service, fake, alice):
        _seed_preferences(fake, habit_reminders=False)
        result = await notification_service(alice[1]).send_notification(
            _message(type_=NotificationType.ACHIEVEMENT)
        )
        assert result.success is True

    @pytest.mark.asyncio
    async def test_push_disabled_stores_only(self, notification_service, fake, alice):
        _seed_preferences(fake, push_enabled=False)
        fake.add("devices", {"user_id": "bob-id", "token": "tok-1", "platform": "ios", "is_active": True})

        result = await notification_service(alice[1]).send_notification(_message())

        assert result.success is True
        assert fake.rpc_calls == []

    @pytest.mark.asyncio
    async def test_recipient_without_preferences_gets_row_only(self, notification_service, fake, alice):
        fake.add("devices", {"user_id": "bob-id", "token": "tok-1", "platform": "ios", "is_active": True})

        result = await notification_service(alice[1]).send_notification(_message())

        assert result.data["read"] is False
        assert fake.rpc_calls == []
        assert fake.rows("notification_preferences") == []

    @pytest.mark.asyncio
    async def test_requires_authentication(self, notification_service, fake):
        result = await notification_service().send_notification(_message())
        assert result.code == "UNAUTHORIZED"
        assert fake.rows("notifications") == []


class TestPreferences:
    @pytest.mark.asyncio
    async def test_first_read_creates_defaults_once(self, notification_service, fake, alice):
        service = notification_service(alice[1])

        first = await service.get_preferences()
        second = await service.get_preferences()

        assert first.data["push_enabled"] is True
        assert first.data["id"] == second.data["id"]
        assert len(fake.rows("notification_preferences", user_id="alice-id")) == 1

    @pytest.mark.asyncio
    async def test_invalid_time_format(self, notification_service, fake, alice):
        result = await notification_service(alice[1]).update_preferences(PreferencesUpdate(quiet_hours_start="25:00"))
        assert result.code == "INVALID_TIME_FORMAT"
        assert fake.writes() == []

    @pytest.mark.asyncio
    async def test_update_creates_row_when_missing(self, notification_service, fake, alice):
        result = await notification_service(alice[1]).update_preferences(
            PreferencesUpdate(social_updates=False, quiet_hours_start="22:00", quiet_hours_end="7:30")
        )

        assert result.data["social_updates"] is False
        assert result.data["quiet_hours_end"] == "7:30"
        assert result.data["habit_reminders"] is True
        assert len(fake.rows("notification_preferences")) == 1

    @pytest.mark.asyncio
    async def test_empty_update(self, notification_service, alice):
        result = await notification_service(alice[1]).update_preferences(PreferencesUpdate())
        assert result.code == "INVALID_INPUT"


class TestDevices:
    @pytest.mark.asyncio
    async def test_one_device_per_platform(self, notification_service, fake, alice):
        service = notification_service(alice[1])

        await service.register_device(DeviceRegister(token="old-token", platform="ios"))
        await service.register_device(DeviceRegister(token="new-token", platform="ios", device_name="iPhone"))
        await service.register_device(DeviceRegister(token="web-token", platform="web"))

        devices = fake.rows("devices", user_id="alice-id")
        assert sorted(d["token"] for d in devices) == ["new-token", "web-token"]

    @pytest.mark.asyncio
    async def test_unregister(self, notification_service, fake, alice):
        service = notification_service(alice[1])
        await service.register_device(DeviceRegister(token="tok", platform="android"))

        result = await service.unregister_device("tok")
        assert result.success is True
        assert fake.rows("devices") == []


class TestInbox:
    @pytest.mark.asyncio
    async def test_unread_filter_and_paging(self, notification_service, fake, alice):
        for i in range(5):
            fake.add("notifications", {"user_id": "alice-id", "type": "system", "title": f"n{i}", "read": i == 0})
        fake.add("notifications", {"user_id": "bob-id", "type": "system", "title": "not mine", "read": False})
        service = notification_service(alice[1])

        unread = await service.get_notifications(NotificationFilters(unread=True))
        assert [n["title"] for n in unread.data] == ["n4", "n3", "n2", "n1"]

        page = await service.get_notifications(NotificationFilters(limit=2, offset=1))
        assert [n["title"] for n in page.data] == ["n3", "n2"]

    @pytest.mark.asyncio
    async def test_type_filter(self, notification_service, fake, alice):
        fake.add("notifications", {"user_id": "alice-id", "type": "system", "read": False})
        fake.add("notifications", {"user_id": "alice-id", "type": "achievement", "read": False})
        result = await notification_service(alice[1]).get_notifications(
            NotificationFilters(type=NotificationType.ACHIEVEMENT)
        )
        assert [n["type"] for n in result.data] == ["achievement"]

    @pytest.mark.asyncio
    async def test_mark_someone_elses_notification(self, notification_service, fake, alice):
        note = fake.add("notifications", {"user_id": "bob-id", "read": False})
        result = await notification_service(alice[1]).mark_as_read(note["id"])
        assert result.code == "FORBIDDEN"
        assert fake.rows("notifications")[0]["read"] is False

    @pytest.mark.asyncio
    async def test_batch_mark_leaves_foreign_rows(self, notification_service, fake, alice):
        mine = fake.add("notifications", {"user_id": "alice-id", "read": False})
        theirs = fake.add("notifications", {"user_id": "bob-id", "read": False})

        result = await notification_service(alice[1]).mark_as_read([mine["id"], theirs["id"]])

        assert result.success is True
        assert fake.rows("notifications", id=mine["id"])[0]["read"] is True
        assert fake.rows("notifications", id=theirs["id"])[0]["read"] is False

    @pytest.mark.asyncio
    async def test_unread_count_and_mark_all(self, notification_service, fake, alice):
        for _ in range(3):
            fake.add("notifications", {"user_id": "alice-id", "read": False})
        fake.add("notifications", {"user_id": "bob-id", "read": False})
        service = notification_service(alice[1])

        assert (await service.get_unread_count()).data == 3
        await service.mark_all_as_read()
        assert (await service.get_unread_count()).data == 0
        assert fake.rows("notifications", user_id="bob-id")[0]["read"] is False

    @pytest.mark.asyncio
    async def test_delete_requires_ownership(self, notification_service, fake, alice):
        note = fake.add("notifications", {"user_id": "bob-id", "read": False})
        result = await notification_service(alice[1]).delete_notification(note["id"])
        assert result.code == "FORBIDDEN"
        assert len(fake.rows("notifications")) == 1

    @pytest.mark.asyncio
    async def test_delete_own(self, notification_service, fake, alice):
        note = fake.add("notifications", {"user_id": "alice-id", "read": False})
        result = await notification_service(alice[1]).delete_notification(note["id"])
        assert result.success is True
        assert fake.rows("notifications") == []
