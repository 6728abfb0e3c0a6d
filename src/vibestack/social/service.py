"""
Friends, blocks and challenges.

Friend edges are directed rows (user_id -> friend_id) read symmetrically: every
lookup matches both orderings. A request moves pending -> accepted | rejected and
only the recipient may make that move. Blocking in either direction prevents new
requests, and creating a block removes any friendship between the pair.

Challenges are created active with their invitees as participants; completion is
decided by the ``check_challenge_completion`` RPC, which also owns any winner or
reward handling.
"""

from __future__ import annotations

from typing import Any

import structlog
from supabase import PostgrestAPIError
from vibestack.principal import PlatformService
from vibestack.responses import ServiceError, ServiceResponse, describe, ok, service_boundary
from vibestack.social.schemas import ChallengeCreate
from vibestack.supabase_client import filter_id, first_row, is_unique_violation, rows, rpc_payload

logger = structlog.get_logger()


def friend_pair_filter(a: str, b: str) -> str:
    """PostgREST or= expression matching a friend edge in either direction."""
    a, b = filter_id(a), filter_id(b)
    return f"and(user_id.eq.{a},friend_id.eq.{b}),and(user_id.eq.{b},friend_id.eq.{a})"


def block_pair_filter(a: str, b: str) -> str:
    a, b = filter_id(a), filter_id(b)
    return f"and(blocker_id.eq.{a},blocked_id.eq.{b}),and(blocker_id.eq.{b},blocked_id.eq.{a})"


class SocialService(PlatformService):
    async def _notify(self, notifications: list[dict[str, Any]]) -> None:
        """Insert notification rows for counterparts. Failure never undoes the action."""
        if not notifications:
            return
        try:
            await self.client.table("notifications").insert(notifications).execute()
        except Exception as e:
            logger.warning(
                "social_notification_failed",
                type=notifications[0].get("type"),
                count=len(notifications),
                error=describe(e),
            )

    async def _get_challenge(self, challenge_id: str) -> dict[str, Any]:
        challenge = first_row(
            await self.client.table("challenges").select("*").eq("id", challenge_id).limit(1).execute()
        )
        if challenge is None:
            raise ServiceError("CHALLENGE_NOT_FOUND", "Challenge not found")
        return challenge

    async def _get_participation(self, challenge_id: str, user_id: str) -> dict[str, Any] | None:
        return first_row(
            await self.client.table("challenge_participants")
            .select("*")
            .eq("challenge_id", challenge_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )

    # ------------------------------------------------------------------
    # Friends
    # ------------------------------------------------------------------

    @service_boundary("FRIEND_REQUEST_ERROR", "Failed to send friend request")
    async def send_friend_request(self, friend_id: str) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)

        if friend_id == user_id:
            raise ServiceError("INVALID_INPUT", "Cannot send friend request to yourself")

        existing = first_row(
            await self.client.table("friends")
            .select("id")
            .or_(friend_pair_filter(user_id, friend_id))
            .limit(1)
            .execute()
        )
        if existing is not None:
            raise ServiceError("REQUEST_EXISTS", "Friend request already exists")

        block = first_row(
            await self.client.table("blocks")
            .select("id")
            .or_(block_pair_filter(user_id, friend_id))
            .limit(1)
            .execute()
        )
        if block is not None:
            raise ServiceError("USER_BLOCKED", "Cannot send friend request to this user")

        try:
            response = await self.client.table("friends").insert(
                {"user_id": user_id, "friend_id": friend_id, "status": "pending"}
            ).execute()
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                raise ServiceError("REQUEST_EXISTS", "Friend request already exists") from e
            raise
        request = first_row(response)

        await self._notify(
            [
                {
                    "user_id": friend_id,
                    "type": "friend_request",
                    "title": "New Friend Request",
                    "message": "You have a new friend request",
                    "data": {"request_id": request and request.get("id"), "from_user_id": user_id},
                }
            ]
        )
        logger.info("friend_request_sent", user_id=user_id, friend_id=friend_id)
        return ok(request)

    async def _pending_request_for(self, request_id: str, user_id: str, action: str) -> dict[str, Any]:
        request = first_row(
            await self.client.table("friends").select("*").eq("id", request_id).limit(1).execute()
        )
        if request is None:
            raise ServiceError("REQUEST_NOT_FOUND", "Friend request not found")
        if str(request["friend_id"]) != user_id:
            raise ServiceError("FORBIDDEN", f"Only recipient can {action} friend request")
        if request.get("status") != "pending":
            raise ServiceError("REQUEST_NOT_FOUND", "No pending friend request")
        return request

    @service_boundary("ACCEPT_ERROR", "Failed to accept friend request")
    async def accept_friend_request(self, request_id: str) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)
        request = await self._pending_request_for(request_id, user_id, "accept")

        updated = first_row(
            await self.client.table("friends").update({"status": "accepted"}).eq("id", request_id).execute()
        )

        await self._notify(
            [
                {
                    "user_id": request["user_id"],
                    "type": "friend_request_accepted",
                    "title": "Friend Request Accepted",
                    "message": "Your friend request has been accepted",
                    "data": {"request_id": request_id, "user_id": user_id},
                }
            ]
        )
        return ok(updated)

    @service_boundary("REJECT_ERROR", "Failed to reject friend request")
    async def reject_friend_request(self, request_id: str) -> ServiceResponse:
        user = await self.require_user()
        await self._pending_request_for(request_id, str(user.id), "reject")

        updated = first_row(
            await self.client.table("friends").update({"status": "rejected"}).eq("id", request_id).execute()
        )
        return ok(updated)

    @service_boundary("REMOVE_ERROR", "Failed to remove friend")
    async def remove_friend(self, friend_id: str) -> ServiceResponse:
        user = await self.require_user()

        friendship = first_row(
            await self.client.table("friends")
            .select("id")
            .or_(friend_pair_filter(str(user.id), friend_id))
            .eq("status", "accepted")
            .limit(1)
            .execute()
        )
        if friendship is None:
            raise ServiceError("FRIENDSHIP_NOT_FOUND", "Friendship not found")

        await self.client.table("friends").delete().eq("id", friendship["id"]).execute()
        return ok()

    @service_boundary("GET_FRIENDS_ERROR", "Failed to get friends")
    async def get_friends(self, user_id: str, status: str | None = None) -> ServiceResponse:
        """Edges touching ``user_id`` in either direction."""
        await self.require_user()

        edge_of = filter_id(user_id)
        query = self.client.table("friends").select("*").or_(f"user_id.eq.{edge_of},friend_id.eq.{edge_of}")
        if status:
            query = query.eq("status", status)
        response = await query.order("created_at", desc=True).execute()
        return ok(rows(response))

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    @service_boundary("BLOCK_ERROR", "Failed to block user")
    async def block_user(self, blocked_id: str) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)
        blocked_id = filter_id(blocked_id)

        if blocked_id == user_id:
            raise ServiceError("INVALID_INPUT", "Cannot block yourself")

        existing = first_row(
            await self.client.table("blocks")
            .select("id")
            .eq("blocker_id", user_id)
            .eq("blocked_id", blocked_id)
            .limit(1)
            .execute()
        )
        if existing is not None:
            raise ServiceError("ALREADY_BLOCKED", "User is already blocked")

        try:
            await self.client.table("blocks").insert({"blocker_id": user_id, "blocked_id": blocked_id}).execute()
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                raise ServiceError("ALREADY_BLOCKED", "User is already blocked") from e
            raise

        await self.client.table("friends").delete().or_(friend_pair_filter(user_id, blocked_id)).execute()
        logger.info("user_blocked", user_id=user_id, blocked_id=blocked_id)
        return ok()

    @service_boundary("UNBLOCK_ERROR", "Failed to unblock user")
    async def unblock_user(self, blocked_id: str) -> ServiceResponse:
        user = await self.require_user()

        await (
            self.client.table("blocks")
            .delete()
            .eq("blocker_id", str(user.id))
            .eq("blocked_id", blocked_id)
            .execute()
        )
        return ok()

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    @service_boundary("CREATE_CHALLENGE_ERROR", "Failed to create challenge")
    async def create_challenge(self, data: ChallengeCreate) -> ServiceResponse:
        """
        Create an active challenge and enrol the invitees.

        If enrolling the participants fails the challenge row is deleted again
        before the error is reported.
        """
        user = await self.require_user()
        user_id = str(user.id)

        if data.end_date <= data.start_date:
            raise ServiceError("INVALID_DATES", "End date must be after start date")
        if not data.participant_ids:
            raise ServiceError("NO_PARTICIPANTS", "Challenge must have at least one participant")

        habit = first_row(
            await self.client.table("habits").select("*").eq("id", data.habit_id).limit(1).execute()
        )
        if habit is None or str(habit["user_id"]) != user_id:
            raise ServiceError("INVALID_HABIT", "Invalid habit or not owned by user")

        challenge = first_row(
            await self.client.table("challenges").insert(
                {
                    "name": data.name,
                    "description": data.description,
                    "habit_id": data.habit_id,
                    "created_by": user_id,
                    "start_date": data.start_date.isoformat(),
                    "end_date": data.end_date.isoformat(),
                    "target_count": data.target_count,
                    "status": "active",
                }
            ).execute()
        )
        if challenge is None:
            msg = "Challenge insert returned no row"
            raise RuntimeError(msg)

        participant_ids = list(dict.fromkeys(data.participant_ids))
        try:
            await self.client.table("challenge_participants").insert(
                [
                    {"challenge_id": challenge["id"], "user_id": pid, "progress_count": 0}
                    for pid in participant_ids
                ]
            ).execute()
        except Exception as e:
            logger.warning("challenge_rolled_back", challenge_id=challenge["id"], error=describe(e))
            try:
                await self.client.table("challenges").delete().eq("id", challenge["id"]).execute()
            except Exception:
                logger.exception("challenge_rollback_failed", challenge_id=challenge["id"])
            raise

        await self._notify(
            [
                {
                    "user_id": pid,
                    "type": "challenge_invite",
                    "title": "Challenge Invitation",
                    "message": f'You\'ve been invited to join "{data.name}"',
                    "data": {"challenge_id": challenge["id"], "created_by": user_id},
                }
                for pid in participant_ids
            ]
        )
        logger.info("challenge_created", challenge_id=challenge["id"], participants=len(participant_ids))
        return ok(challenge)

    @service_boundary("JOIN_CHALLENGE_ERROR", "Failed to join challenge")
    async def join_challenge(self, challenge_id: str) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)

        challenge = await self._get_challenge(challenge_id)
        if challenge.get("status") != "active":
            raise ServiceError("CHALLENGE_NOT_ACTIVE", "Challenge is not active")

        if await self._get_participation(challenge_id, user_id) is not None:
            raise ServiceError("ALREADY_PARTICIPATING", "Already participating in this challenge")

        try:
            response = await self.client.table("challenge_participants").insert(
                {"challenge_id": challenge_id, "user_id": user_id, "progress_count": 0}
            ).execute()
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                raise ServiceError("ALREADY_PARTICIPATING", "Already participating in this challenge") from e
            raise
        return ok(first_row(response))

    @service_boundary("LEAVE_CHALLENGE_ERROR", "Failed to leave challenge")
    async def leave_challenge(self, challenge_id: str) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)

        challenge = await self._get_challenge(challenge_id)
        if challenge.get("status") == "completed":
            raise ServiceError("CHALLENGE_NOT_ACTIVE", "Cannot leave completed challenge")

        if await self._get_participation(challenge_id, user_id) is None:
            raise ServiceError("NOT_PARTICIPATING", "Not participating in this challenge")

        await (
            self.client.table("challenge_participants")
            .delete()
            .eq("challenge_id", challenge_id)
            .eq("user_id", user_id)
            .execute()
        )
        return ok()

    @service_boundary("GET_CHALLENGES_ERROR", "Failed to get challenges")
    async def get_challenges(
        self,
        user_id: str,
        status: str | None = None,
        created_by: str | None = None,
        participating: bool | None = None,
    ) -> ServiceResponse:
        await self.require_user()

        response = await self.client.rpc(
            "get_user_challenges",
            {
                "user_id": user_id,
                "status_filter": status,
                "created_by_filter": created_by,
                "participating_filter": participating,
            },
        ).execute()
        return ok(rows(response))

    @service_boundary("UPDATE_PROGRESS_ERROR", "Failed to update progress")
    async def update_challenge_progress(self, challenge_id: str, increment: int = 1) -> ServiceResponse:
        """Add ``increment`` to the caller's progress, then run the completion check."""
        user = await self.require_user()

        participant = await self._get_participation(challenge_id, str(user.id))
        if participant is None:
            raise ServiceError("NOT_PARTICIPATING", "Not participating in this challenge")

        progress = (participant.get("progress_count") or 0) + increment
        updated = first_row(
            await self.client.table("challenge_participants")
            .update({"progress_count": progress})
            .eq("id", participant["id"])
            .execute()
        )

        try:
            completion = rpc_payload(
                await self.client.rpc("check_challenge_completion", {"challenge_id": challenge_id}).execute()
            )
        except Exception as e:
            logger.warning("challenge_completion_check_failed", challenge_id=challenge_id, error=describe(e))
        else:
            if isinstance(completion, dict) and completion.get("is_complete"):
                logger.info("challenge_completed", challenge_id=challenge_id, winner=completion.get("winner_id"))

        return ok(updated)
