"""Social router: friends, blocks and challenges under /api/v1/social."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vibestack.dependencies import get_social_service
from vibestack.responses import as_json
from vibestack.social.schemas import (
    BlockCreate,
    ChallengeCreate,
    ChallengeProgressUpdate,
    ChallengeStatus,
    FriendRequestCreate,
    FriendStatus,
)
from vibestack.social.service import SocialService

router = APIRouter(prefix="/api/v1/social", tags=["Social"])


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------


@router.post("/friends/requests")
async def send_friend_request(
    body: FriendRequestCreate,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    return as_json(await service.send_friend_request(str(body.friend_id)), 201)


@router.post("/friends/requests/{request_id}/accept")
async def accept_friend_request(
    request_id: UUID,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    return as_json(await service.accept_friend_request(str(request_id)))


@router.post("/friends/requests/{request_id}/reject")
async def reject_friend_request(
    request_id: UUID,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    return as_json(await service.reject_friend_request(str(request_id)))


@router.get("/friends/{user_id}")
async def get_friends(
    user_id: UUID,
    status: FriendStatus | None = None,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    return as_json(await service.get_friends(str(user_id), status))


@router.delete("/friends/{friend_id}")
async def remove_friend(friend_id: UUID, service: SocialService = Depends(get_social_service)) -> JSONResponse:
    return as_json(await service.remove_friend(str(friend_id)))


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


@router.post("/blocks")
async def block_user(body: BlockCreate, service: SocialService = Depends(get_social_service)) -> JSONResponse:
    return as_json(await service.block_user(str(body.blocked_id)), 201)


@router.delete("/blocks/{blocked_id}")
async def unblock_user(blocked_id: UUID, service: SocialService = Depends(get_social_service)) -> JSONResponse:
    return as_json(await service.unblock_user(str(blocked_id)))


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


@router.post("/challenges")
async def create_challenge(
    body: ChallengeCreate,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    return as_json(await service.create_challenge(body), 201)


@router.get("/challenges")
async def get_challenges(
    user_id: UUID,
    status: ChallengeStatus | None = None,
    created_by: UUID | None = None,
    participating: bool | None = None,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    creator = str(created_by) if created_by else None
    return as_json(await service.get_challenges(str(user_id), status, creator, participating))


@router.post("/challenges/{challenge_id}/join")
async def join_challenge(challenge_id: UUID, service: SocialService = Depends(get_social_service)) -> JSONResponse:
    return as_json(await service.join_challenge(str(challenge_id)))


@router.post("/challenges/{challenge_id}/leave")
async def leave_challenge(challenge_id: UUID, service: SocialService = Depends(get_social_service)) -> JSONResponse:
    return as_json(await service.leave_challenge(str(challenge_id)))


@router.post("/challenges/{challenge_id}/progress")
async def update_challenge_progress(
    challenge_id: UUID,
    body: ChallengeProgressUpdate,
    service: SocialService = Depends(get_social_service),
) -> JSONResponse:
    return as_json(await service.update_challenge_progress(str(challenge_id), body.increment))
