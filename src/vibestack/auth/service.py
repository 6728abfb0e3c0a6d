"""
Authentication business logic.

Registration, credential verification, session lifecycle, OAuth handoff and MFA
on top of the platform's auth subsystem. Local validation (email shape,
password length, attempt limits) is decided before any remote call.

The shared client is never signed in as a user. Exchanges that produce or
need a user session (sign-up, sign-in, refresh, OAuth, MFA) run on a client
created for that one call.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import structlog
from supabase import AuthError

from vibestack.config import Settings, get_settings
from vibestack.principal import PlatformService, utc_now
from vibestack.responses import ServiceError, ServiceResponse, describe, ok, service_boundary
from vibestack.supabase_client import create_session_client, to_plain
from vibestack.users.defaults import default_avatar, default_profile

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from supabase import AsyncClient

    from vibestack.auth.attempts import AttemptStore

logger = structlog.get_logger()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OAUTH_PROVIDERS = ("google", "apple")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class AuthService(PlatformService):
    def __init__(
        self,
        client: AsyncClient,
        attempts: AttemptStore,
        access_token: str | None = None,
        clock: Callable[[], datetime] = utc_now,
        settings: Settings | None = None,
        session_client: Callable[[], Awaitable[AsyncClient]] | None = None,
    ) -> None:
        super().__init__(client, access_token, clock)
        self.attempts = attempts
        self.settings = settings or get_settings()
        self._session_client = session_client or self._new_session_client

    async def _new_session_client(self) -> AsyncClient:
        return await create_session_client(self.settings.supabase_url, self.settings.supabase_key)

    async def _user_session_client(self) -> AsyncClient:
        """A throwaway client signed in as the caller, for user-scoped auth calls."""
        await self.require_user()
        exchange = await self._session_client()
        await exchange.auth.set_session(self.access_token, "")
        return exchange

    def _is_valid_password(self, password: str) -> bool:
        return len(password or "") >= self.settings.password_min_length

    def _check_password(self, password: str) -> None:
        if not self._is_valid_password(password):
            raise ServiceError(
                "WEAK_PASSWORD",
                f"Password must be at least {self.settings.password_min_length} characters",
            )

    # ------------------------------------------------------------------
    # Registration / sign-in
    # ------------------------------------------------------------------

    @service_boundary("SIGNUP_ERROR", "Signup failed")
    async def sign_up(
        self,
        email: str,
        password: str,
        username: str | None = None,
        display_name: str | None = None,
    ) -> ServiceResponse:
        """
        Register a new account.

        When a username or display name is supplied, a Profile and an Avatar are
        created as well. If the Avatar insert fails the Profile is deleted again
        and SIGNUP_FAILED is returned; the platform user itself is left in place.
        """
        if not is_valid_email(email):
            raise ServiceError("INVALID_EMAIL", "Invalid email format")
        self._check_password(password)

        exchange = await self._session_client()
        try:
            response = await exchange.auth.sign_up({"email": email, "password": password})
        except AuthError as e:
            if "already registered" in describe(e).lower():
                raise ServiceError("EMAIL_EXISTS", "Email already registered") from e
            raise

        user = getattr(response, "user", None)
        session = getattr(response, "session", None)
        if user is None or session is None:
            msg = "Signup succeeded but user/session missing"
            raise RuntimeError(msg)

        if username or display_name:
            await self._bootstrap_profile(
                str(user.id),
                username or email.split("@")[0] or "user",
                display_name,
            )

        logger.info("user_signed_up", user_id=str(user.id))
        return ok({"user": to_plain(user), "session": to_plain(session)})

    async def _bootstrap_profile(self, user_id: str, username: str, display_name: str | None) -> None:
        try:
            await self.client.table("profiles").insert(
                default_profile(user_id, username, display_name)
            ).execute()
            await self.client.table("avatars").insert(default_avatar(user_id)).execute()
        except Exception as e:
            logger.warning("signup_profile_rollback", user_id=user_id, error=describe(e))
            try:
                await self.client.table("profiles").delete().eq("user_id", user_id).execute()
            except Exception:
                logger.exception("signup_rollback_failed", user_id=user_id)
            raise ServiceError("SIGNUP_FAILED", "Failed to complete signup") from e

    @service_boundary("SIGNIN_ERROR", "Sign in failed")
    async def sign_in(self, email: str, password: str) -> ServiceResponse:
        """Verify credentials, counting failures per email."""
        if await self.attempts.failures(email) >= self.settings.account_lockout_threshold:
            raise ServiceError("RATE_LIMITED", "Too many login attempts")

        exchange = await self._session_client()
        try:
            response = await exchange.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as e:
            count = await self.attempts.record_failure(email)
            logger.info("sign_in_failed", email=email, failed_attempts=count)
            if "too many requests" in describe(e).lower():
                raise ServiceError("RATE_LIMITED", "Too many login attempts") from e
            raise ServiceError("INVALID_CREDENTIALS", "Invalid email or password") from e

        await self.attempts.clear_failures(email)
        return ok({"user": to_plain(response.user), "session": to_plain(response.session)})

    async def sign_out(self) -> ServiceResponse:
        """Revoke the caller's token. Always reports success so clients clear local state."""
        if not self.access_token:
            return ok()
        try:
            await self.client.auth.admin.sign_out(self.access_token)
        except Exception:
            logger.warning("sign_out_failed", exc_info=True)
        return ok()

    async def get_failed_attempts(self, email: str) -> int:
        return await self.attempts.failures(email)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    @service_boundary("RESET_ERROR", "Reset failed")
    async def reset_password(self, email: str) -> ServiceResponse:
        """Send a reset email, at most once per cooldown window per address."""
        if not is_valid_email(email):
            raise ServiceError("INVALID_EMAIL", "Invalid email format")

        if not await self.attempts.claim_reset(email):
            raise ServiceError("RATE_LIMITED", "Please wait before requesting another reset")

        try:
            await self.client.auth.reset_password_for_email(
                email,
                {"redirect_to": f"{self.settings.app_url}/reset-password"},
            )
        except Exception:
            await self.attempts.release_reset(email)
            raise
        return ok()

    @service_boundary("UPDATE_ERROR", "Update failed")
    async def update_password(self, new_password: str) -> ServiceResponse:
        user = await self.require_user()
        self._check_password(new_password)

        await self.client.auth.admin.update_user_by_id(str(user.id), {"password": new_password})
        logger.info("password_updated", user_id=str(user.id))
        return ok()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @service_boundary("AUTH_ERROR", "Failed to get user")
    async def get_current_user(self) -> ServiceResponse:
        """The user behind the bearer token; UNAUTHORIZED without one."""
        user = await self.require_user()
        return ok({"user": to_plain(user)})

    @service_boundary("REFRESH_ERROR", "Refresh failed")
    async def refresh_session(self, refresh_token: str | None = None) -> ServiceResponse:
        if not refresh_token:
            raise ServiceError("SESSION_EXPIRED", "Session expired, please sign in again")

        exchange = await self._session_client()
        try:
            response = await exchange.auth.refresh_session(refresh_token)
        except AuthError as e:
            message = describe(e).lower()
            if "expired" in message or "invalid refresh token" in message:
                raise ServiceError("SESSION_EXPIRED", "Session expired, please sign in again") from e
            raise

        session = getattr(response, "session", None)
        if session is None:
            raise ServiceError("SESSION_EXPIRED", "Session expired, please sign in again")
        return ok({"session": to_plain(session)})

    @service_boundary("VALIDATION_ERROR", "Validation failed")
    async def validate_session(self, session: Any | None = None) -> ServiceResponse:
        """
        Check a caller-supplied session locally.

        A session whose ``expires_at`` (epoch seconds) is in the past is invalid
        regardless of what the platform reports about it.
        """
        if not session:
            return ok({"valid": False, "reason": "no_session"})

        expires_at = _field(session, "expires_at")
        if expires_at and int(expires_at) < int(self.clock().timestamp()):
            return ok({"valid": False, "reason": "expired"})
        return ok({"valid": True})

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> Callable[[], None]:
        """Subscribe to auth events. Returns an unsubscribe function."""
        subscription = self.client.auth.on_auth_state_change(callback)

        def unsubscribe() -> None:
            if subscription is not None:
                subscription.unsubscribe()

        return unsubscribe

    # ------------------------------------------------------------------
    # OAuth / MFA
    # ------------------------------------------------------------------

    @service_boundary("OAUTH_ERROR", "OAuth sign in failed")
    async def sign_in_with_oauth(self, provider: str) -> ServiceResponse:
        """Start an OAuth handoff and return the provider redirect URL."""
        provider_name = provider.capitalize()
        if provider not in OAUTH_PROVIDERS:
            raise ServiceError("OAUTH_ERROR", f"Failed to authenticate with {provider_name}")

        exchange = await self._session_client()
        try:
            response = await exchange.auth.sign_in_with_oauth(
                {
                    "provider": provider,
                    "options": {"redirect_to": f"{self.settings.app_url}/auth/callback"},
                }
            )
        except AuthError as e:
            raise ServiceError("OAUTH_ERROR", f"Failed to authenticate with {provider_name}") from e

        return ok({"provider": _field(response, "provider") or provider, "url": _field(response, "url")})

    @service_boundary("MFA_ENROLL_ERROR", "MFA enrollment failed")
    async def enroll_mfa(self, factor_type: str = "totp") -> ServiceResponse:
        exchange = await self._user_session_client()
        response = await exchange.auth.mfa.enroll({"factor_type": factor_type})
        data = to_plain(response) or {}
        totp = data.get("totp") or {}
        return ok(
            {
                "id": data.get("id"),
                "type": data.get("type", factor_type),
                "secret": totp.get("secret"),
                "uri": totp.get("uri"),
                "qr_code": totp.get("qr_code"),
            }
        )

    @service_boundary("MFA_VERIFY_ERROR", "MFA verification failed")
    async def verify_mfa(self, factor_id: str, code: str) -> ServiceResponse:
        exchange = await self._user_session_client()
        try:
            await exchange.auth.mfa.challenge_and_verify({"factor_id": factor_id, "code": code})
        except AuthError as e:
            message = describe(e).lower()
            if "invalid" in message and "code" in message:
                raise ServiceError("INVALID_MFA_CODE", "Invalid verification code") from e
            raise
        return ok({"verified": True})
