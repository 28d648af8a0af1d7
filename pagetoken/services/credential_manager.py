"""
Lifecycle management for the long-lived page token.

The manager is the only component that mutates credential state. It loads the
current record, decides whether it is fresh, and renews it through a
single-flight gate so concurrent callers share one provider round trip.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from pagetoken.clients.graph_auth import GraphOAuthClient
from pagetoken.clients.token_store import TokenStore
from pagetoken.core.errors import (
    CredentialExpiredError,
    NetworkError,
    NoCredentialAvailableError,
    ProviderError,
    StorageError,
    TokenManagerError,
)
from pagetoken.core.logging import mask_token
from pagetoken.models.credential import CredentialRecord
from pagetoken.schemas.auth import ProviderTokenResponse, TokenStatus
from pagetoken.services.expiry import ExpiryPolicy
from pagetoken.utils.singleflight import SingleFlight

logger = logging.getLogger(__name__)


class CredentialState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    FRESH = "fresh"
    NEAR_EXPIRY = "near_expiry"
    REFRESHING = "refreshing"
    DEGRADED = "degraded"
    EXPIRED = "expired"


@dataclass
class RefreshOutcome:
    """Result shared by every caller that awaited the same in-flight task."""

    record: CredentialRecord
    error: Optional[TokenManagerError] = None
    from_store: bool = False

    @property
    def degraded(self) -> bool:
        return self.error is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialManager:
    """Hands out a usable long-lived token, renewing it before it expires."""

    def __init__(
        self,
        store: TokenStore,
        provider: GraphOAuthClient,
        policy: Optional[ExpiryPolicy] = None,
        *,
        bootstrap_token: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._provider = provider
        self._policy = policy or ExpiryPolicy()
        self._bootstrap_token = bootstrap_token
        self._clock = clock
        self._record: Optional[CredentialRecord] = None
        self._state = CredentialState.UNINITIALIZED
        self._flight: SingleFlight[RefreshOutcome] = SingleFlight()

    @property
    def state(self) -> CredentialState:
        return self._state

    async def get_valid_access_token(self) -> str:
        """Return a token that is safe to use right now.

        Raises ``NoCredentialAvailableError`` when nothing is stored and the
        bootstrap exchange is impossible, and ``CredentialExpiredError`` once the
        stored token passed hard expiry without a successful renewal.
        """
        record = self._record
        if record is None:
            outcome = await self._flight.run("bootstrap", self._bootstrap_from_config)
            record = outcome.record

        now = self._clock()
        if not self._policy.is_expired(record, now) and not self._policy.needs_refresh(
            record, now
        ):
            if not self._flight.in_flight:
                self._state = CredentialState.FRESH
            return record.access_token

        if not self._flight.in_flight and self._state is not CredentialState.EXPIRED:
            self._state = CredentialState.NEAR_EXPIRY
        outcome = await self._flight.run("refresh", lambda: self._refresh(record))
        return outcome.record.access_token

    async def force_refresh(self) -> None:
        """Renew the token now, sharing any refresh that is already running.

        Unlike the lazy path, failures are raised even when the previous token
        is still usable.
        """
        record = self._record
        if record is None:
            outcome = await self._flight.run("bootstrap", self._bootstrap_from_config)
            if not outcome.from_store:
                return
            record = outcome.record

        outcome = await self._flight.run(
            "refresh", lambda: self._refresh(record, force=True)
        )
        if outcome.error is not None:
            raise outcome.error

    async def exchange_token(self, short_lived_token: str) -> CredentialRecord:
        """Replace the current credential with one exchanged from ``short_lived_token``."""
        if not short_lived_token or not short_lived_token.strip():
            raise ValueError("A short-lived token is required.")

        token = short_lived_token.strip()
        outcome = await self._flight.run(
            ("exchange", token), lambda: self._exchange_outcome(token)
        )
        return outcome.record

    async def get_status(self, *, verify: bool = True) -> TokenStatus:
        """Describe the current credential without modifying it."""
        record = self._record or self._load_stored()
        if record is None:
            return TokenStatus(
                has_token=False, is_valid=False, state=self._state.value
            )

        now = self._clock()
        is_valid = not self._policy.is_expired(record, now)
        if verify:
            try:
                introspection = await self._provider.introspect(record.access_token)
            except NetworkError as exc:
                logger.warning(
                    "Token introspection unavailable (%s); reporting local expiry", exc
                )
            else:
                is_valid = introspection.is_valid

        return TokenStatus(
            has_token=True,
            is_valid=is_valid,
            days_remaining=self._policy.days_remaining(record, now),
            expires_at=record.expires_at,
            last_refreshed=record.last_refreshed,
            needs_refresh=self._policy.needs_refresh(record, now),
            state=self._describe_state(record, now).value,
        )

    def _describe_state(self, record: CredentialRecord, now: datetime) -> CredentialState:
        if self._state is not CredentialState.UNINITIALIZED:
            return self._state
        if self._policy.is_expired(record, now):
            return CredentialState.EXPIRED
        if self._policy.needs_refresh(record, now):
            return CredentialState.NEAR_EXPIRY
        return CredentialState.FRESH

    def _load_stored(self) -> Optional[CredentialRecord]:
        try:
            return self._store.load()
        except StorageError:
            logger.exception("Failed to load stored token; treating store as empty")
            return None

    def _adopt_stored(self) -> Optional[CredentialRecord]:
        """Pick up a record written by another process when it is newer than ours.

        Only called from inside a single-flight task.
        """
        stored = self._load_stored()
        if stored is None:
            return self._record
        current = self._record
        if current is None or (stored.last_refreshed, stored.expires_at) > (
            current.last_refreshed,
            current.expires_at,
        ):
            if current is not None:
                logger.info(
                    "Adopting newer stored token %s (expires %s)",
                    mask_token(stored.access_token),
                    stored.expires_at.isoformat(),
                )
            self._record = stored
        return self._record

    async def _bootstrap_from_config(self) -> RefreshOutcome:
        record = self._adopt_stored()
        if record is not None:
            return RefreshOutcome(record, from_store=True)
        if not self._bootstrap_token:
            raise NoCredentialAvailableError(
                "No stored token and FACEBOOK_ACCESS_TOKEN is not set; "
                "exchange a short-lived token first."
            )

        logger.info("No stored token, exchanging bootstrap token for a long-lived one")
        try:
            return await self._exchange_outcome(self._bootstrap_token)
        except (ProviderError, NetworkError) as exc:
            raise NoCredentialAvailableError(f"Bootstrap exchange failed: {exc}") from exc

    async def _exchange_outcome(self, token: str) -> RefreshOutcome:
        response = await self._provider.exchange(token)
        record = self._accept(response, previous=self._record)
        logger.info(
            "Exchanged token %s, expires at %s",
            mask_token(record.access_token),
            record.expires_at.isoformat(),
        )
        return RefreshOutcome(record)

    async def _refresh(
        self, observed: CredentialRecord, *, force: bool = False
    ) -> RefreshOutcome:
        record = self._adopt_stored() or observed
        now = self._clock()
        if not force and not self._policy.needs_refresh(record, now):
            self._state = CredentialState.FRESH
            return RefreshOutcome(record)
        if (
            not force
            and self._state is CredentialState.EXPIRED
            and self._policy.is_expired(record, now)
        ):
            raise CredentialExpiredError(
                "Stored token has expired; exchange a new short-lived token."
            )

        self._state = CredentialState.REFRESHING
        logger.info(
            "Refreshing token %s (expires %s)",
            mask_token(record.access_token),
            record.expires_at.isoformat(),
        )
        try:
            response = await self._provider.refresh(record.access_token)
        except NetworkError as exc:
            logger.warning("Token refresh failed on transport, will retry later: %s", exc)
            return self._fall_back(record, exc)
        except TokenManagerError as exc:
            logger.error("Provider refused token refresh: %s", exc)
            return self._fall_back(record, exc)

        refreshed = self._accept(response, previous=record)
        logger.info(
            "Token refreshed, %s days remaining",
            self._policy.days_remaining(refreshed, self._clock()),
        )
        return RefreshOutcome(refreshed)

    def _fall_back(
        self, record: CredentialRecord, error: TokenManagerError
    ) -> RefreshOutcome:
        if self._policy.is_expired(record, self._clock()):
            self._state = CredentialState.EXPIRED
            raise CredentialExpiredError(
                f"Stored token expired at {record.expires_at.isoformat()} "
                f"and could not be renewed: {error}"
            ) from error

        self._state = CredentialState.DEGRADED
        logger.warning(
            "Serving previous token %s until %s",
            mask_token(record.access_token),
            record.expires_at.isoformat(),
        )
        return RefreshOutcome(record, error=error)

    def _accept(
        self, response: ProviderTokenResponse, *, previous: Optional[CredentialRecord]
    ) -> CredentialRecord:
        now = self._clock()
        record = CredentialRecord(
            id=previous.id if previous else None,
            access_token=response.access_token,
            token_type=response.token_type,
            expires_at=self._policy.compute_expiry(now, response.expires_in),
            last_refreshed=now,
            created_at=previous.created_at if previous else now,
            updated_at=now,
        )
        try:
            self._store.save(record)
        except StorageError:
            logger.exception(
                "New token is valid but was NOT persisted; a restart will lose it"
            )
        self._record = record
        self._state = CredentialState.FRESH
        return record


__all__ = ["CredentialManager", "CredentialState", "RefreshOutcome"]
