"""
Login brute-force protection.

Two independent layers decide whether a login attempt may proceed:

1. Combined layer: failures where the IP *or* the username matches, over
   ``lockout_duration_minutes``. Catches one client hammering one or many
   accounts.
2. Username layer: failures for the username from any IP, over a fixed
   60 minute window. Catches credential stuffing spread across many IPs,
   which the combined layer cannot see once the attacker rotates addresses.

Lockout is never stored. It is derived from the attempt log on every read,
so it ends on its own once old attempts fall out of the window.

Storage problems never take logins down: writes are best effort and a
failed read lets the attempt through.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from loginguard.config import LoginLimitConfig
from loginguard.core.errors import LoginLockedError, StorageError, lockout_message
from loginguard.core.logging import get_logger
from loginguard.core.time import Clock, utcnow
from loginguard.db.models import USERNAME_LENGTH
from loginguard.limiter.events import (
    LoggingSecurityLog,
    SecurityEvent,
    SecurityEventSink,
    distributed_brute_force_event,
    login_blocked_event,
    login_failed_event,
)
from loginguard.limiter.store import AttemptFilter, AttemptStore
from loginguard.limiter.window import WindowCounter

logger = get_logger(__name__)

LAYER_IP = "ip"
LAYER_USERNAME = "username"


def clean_username(username: str | None) -> str:
    """Strip surrounding whitespace and clamp to the column length."""
    return (username or "").strip()[:USERNAME_LENGTH]


@dataclass(frozen=True)
class LockoutDecision:
    """Outcome of a pre-authentication check."""

    allowed: bool
    retry_after_minutes: int = 0
    layer: str | None = None
    attempts: int = 0

    @property
    def message(self) -> str | None:
        if self.allowed:
            return None
        return lockout_message(self.retry_after_minutes)


ALLOWED = LockoutDecision(allowed=True)


class LoginGuard:
    """
    Stateless gate around an attempt store.

    Cheap to build; construct one per request with the request's store.
    """

    def __init__(
        self,
        store: AttemptStore,
        config: LoginLimitConfig | None = None,
        events: SecurityEventSink | None = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.config = config or LoginLimitConfig()
        self.events = events or LoggingSecurityLog()
        self.clock = clock
        self.counter = WindowCounter(
            store, clock, retention=timedelta(hours=self.config.retention_hours)
        )

    @property
    def ip_window(self) -> timedelta:
        return timedelta(minutes=self.config.lockout_duration_minutes)

    @property
    def username_window(self) -> timedelta:
        return timedelta(minutes=self.config.username_window_minutes)

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.config.retention_hours)

    # -- decision -----------------------------------------------------------

    def evaluate(self, ip_address: str, username: str | None) -> LockoutDecision:
        """
        Evaluate both layers without side effects.

        Raises:
            StorageError: The attempt store could not be read.
        """
        username = clean_username(username)
        if not self.config.enabled or not username:
            return ALLOWED
        return self._evaluate(ip_address, username)

    def decide(self, ip_address: str, username: str | None) -> LockoutDecision:
        """Like evaluate, but a storage failure lets the attempt through."""
        try:
            return self.evaluate(ip_address, username)
        except StorageError:
            logger.error(
                "Attempt store unavailable, allowing login",
                exc_info=True,
                data={"ip_address": ip_address},
            )
            return ALLOWED

    def _evaluate(self, ip_address: str, username: str) -> LockoutDecision:
        cfg = self.config

        combined = AttemptFilter.combined(ip_address, username)
        attempts = self.counter.count(combined, self.ip_window)
        if attempts >= cfg.max_attempts_per_ip:
            retry = self.counter.retry_after_minutes(combined, self.ip_window)
            if retry > 0:
                return LockoutDecision(False, retry, LAYER_IP, attempts)

        by_username = AttemptFilter.username_only(username)
        attempts = self.counter.count(by_username, self.username_window)
        if attempts >= cfg.max_attempts_per_username:
            retry = self.counter.retry_after_minutes(by_username, self.username_window)
            if retry > 0:
                return LockoutDecision(False, retry, LAYER_USERNAME, attempts)

        return ALLOWED

    def pre_check(self, ip_address: str, username: str | None) -> LockoutDecision:
        """Run before credentials are verified. Records blocked attempts."""
        decision = self.decide(ip_address, username)
        if not decision.allowed:
            logger.warning(
                "Login blocked",
                data={
                    "ip_address": ip_address,
                    "layer": decision.layer,
                    "attempts": decision.attempts,
                    "retry_after_minutes": decision.retry_after_minutes,
                },
            )
            self._emit(
                login_blocked_event(
                    ip_address, clean_username(username), decision.layer, self.clock()
                ),
                aggregate=True,
            )
        return decision

    def enforce(self, ip_address: str, username: str | None) -> LockoutDecision:
        """Like pre_check, but raises LoginLockedError when blocked."""
        decision = self.pre_check(ip_address, username)
        if not decision.allowed:
            raise LoginLockedError(decision.retry_after_minutes)
        return decision

    # -- outcomes -----------------------------------------------------------

    def on_failure(
        self,
        ip_address: str,
        username: str | None,
        *,
        user_exists: bool | None = None,
        user_id: str | None = None,
    ) -> None:
        """
        Record a failed login, then purge attempts past retention.

        ``user_exists`` and ``user_id`` only enrich the security log entry;
        counting is the same for known and unknown accounts.
        """
        username = clean_username(username)
        if not self.config.enabled or not username:
            return

        now = self.clock()
        try:
            self.store.insert(ip_address, username, now)
        except StorageError:
            logger.error(
                "Failed to record login attempt",
                exc_info=True,
                data={"ip_address": ip_address},
            )

        self._emit(
            login_failed_event(ip_address, username, user_exists, now, user_id=user_id),
            aggregate=True,
        )
        self._detect_distributed_attack(ip_address, username, now)
        self._purge(now)

    def on_success(self, ip_address: str, username: str | None) -> int:
        """
        Forget failures for this exact (ip, username) pair.

        Other usernames tried from the IP and the same username tried from
        other IPs keep counting.
        """
        username = clean_username(username)
        if not username:
            return 0
        try:
            deleted = self.store.delete_pair(ip_address, username)
        except StorageError:
            logger.error(
                "Failed to clear login attempts",
                exc_info=True,
                data={"ip_address": ip_address},
            )
            return 0
        logger.debug("Cleared login attempts", data={"ip_address": ip_address, "deleted": deleted})
        return deleted

    # -- helpers ------------------------------------------------------------

    def _detect_distributed_attack(self, ip_address: str, username: str, now: datetime) -> None:
        threshold = self.config.max_attempts_per_username
        try:
            attempts = self.counter.count(
                AttemptFilter.username_only(username), self.username_window
            )
        except StorageError:
            logger.error("Failed to count username attempts", exc_info=True)
            return
        # Only the failure that reaches the threshold reports; later ones are
        # already covered by the login_blocked aggregate.
        if attempts != threshold:
            return
        logger.warning(
            "Distributed brute force detected",
            data={"attempts": attempts, "ip_address": ip_address},
        )
        self._emit(
            distributed_brute_force_event(
                username, attempts, self.config.username_window_minutes, ip_address, now
            )
        )

    def _purge(self, now: datetime) -> None:
        try:
            purged = self.store.purge_older_than(now - self.retention)
        except StorageError:
            logger.error("Failed to purge old login attempts", exc_info=True)
            return
        if purged:
            logger.debug("Purged old login attempts", data={"deleted": purged})

    def _emit(self, event: SecurityEvent, aggregate: bool = False) -> None:
        try:
            if aggregate:
                self.events.emit_aggregated(event)
            else:
                self.events.emit(event)
        except StorageError:
            logger.error(
                "Failed to write security event",
                exc_info=True,
                data={"event": event.event_type},
            )
