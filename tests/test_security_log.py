"""Tests for the security log repository and the SQL event sink."""

import json
from datetime import timedelta

import pytest

from loginguard.core.errors import StorageError
from loginguard.db.repositories import (
    SecurityEventType,
    Severity,
    filter_sensitive_context,
    list_security_events,
    log_or_update_security_event,
    log_security_event,
)
from loginguard.db.repositories.security_log import REDACTED, escalate_severity
from loginguard.limiter import LoginGuard, SqlAttemptStore, SqlSecurityLog
from loginguard.limiter.events import login_failed_event

from .conftest import START, DeadSession


class TestRedaction:
    def test_sensitive_keys_are_redacted(self):
        filtered = filter_sensitive_context(
            {"password": "hunter2", "api_token": "abc", "username": "bob"}
        )
        assert filtered == {"password": REDACTED, "api_token": REDACTED, "username": "bob"}

    def test_nested_dicts_are_filtered(self):
        filtered = filter_sensitive_context({"request": {"Cookie": "x", "path": "/login"}})
        assert filtered == {"request": {"Cookie": REDACTED, "path": "/login"}}

    def test_redacted_before_persisting(self, db_session):
        entry = log_security_event(
            db_session,
            SecurityEventType.LOGIN_FAILED,
            Severity.WARNING,
            "Failed login attempt",
            context={"password": "hunter2", "ip_address": "10.0.0.1"},
            now=START,
        )
        assert json.loads(entry.context) == {"password": REDACTED, "ip_address": "10.0.0.1"}


class TestSeverity:
    def test_escalation_never_lowers(self):
        assert escalate_severity(Severity.CRITICAL, Severity.INFO) == Severity.CRITICAL
        assert escalate_severity(Severity.INFO, Severity.WARNING) == Severity.WARNING

    def test_unknown_severity_stored_as_info(self, db_session):
        entry = log_security_event(db_session, "custom", "bogus", "Something", now=START)
        assert entry.severity == Severity.INFO


class TestAggregation:
    def log_failed(self, db_session, ip_address, severity=Severity.WARNING, now=START):
        return log_or_update_security_event(
            db_session,
            SecurityEventType.LOGIN_FAILED,
            severity,
            "Failed login attempt",
            context={"ip_address": ip_address},
            ip_address=ip_address,
            username="bob",
            now=now,
        )

    def test_repeats_from_same_ip_fold_into_one_entry(self, db_session):
        self.log_failed(db_session, "10.0.0.1")
        later = START + timedelta(minutes=3)
        entry = self.log_failed(db_session, "10.0.0.1", now=later)

        entries = list_security_events(db_session)
        assert len(entries) == 1
        assert entry.occurrence_count == 2
        assert entry.first_seen == START
        assert entry.timestamp == later
        assert json.loads(entry.context)["last_seen"] == later.isoformat()

    def test_different_ips_get_separate_entries(self, db_session):
        self.log_failed(db_session, "10.0.0.1")
        self.log_failed(db_session, "10.0.0.2")
        assert len(list_security_events(db_session)) == 2

    def test_severity_escalates_on_update(self, db_session):
        self.log_failed(db_session, "10.0.0.1", severity=Severity.INFO)
        entry = self.log_failed(db_session, "10.0.0.1", severity=Severity.CRITICAL)
        assert entry.severity == Severity.CRITICAL
        entry = self.log_failed(db_session, "10.0.0.1", severity=Severity.INFO)
        assert entry.severity == Severity.CRITICAL

    def test_list_filters_by_type(self, db_session):
        self.log_failed(db_session, "10.0.0.1")
        log_security_event(
            db_session,
            SecurityEventType.DISTRIBUTED_BRUTE_FORCE,
            Severity.CRITICAL,
            "Distributed brute force attack detected on username",
            now=START,
        )
        [entry] = list_security_events(
            db_session, event_type=SecurityEventType.DISTRIBUTED_BRUTE_FORCE
        )
        assert entry.severity == Severity.CRITICAL


class TestSqlSecurityLog:
    def test_emit_aggregated_writes_entry(self, db_session):
        sink = SqlSecurityLog(db_session)
        sink.emit_aggregated(login_failed_event("10.0.0.1", "bob", None, START))
        sink.emit_aggregated(login_failed_event("10.0.0.1", "bob", None, START))

        [entry] = list_security_events(db_session)
        assert entry.ip_address == "10.0.0.1"
        assert entry.username == "bob"
        assert entry.occurrence_count == 2

    def test_guard_writes_distributed_event_once(self, db_session, clock):
        guard = LoginGuard(SqlAttemptStore(db_session), events=SqlSecurityLog(db_session), clock=clock)
        for i in range(12):
            guard.on_failure(f"10.3.0.{i + 1}", "bob")

        events = list_security_events(
            db_session, event_type=SecurityEventType.DISTRIBUTED_BRUTE_FORCE
        )
        assert len(events) == 1
        assert json.loads(events[0].context)["attempts"] == 10
        # One aggregated login_failed entry per source IP.
        failed = list_security_events(db_session, event_type=SecurityEventType.LOGIN_FAILED)
        assert len(failed) == 12

    def test_user_id_is_stored(self, db_session):
        sink = SqlSecurityLog(db_session)
        sink.emit_aggregated(login_failed_event("10.0.0.1", "bob", True, START, user_id="u-bob"))

        [entry] = list_security_events(db_session)
        assert entry.user_id == "u-bob"
        assert entry.message == "Failed login attempt"

    def test_failed_rollback_still_raises_storage_error(self):
        sink = SqlSecurityLog(DeadSession())
        with pytest.raises(StorageError):
            sink.emit(login_failed_event("10.0.0.1", "bob", None, START))
        with pytest.raises(StorageError):
            sink.emit_aggregated(login_failed_event("10.0.0.1", "bob", None, START))
