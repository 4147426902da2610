"""Tests for the back-office audit trail."""

import json

import pytest

from packages.audit_store import AuditFilter, AuditStore, DomainEventType, StorageError
from packages.audit_trail import (
    OPERATION_TYPES,
    AgentContext,
    AuditTrailEmitter,
    derive_update_events,
    plan_update,
)
from packages.identity_provider import UserRepresentation
from packages.metrics_collector import MetricsCollector

AGENT = AgentContext(realm="master", username="operator", user_id="agent-1")


class FailingStore:
    """Audit store whose writes always fail."""

    def __init__(self):
        self.attempts = 0

    def store(self, event_create):
        self.attempts += 1
        raise StorageError("database is locked")


@pytest.fixture
def store(tmp_path) -> AuditStore:
    return AuditStore(tmp_path / "audit.db")


class TestDeriveUpdateEvents:
    """Tests for derive_update_events()."""

    def test_enabled_true_to_false_locks(self):
        events = derive_update_events(
            UserRepresentation(enabled=True), UserRepresentation(enabled=False)
        )
        assert events == [DomainEventType.LOCK_ACCOUNT]

    def test_enabled_false_to_true_unlocks(self):
        events = derive_update_events(
            UserRepresentation(enabled=False), UserRepresentation(enabled=True)
        )
        assert events == [DomainEventType.UNLOCK_ACCOUNT]

    def test_enabled_unchanged_emits_nothing(self):
        assert derive_update_events(
            UserRepresentation(enabled=True), UserRepresentation(enabled=True)
        ) == []
        assert derive_update_events(
            UserRepresentation(enabled=False), UserRepresentation(enabled=False)
        ) == []

    def test_unknown_previous_enabled_is_transition(self):
        assert derive_update_events(None, UserRepresentation(enabled=False)) == [
            DomainEventType.LOCK_ACCOUNT
        ]
        assert derive_update_events(UserRepresentation(), UserRepresentation(enabled=True)) == [
            DomainEventType.UNLOCK_ACCOUNT
        ]

    def test_contact_changes(self):
        before = UserRepresentation(email="a@example.com", phone_number="+41000")
        after = UserRepresentation(email="b@example.com", phone_number="+41111")

        assert derive_update_events(before, after) == [
            DomainEventType.UPDATE_EMAIL,
            DomainEventType.UPDATE_PHONE_NUMBER,
        ]

    def test_unsupplied_fields_ignored(self):
        before = UserRepresentation(email="a@example.com", enabled=True)
        assert derive_update_events(before, UserRepresentation(first_name="Alice")) == []


class TestPlanUpdate:
    """Tests for plan_update()."""

    def test_email_change_resets_verification(self):
        before = UserRepresentation(
            username="alice", email="a@example.com", email_verified=True, enabled=True
        )

        plan = plan_update(before, UserRepresentation(email="new@example.com"))

        assert plan.user.email == "new@example.com"
        assert plan.user.email_verified is False
        assert plan.user.enabled is True
        assert plan.events == (DomainEventType.UPDATE_EMAIL,)

    def test_request_cannot_keep_changed_email_verified(self):
        before = UserRepresentation(email="a@example.com", email_verified=True)

        plan = plan_update(
            before, UserRepresentation(email="new@example.com", email_verified=True)
        )

        assert plan.user.email_verified is False

    def test_phone_change_resets_phone_verification_only(self):
        before = UserRepresentation(
            email="a@example.com",
            email_verified=True,
            phone_number="+41000",
            phone_number_verified=True,
        )

        plan = plan_update(before, UserRepresentation(phone_number="+41999"))

        assert plan.user.phone_number_verified is False
        assert plan.user.email_verified is True
        assert plan.events == (DomainEventType.UPDATE_PHONE_NUMBER,)

    def test_unchanged_email_keeps_verification(self):
        before = UserRepresentation(email="a@example.com", email_verified=True)

        plan = plan_update(before, UserRepresentation(email="a@example.com"))

        assert plan.user.email_verified is True
        assert plan.events == ()

    def test_lock_and_email_change(self):
        before = UserRepresentation(enabled=True, email="a@example.com")

        plan = plan_update(before, UserRepresentation(enabled=False, email="b@example.com"))

        assert plan.events == (DomainEventType.LOCK_ACCOUNT, DomainEventType.UPDATE_EMAIL)


class TestAuditTrailEmitter:
    """Tests for AuditTrailEmitter."""

    def test_report_event_persists_row(self, store):
        emitter = AuditTrailEmitter(store, origin="back-office")

        assert emitter.report_event(
            DomainEventType.LOCK_ACCOUNT,
            AGENT,
            realm="corp",
            user_id="user-1",
            username="alice",
        )

        events, count = store.query(AuditFilter())
        assert count == 1
        row = events[0]
        assert row.origin == "back-office"
        assert row.realm == "corp"
        assert row.agent_realm == "master"
        assert row.agent_username == "operator"
        assert row.agent_user_id == "agent-1"
        assert row.subject_user_id == "user-1"
        assert row.subject_username == "alice"
        assert row.domain_event_type == "LOCK_ACCOUNT"
        assert row.provider_operation_type == "UPDATE"
        assert row.additional_info is None

    def test_details_serialised(self, store):
        emitter = AuditTrailEmitter(store)

        emitter.report_event(
            DomainEventType.SECOND_FACTOR_REMOVED, AGENT, realm="corp", credential_id="cred-1"
        )

        row = store.query(AuditFilter())[0][0]
        assert row.domain_event_type == "2ND_FACTOR_REMOVED"
        assert json.loads(row.additional_info) == {"credential_id": "cred-1"}

    def test_update_events_classified_as_update(self):
        assert OPERATION_TYPES[DomainEventType.UPDATE_EMAIL] == "UPDATE"
        assert OPERATION_TYPES[DomainEventType.UPDATE_PHONE_NUMBER] == "UPDATE"

    def test_write_failure_logged_not_raised(self, log):
        failing = FailingStore()
        metrics = MetricsCollector()
        emitter = AuditTrailEmitter(failing, metrics=metrics, log=log)

        stored = emitter.report_event(DomainEventType.INIT_PASSWORD, AGENT, realm="corp", user_id="u")

        assert stored is False
        assert failing.attempts == 1  # never retried
        assert metrics.audit_write_failure_count == 1
        level, event, fields = log.records[0]
        assert level == "error"
        assert event == "audit_write_failed"
        assert "database is locked" in fields["error"]
        serialised = json.loads(fields["audit_event"])
        assert serialised["domain_event_type"] == "INIT_PASSWORD"
        assert serialised["subject_user_id"] == "u"

    def test_report_events_counts_stored(self, store):
        emitter = AuditTrailEmitter(store)

        stored = emitter.report_events(
            [DomainEventType.LOCK_ACCOUNT, DomainEventType.UPDATE_EMAIL],
            AGENT,
            realm="corp",
            user_id="user-1",
        )

        assert stored == 2
        assert store.summary().domain_event_types == {"LOCK_ACCOUNT", "UPDATE_EMAIL"}

    def test_report_events_with_failing_store(self, log):
        emitter = AuditTrailEmitter(FailingStore(), log=log)

        stored = emitter.report_events(
            [DomainEventType.LOCK_ACCOUNT, DomainEventType.UPDATE_EMAIL], AGENT
        )

        assert stored == 0
        assert log.events("error") == ["audit_write_failed", "audit_write_failed"]
