"""Mutation pipeline: authorize -> validate -> persist -> audit, on both stores."""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from aidcrm.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from aidcrm.db.enums import AuditAction, BeneficiaryStatus, CaseStatus, Role
from aidcrm.db.store import Unrestricted
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.beneficiary import BeneficiaryFilters
from aidcrm.schemas.service import ServiceFilters
from aidcrm.services.orchestrator import MutationOrchestrator
from aidcrm.services.seed_service import create_user


def _audit_actions(store) -> list[AuditAction]:
    return [entry.action for entry in store.all_audit_entries()]


@pytest.fixture
def beneficiary(orchestrator, actors, beneficiary_payload):
    return orchestrator.create_beneficiary(actors.staff, beneficiary_payload(id_number="850515-10-1234"))


@pytest.fixture
def case(orchestrator, actors, beneficiary, case_payload):
    return orchestrator.create_case(actors.staff, case_payload(beneficiary.id))


# =============================================================================
# Beneficiaries
# =============================================================================

class TestCreateBeneficiary:
    def test_creator_owns_and_is_default_assignee(self, orchestrator, actors, beneficiary_payload, clock):
        created = orchestrator.create_beneficiary(actors.field_worker, beneficiary_payload())
        assert created.created_by_id == actors.field_worker.user_id
        assert created.assigned_to_id == actors.field_worker.user_id
        assert created.status == BeneficiaryStatus.ACTIVE
        assert created.created_at == clock.now

    def test_persists_and_writes_one_audit_entry(self, store, orchestrator, actors, beneficiary_payload):
        created = orchestrator.create_beneficiary(actors.staff, beneficiary_payload())

        assert store.get_beneficiary(created.id) == created
        entries = store.all_audit_entries()
        assert len(entries) == 1
        assert entries[0].action == AuditAction.BENEFICIARY_CREATED
        assert entries[0].user_id == actors.staff.user_id
        assert entries[0].details.beneficiary_id == created.id

    def test_unauthenticated_is_rejected_without_side_effects(self, store, orchestrator, beneficiary_payload):
        with pytest.raises(UnauthorizedError):
            orchestrator.create_beneficiary(None, beneficiary_payload())
        assert store.count_beneficiaries(BeneficiaryFilters(), Unrestricted()) == 0
        assert store.all_audit_entries() == []

    def test_volunteer_is_forbidden(self, store, orchestrator, actors, beneficiary_payload):
        with pytest.raises(ForbiddenError):
            orchestrator.create_beneficiary(actors.volunteer, beneficiary_payload())
        assert store.all_audit_entries() == []

    def test_inactive_actor_is_unauthorized(self, orchestrator, actors, beneficiary_payload):
        inactive = actors.admin.model_copy(update={"is_active": False})
        with pytest.raises(UnauthorizedError):
            orchestrator.create_beneficiary(inactive, beneficiary_payload())

    def test_validation_failure_writes_nothing(self, store, orchestrator, actors, beneficiary_payload):
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.create_beneficiary(actors.staff, beneficiary_payload(phone="12345"))
        assert [e.field for e in exc_info.value.errors] == ["phone"]
        assert store.all_audit_entries() == []

    def test_duplicate_id_number_is_conflict(self, store, orchestrator, actors, beneficiary, beneficiary_payload):
        with pytest.raises(ConflictError) as exc_info:
            orchestrator.create_beneficiary(actors.admin, beneficiary_payload(id_number=beneficiary.id_number))
        assert exc_info.value.errors[0].field == "id_number"
        assert store.count_beneficiaries(BeneficiaryFilters(), Unrestricted()) == 1
        assert len(store.all_audit_entries()) == 1

    def test_blank_id_number_counts_as_absent(self, store, orchestrator, actors, beneficiary_payload):
        first = orchestrator.create_beneficiary(actors.staff, beneficiary_payload(id_number=""))
        second = orchestrator.create_beneficiary(actors.staff, beneficiary_payload(id_number="   "))

        assert first.id_number is None
        assert second.id_number is None
        assert store.count_beneficiaries(BeneficiaryFilters(), Unrestricted()) == 2

    def test_losing_side_of_a_uniqueness_race_is_conflict(
        self, store, orchestrator, actors, beneficiary, beneficiary_payload, monkeypatch,
    ):
        # Both requests passed validation before either wrote; the store settles it
        monkeypatch.setattr(store, "find_beneficiary_by_id_number", lambda id_number: None)

        with pytest.raises(ConflictError):
            orchestrator.create_beneficiary(actors.admin, beneficiary_payload(id_number=beneficiary.id_number))

        assert store.count_beneficiaries(BeneficiaryFilters(), Unrestricted()) == 1
        assert _audit_actions(store) == [AuditAction.BENEFICIARY_CREATED]

    def test_concurrent_creates_with_same_id_number(self, memory_store, clock, beneficiary_payload):
        workers = [
            Actor.from_user(
                create_user(memory_store, f"worker{i}@example.org", "Worker", Role.FIELD_WORKER, clock=clock),
            )
            for i in range(2)
        ]
        orchestrator = MutationOrchestrator(memory_store, clock=clock)
        barrier = threading.Barrier(len(workers), timeout=5)

        def attempt(actor):
            barrier.wait()
            try:
                return orchestrator.create_beneficiary(actor, beneficiary_payload(id_number="A1"))
            except ConflictError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=len(workers)) as pool:
            outcomes = list(pool.map(attempt, workers))

        created = [o for o in outcomes if not isinstance(o, ConflictError)]
        assert len(created) == 1
        assert sum(isinstance(o, ConflictError) for o in outcomes) == 1
        assert memory_store.find_beneficiary_by_id_number("A1") == created[0]
        assert _audit_actions(memory_store) == [AuditAction.BENEFICIARY_CREATED]

    def test_audit_failure_rolls_back_the_write(self, store, orchestrator, actors, beneficiary_payload, monkeypatch):
        def broken_append(entry):
            raise RuntimeError("audit table unavailable")

        monkeypatch.setattr(store, "append_audit", broken_append)

        with pytest.raises(InternalError) as exc_info:
            orchestrator.create_beneficiary(actors.staff, beneficiary_payload())

        assert "audit table" not in exc_info.value.message
        assert store.count_beneficiaries(BeneficiaryFilters(), Unrestricted()) == 0


class TestUpdateBeneficiary:
    def test_diff_only_contains_changed_fields(self, store, orchestrator, actors, beneficiary, clock):
        clock.advance(minutes=5)
        updated = orchestrator.update_beneficiary(
            actors.staff, beneficiary.id, {"first_name": "Ahmad", "city": "Ipoh", "priority": "URGENT"},
        )

        assert updated.city == "Ipoh"
        assert updated.updated_at == clock.now
        assert updated.created_at == beneficiary.created_at
        entry = store.all_audit_entries()[-1]
        assert entry.action == AuditAction.BENEFICIARY_UPDATED
        assert set(entry.details.changes) == {"city", "priority"}
        assert entry.details.changes["priority"].before == "HIGH"
        assert entry.details.changes["priority"].after == "URGENT"

    def test_staff_cannot_update_someone_elses_beneficiary(self, store, orchestrator, actors, beneficiary):
        with pytest.raises(ForbiddenError):
            orchestrator.update_beneficiary(actors.other_staff, beneficiary.id, {"city": "Ipoh"})
        assert store.get_beneficiary(beneficiary.id).city is None
        assert len(store.all_audit_entries()) == 1

    def test_assignee_can_update(self, orchestrator, actors, beneficiary):
        orchestrator.update_beneficiary(actors.admin, beneficiary.id, {"assigned_to_id": str(actors.other_staff.user_id)})
        updated = orchestrator.update_beneficiary(actors.other_staff, beneficiary.id, {"city": "Ipoh"})
        assert updated.city == "Ipoh"

    def test_missing_id_is_not_found_for_capable_role(self, orchestrator, actors):
        with pytest.raises(NotFoundError):
            orchestrator.update_beneficiary(actors.staff, uuid.uuid4(), {"city": "Ipoh"})

    def test_missing_id_is_forbidden_for_role_without_capability(self, orchestrator, actors):
        with pytest.raises(ForbiddenError):
            orchestrator.update_beneficiary(actors.volunteer, uuid.uuid4(), {"city": "Ipoh"})

    def test_missing_id_is_unauthorized_without_actor(self, orchestrator):
        with pytest.raises(UnauthorizedError):
            orchestrator.update_beneficiary(None, uuid.uuid4(), {"city": "Ipoh"})

    def test_cannot_archive_through_update(self, orchestrator, actors, beneficiary):
        with pytest.raises(ValidationFailedError):
            orchestrator.update_beneficiary(actors.admin, beneficiary.id, {"status": "ARCHIVED"})

    def test_created_by_is_immutable(self, orchestrator, actors, beneficiary):
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.update_beneficiary(actors.admin, beneficiary.id, {"created_by_id": str(actors.admin.user_id)})
        assert exc_info.value.errors[0].field == "created_by_id"

    def test_taking_another_id_number_is_conflict(self, orchestrator, actors, beneficiary, beneficiary_payload):
        other = orchestrator.create_beneficiary(actors.staff, beneficiary_payload(first_name="Siti"))
        with pytest.raises(ConflictError):
            orchestrator.update_beneficiary(actors.staff, other.id, {"id_number": beneficiary.id_number})


class TestArchiveBeneficiary:
    def test_archive_only_changes_status(
        self, store, orchestrator, actors, beneficiary, case, service_payload,
    ):
        service = orchestrator.create_service(actors.staff, service_payload(beneficiary.id, case_id=str(case.id)))

        archived = orchestrator.archive_beneficiary(actors.admin, beneficiary.id)

        assert archived.status == BeneficiaryStatus.ARCHIVED
        assert archived.model_dump(exclude={"status", "updated_at"}) == beneficiary.model_dump(
            exclude={"status", "updated_at"}
        )
        assert store.get_case(case.id) is not None
        assert store.get_service(service.id) is not None
        entry = store.all_audit_entries()[-1]
        assert entry.action == AuditAction.BENEFICIARY_ARCHIVED
        assert entry.details.previous_status == BeneficiaryStatus.ACTIVE

    @pytest.mark.parametrize("role", ["staff", "field_worker", "volunteer"])
    def test_only_admins_archive(self, orchestrator, actors, beneficiary, role):
        with pytest.raises(ForbiddenError):
            orchestrator.archive_beneficiary(getattr(actors, role), beneficiary.id)

    def test_archived_beneficiary_cannot_be_reactivated(self, orchestrator, actors, beneficiary):
        orchestrator.archive_beneficiary(actors.admin, beneficiary.id)
        with pytest.raises(ValidationFailedError):
            orchestrator.update_beneficiary(actors.admin, beneficiary.id, {"status": "ACTIVE"})

    def test_archiving_twice_is_audited_twice(self, store, orchestrator, actors, beneficiary):
        orchestrator.archive_beneficiary(actors.admin, beneficiary.id)
        orchestrator.archive_beneficiary(actors.admin, beneficiary.id)
        entries = store.all_audit_entries()
        assert [e.action for e in entries[-2:]] == [AuditAction.BENEFICIARY_ARCHIVED] * 2
        assert entries[-1].details.previous_status == BeneficiaryStatus.ARCHIVED


# =============================================================================
# Cases
# =============================================================================

class TestCases:
    def test_create_case_audits_beneficiary(self, store, orchestrator, actors, beneficiary, case_payload):
        created = orchestrator.create_case(
            actors.field_worker, case_payload(beneficiary.id, assigned_to_ids=[str(actors.staff.user_id)]),
        )
        assert created.created_by_id == actors.field_worker.user_id
        assert created.assigned_to_ids == [actors.staff.user_id]
        assert created.resolved_at is None
        entry = store.all_audit_entries()[-1]
        assert entry.action == AuditAction.CASE_CREATED
        assert entry.details.beneficiary_id == beneficiary.id

    def test_case_created_resolved_is_stamped(self, orchestrator, actors, beneficiary, case_payload, clock):
        created = orchestrator.create_case(actors.staff, case_payload(beneficiary.id, status="RESOLVED"))
        assert created.resolved_at == clock.now

    def test_resolved_at_keeps_first_transition(self, orchestrator, actors, case, clock):
        first = clock.advance(hours=1)
        orchestrator.update_case(actors.admin, case.id, {"status": "RESOLVED"})
        clock.advance(hours=1)
        orchestrator.update_case(actors.admin, case.id, {"status": "IN_PROGRESS"})
        clock.advance(hours=1)
        final = orchestrator.update_case(actors.admin, case.id, {"status": "RESOLVED"})

        assert final.status == CaseStatus.RESOLVED
        assert final.resolved_at == first

    def test_resolved_at_change_is_in_diff(self, store, orchestrator, actors, case, clock):
        orchestrator.update_case(actors.staff, case.id, {"status": "RESOLVED"})
        changes = store.all_audit_entries()[-1].details.changes
        assert set(changes) == {"status", "resolved_at"}
        assert changes["resolved_at"].before is None

    def test_assignee_membership_grants_update(self, orchestrator, actors, case):
        orchestrator.update_case(actors.staff, case.id, {"assigned_to_ids": [str(actors.field_worker.user_id)]})
        updated = orchestrator.update_case(actors.field_worker, case.id, {"priority": "URGENT"})
        assert updated.assigned_to_ids == [actors.field_worker.user_id]

    def test_non_member_cannot_update(self, orchestrator, actors, case):
        with pytest.raises(ForbiddenError):
            orchestrator.update_case(actors.field_worker, case.id, {"priority": "URGENT"})

    def test_beneficiary_link_is_immutable(self, orchestrator, actors, case, beneficiary_payload):
        other = orchestrator.create_beneficiary(actors.admin, beneficiary_payload(first_name="Siti"))
        with pytest.raises(ValidationFailedError) as exc_info:
            orchestrator.update_case(actors.admin, case.id, {"beneficiary_id": str(other.id)})
        assert exc_info.value.errors[0].code == "immutable"

    def test_delete_cascades_to_services(self, store, orchestrator, actors, beneficiary, case, service_payload):
        linked = [
            orchestrator.create_service(actors.staff, service_payload(beneficiary.id, case_id=str(case.id)))
            for _ in range(2)
        ]
        unlinked = orchestrator.create_service(actors.staff, service_payload(beneficiary.id))

        orchestrator.delete_case(actors.admin, case.id)

        assert store.get_case(case.id) is None
        assert all(store.get_service(s.id) is None for s in linked)
        assert store.get_service(unlinked.id) is not None
        entry = store.all_audit_entries()[-1]
        assert entry.action == AuditAction.CASE_DELETED
        assert set(entry.details.deleted_service_ids) == {s.id for s in linked}
        assert store.count_services(ServiceFilters(), Unrestricted()) == 1

    def test_staff_cannot_delete_own_case(self, store, orchestrator, actors, case):
        with pytest.raises(ForbiddenError):
            orchestrator.delete_case(actors.staff, case.id)
        assert store.get_case(case.id) is not None

    def test_delete_missing_case_is_not_found(self, orchestrator, actors):
        with pytest.raises(NotFoundError):
            orchestrator.delete_case(actors.super_admin, uuid.uuid4())


# =============================================================================
# Services
# =============================================================================

class TestServices:
    def test_provider_is_the_actor(self, store, orchestrator, actors, beneficiary, service_payload):
        service = orchestrator.create_service(actors.field_worker, service_payload(beneficiary.id))
        assert service.provided_by_id == actors.field_worker.user_id
        entry = store.all_audit_entries()[-1]
        assert entry.action == AuditAction.SERVICE_CREATED
        assert entry.details.type == service.type

    def test_provider_cannot_be_supplied(self, orchestrator, actors, beneficiary, service_payload):
        payload = service_payload(beneficiary.id, provided_by_id=str(actors.admin.user_id))
        with pytest.raises(ValidationFailedError):
            orchestrator.create_service(actors.staff, payload)

    def test_update_and_delete(self, store, orchestrator, actors, beneficiary, service_payload):
        service = orchestrator.create_service(actors.staff, service_payload(beneficiary.id, cost="12.50"))

        updated = orchestrator.update_service(actors.staff, service.id, {"cost": "15.00", "notes": "extra"})
        changes = store.all_audit_entries()[-1].details.changes
        assert set(changes) == {"cost", "notes"}
        assert str(updated.cost) == "15.00"

        orchestrator.delete_service(actors.admin, service.id)
        assert store.get_service(service.id) is None
        assert store.all_audit_entries()[-1].action == AuditAction.SERVICE_DELETED

    def test_resending_same_cost_is_not_a_change(self, store, orchestrator, actors, beneficiary, service_payload):
        service = orchestrator.create_service(actors.staff, service_payload(beneficiary.id, cost="12.5"))
        assert str(store.get_service(service.id).cost) == "12.50"

        orchestrator.update_service(actors.staff, service.id, {"cost": "12.5"})
        assert store.all_audit_entries()[-1].details.changes == {}

    def test_other_worker_cannot_update(self, orchestrator, actors, beneficiary, service_payload):
        service = orchestrator.create_service(actors.staff, service_payload(beneficiary.id))
        with pytest.raises(ForbiddenError):
            orchestrator.update_service(actors.other_staff, service.id, {"notes": "mine now"})


def test_every_accepted_mutation_has_exactly_one_entry(
    store, orchestrator, actors, beneficiary_payload, case_payload, service_payload,
):
    b = orchestrator.create_beneficiary(actors.staff, beneficiary_payload())
    orchestrator.update_beneficiary(actors.staff, b.id, {"city": "Ipoh"})
    c = orchestrator.create_case(actors.staff, case_payload(b.id))
    orchestrator.update_case(actors.staff, c.id, {"status": "IN_PROGRESS"})
    s = orchestrator.create_service(actors.staff, service_payload(b.id, case_id=str(c.id)))
    orchestrator.update_service(actors.staff, s.id, {"quantity": 3})
    orchestrator.delete_service(actors.admin, s.id)
    orchestrator.delete_case(actors.admin, c.id)
    orchestrator.archive_beneficiary(actors.admin, b.id)

    with pytest.raises(ForbiddenError):
        orchestrator.archive_beneficiary(actors.staff, b.id)

    assert _audit_actions(store) == [
        AuditAction.BENEFICIARY_CREATED,
        AuditAction.BENEFICIARY_UPDATED,
        AuditAction.CASE_CREATED,
        AuditAction.CASE_UPDATED,
        AuditAction.SERVICE_CREATED,
        AuditAction.SERVICE_UPDATED,
        AuditAction.SERVICE_DELETED,
        AuditAction.CASE_DELETED,
        AuditAction.BENEFICIARY_ARCHIVED,
    ]
    assert [e.id for e in store.all_audit_entries()] == list(range(1, 10))


def test_orchestrator_uses_injected_clock(store, clock, actors, beneficiary_payload):
    orchestrator = MutationOrchestrator(store, clock=clock)
    created = orchestrator.create_beneficiary(actors.staff, beneficiary_payload())
    assert store.all_audit_entries()[0].timestamp == clock.now == created.created_at
