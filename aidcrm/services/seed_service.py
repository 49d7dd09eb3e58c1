"""Demo data for local development.

Users are inserted directly (they are created by an administrator, not
through a mutation). Beneficiaries, cases and services go through the
orchestrator as the demo users, so the seeded audit trail is complete.
"""

from dataclasses import dataclass, field
from uuid import UUID, uuid4

from aidcrm.db.enums import Role
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor, UserRead
from aidcrm.services.orchestrator import MutationOrchestrator
from aidcrm.utils.datetime_utils import Clock, utcnow

DEMO_USERS = [
    {"email": "admin@example.org", "name": "Admin User", "role": Role.ADMIN, "phone": "+60123456789"},
    {"email": "staff@example.org", "name": "Staff User", "role": Role.STAFF, "phone": "+60123456788"},
    {"email": "fieldworker@example.org", "name": "Field Worker", "role": Role.FIELD_WORKER, "phone": "+60123456787"},
]


@dataclass
class SeedResult:
    users: dict[str, UUID] = field(default_factory=dict)
    beneficiary_ids: list[UUID] = field(default_factory=list)
    case_ids: list[UUID] = field(default_factory=list)
    service_ids: list[UUID] = field(default_factory=list)
    skipped: bool = False


def create_user(
    store: EntityStore,
    email: str,
    name: str,
    role: Role,
    clock: Clock = utcnow,
    organization: str | None = None,
    phone: str | None = None,
) -> UserRead:
    """Insert a user; raises UniqueViolationError if the email is taken."""
    user = UserRead(
        id=uuid4(),
        email=email.strip().lower(),
        name=name,
        role=role,
        organization=organization,
        phone=phone,
        created_at=clock(),
    )
    with store.transaction():
        return store.add_user(user)


def seed_demo(store: EntityStore, clock: Clock = utcnow) -> SeedResult:
    """Create the demo users and a small linked data set. No-op if already seeded."""
    if store.get_user_by_email(DEMO_USERS[0]["email"]) is not None:
        return SeedResult(skipped=True)

    result = SeedResult()
    actors: dict[Role, Actor] = {}
    for profile in DEMO_USERS:
        user = create_user(store, clock=clock, **profile)
        result.users[user.email] = user.id
        actors[user.role] = Actor.from_user(user)

    orchestrator = MutationOrchestrator(store, clock=clock)
    staff, field_worker = actors[Role.STAFF], actors[Role.FIELD_WORKER]
    today = clock().date().isoformat()

    ahmad = orchestrator.create_beneficiary(staff, {
        "first_name": "Ahmad",
        "last_name": "Abdullah",
        "date_of_birth": "1985-05-15",
        "gender": "MALE",
        "nationality": "Malaysian",
        "phone": "+60123456786",
        "address": "Jalan Sultan Ismail",
        "city": "Kuala Lumpur",
        "state": "Wilayah Persekutuan",
        "postcode": "50250",
        "category": "HOMELESS",
        "priority": "HIGH",
        "notes": "Requires immediate shelter assistance",
        "tags": ["homeless", "male", "kl"],
        "source": "manual_entry",
    })
    siti = orchestrator.create_beneficiary(field_worker, {
        "first_name": "Siti",
        "last_name": "Nurhaliza",
        "date_of_birth": "1978-01-11",
        "gender": "FEMALE",
        "nationality": "Malaysian",
        "phone": "+60123456785",
        "address": "Taman Melati",
        "city": "Kuala Lumpur",
        "state": "Wilayah Persekutuan",
        "postcode": "53100",
        "category": "ELDERLY",
        "priority": "MEDIUM",
        "notes": "Needs regular food assistance",
        "tags": ["elderly", "female", "food"],
        "source": "referral",
    })
    result.beneficiary_ids += [ahmad.id, siti.id]

    shelter_case = orchestrator.create_case(staff, {
        "beneficiary_id": str(ahmad.id),
        "title": "Emergency Shelter Required",
        "description": "Beneficiary requires immediate temporary shelter accommodation",
        "type": "SHELTER",
        "priority": "HIGH",
        "status": "OPEN",
        "assigned_to_ids": [str(staff.user_id)],
    })
    food_case = orchestrator.create_case(field_worker, {
        "beneficiary_id": str(siti.id),
        "title": "Monthly Food Aid",
        "description": "Regular food package distribution for elderly beneficiary",
        "type": "FOOD",
        "status": "IN_PROGRESS",
        "assigned_to_ids": [str(field_worker.user_id)],
    })
    result.case_ids += [shelter_case.id, food_case.id]

    shelter = orchestrator.create_service(staff, {
        "type": "SHELTER_ADMISSION",
        "date": today,
        "description": "Admitted to temporary shelter for 7 days",
        "quantity": 7,
        "beneficiary_id": str(ahmad.id),
        "case_id": str(shelter_case.id),
        "location": "Shelter KL",
        "notes": "Shelter admission completed successfully",
    })
    food = orchestrator.create_service(field_worker, {
        "type": "FOOD_DISTRIBUTION",
        "date": today,
        "description": "Distributed monthly food package",
        "quantity": 1,
        "beneficiary_id": str(siti.id),
        "case_id": str(food_case.id),
        "location": "Taman Melati Distribution Center",
        "notes": "Food package includes rice, oil, and canned goods",
    })
    result.service_ids += [shelter.id, food.id]
    return result
