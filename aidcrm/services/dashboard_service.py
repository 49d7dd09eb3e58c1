"""Dashboard statistics - scoped counts for the landing page.

Every count runs through the same scope as the matching list, so a
field worker's dashboard only reflects rows they could list.
"""

import math
from datetime import date, timedelta

from pydantic import BaseModel

from aidcrm.core.policies import Action
from aidcrm.db.enums import (
    ACTIVE_CASE_STATUSES,
    BeneficiaryCategory,
    BeneficiaryStatus,
    ServiceType,
)
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor
from aidcrm.schemas.beneficiary import BeneficiaryFilters
from aidcrm.schemas.case import CaseFilters
from aidcrm.schemas.service import ServiceFilters
from aidcrm.services.query_service import resolve_scope
from aidcrm.utils.datetime_utils import Clock, utcnow
from aidcrm.utils.pagination import PaginationParams

RECENT_ACTIVITY_LIMIT = 5
NEW_BENEFICIARY_WINDOW = timedelta(days=7)


class DashboardSummary(BaseModel):
    total_beneficiaries: int
    new_beneficiaries_this_week: int
    active_cases: int
    services_this_month: int
    services_last_month: int
    growth_rate: int


class CategoryCount(BaseModel):
    category: BeneficiaryCategory
    count: int


class ServiceTypeCount(BaseModel):
    type: ServiceType
    count: int


class RecentBeneficiary(BaseModel):
    id: str
    first_name: str
    last_name: str
    category: BeneficiaryCategory
    created_at: str


class DashboardStats(BaseModel):
    summary: DashboardSummary
    beneficiaries_by_category: list[CategoryCount]
    services_by_type: list[ServiceTypeCount]
    recent_activity: list[RecentBeneficiary]


def month_bounds(today: date) -> tuple[date, date, date]:
    """(first day of this month, first day of last month, last day of last month)."""
    start_of_month = today.replace(day=1)
    end_of_last_month = start_of_month - timedelta(days=1)
    return start_of_month, end_of_last_month.replace(day=1), end_of_last_month


def growth_rate(this_month: int, last_month: int) -> int:
    """Month-over-month growth in percent, rounded half up."""
    if last_month > 0:
        rate = (this_month - last_month) / last_month * 100
    else:
        rate = 100 if this_month > 0 else 0
    return math.floor(rate + 0.5)


def get_dashboard_stats(
    store: EntityStore, actor: Actor | None, clock: Clock = utcnow,
) -> DashboardStats:
    scope = resolve_scope(actor, Action.VIEW_DASHBOARD)
    now = clock()
    start_of_month, start_of_last_month, end_of_last_month = month_bounds(now.date())

    total_beneficiaries = store.count_beneficiaries(
        BeneficiaryFilters(status=BeneficiaryStatus.ACTIVE), scope
    )
    new_this_week = store.count_beneficiaries(
        BeneficiaryFilters(created_after=now - NEW_BENEFICIARY_WINDOW), scope
    )
    active_cases = store.count_cases(CaseFilters(statuses=sorted(ACTIVE_CASE_STATUSES)), scope)
    services_this_month = store.count_services(ServiceFilters(start_date=start_of_month), scope)
    services_last_month = store.count_services(
        ServiceFilters(start_date=start_of_last_month, end_date=end_of_last_month), scope
    )

    by_category = []
    for category in BeneficiaryCategory:
        count = store.count_beneficiaries(
            BeneficiaryFilters(category=category, status=BeneficiaryStatus.ACTIVE), scope
        )
        if count:
            by_category.append(CategoryCount(category=category, count=count))

    by_type = []
    for service_type in ServiceType:
        count = store.count_services(
            ServiceFilters(type=service_type, start_date=start_of_month), scope
        )
        if count:
            by_type.append(ServiceTypeCount(type=service_type, count=count))

    recent, _ = store.list_beneficiaries(
        BeneficiaryFilters(), scope, PaginationParams(page=1, limit=RECENT_ACTIVITY_LIMIT)
    )

    return DashboardStats(
        summary=DashboardSummary(
            total_beneficiaries=total_beneficiaries,
            new_beneficiaries_this_week=new_this_week,
            active_cases=active_cases,
            services_this_month=services_this_month,
            services_last_month=services_last_month,
            growth_rate=growth_rate(services_this_month, services_last_month),
        ),
        beneficiaries_by_category=by_category,
        services_by_type=by_type,
        recent_activity=[
            RecentBeneficiary(
                id=str(b.id),
                first_name=b.first_name,
                last_name=b.last_name,
                category=b.category,
                created_at=b.created_at.isoformat(),
            )
            for b in recent
        ],
    )
