from __future__ import annotations

from onebase.core.repository import TenantRepository
from onebase.crm.models import Account, Activity, Contact, Deal, DealStage


class AccountRepository(TenantRepository[Account]):
    model = Account
    search_columns = ("name", "industry")
    ordering = ("name",)


class ContactRepository(TenantRepository[Contact]):
    model = Contact
    search_columns = ("first_name", "last_name", "email")
    filter_columns = ("account_id",)
    ordering = ("last_name", "first_name")


class DealStageRepository(TenantRepository[DealStage]):
    model = DealStage
    ordering = ("sort_order",)


class DealRepository(TenantRepository[Deal]):
    model = Deal
    search_columns = ("name",)
    filter_columns = ("stage_id", "account_id")
    ordering = ("-created_at",)


class ActivityRepository(TenantRepository[Activity]):
    model = Activity
    search_columns = ("subject", "body")
    filter_columns = ("account_id", "contact_id", "deal_id")
    ordering = ("-occurred_at", "-created_at")
