from onebase.crm.models import Account, Activity, Contact, Deal, DealStage

__all__ = ["Account", "Activity", "Contact", "Deal", "DealStage"]
