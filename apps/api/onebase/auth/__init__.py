from onebase.auth.models import Organization, Session, User

__all__ = ["Organization", "Session", "User"]
