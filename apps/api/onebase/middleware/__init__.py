from onebase.middleware.correlation_id import CorrelationIdMiddleware
from onebase.middleware.request_logging import RequestLoggingMiddleware

__all__ = ["CorrelationIdMiddleware", "RequestLoggingMiddleware"]
