from .request_id import RequestIDMiddleware, get_request_id, get_client_ip
from .locale import LocaleMiddleware

__all__ = [
    "RequestIDMiddleware",
    "LocaleMiddleware",
    "get_request_id",
    "get_client_ip",
]
