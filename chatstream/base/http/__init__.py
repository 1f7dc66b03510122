"""HTTP transport layer (pooled httpx clients)."""

from .client import close_all_clients, get_httpx_client
from .transport import HttpTransport, TransportResponse, error_from_response

__all__ = [
    "HttpTransport",
    "TransportResponse",
    "close_all_clients",
    "error_from_response",
    "get_httpx_client",
]
