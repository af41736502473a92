from .errors import error_body, install_exception_handlers, status_for_exception
from .secure_http import SecureHTTPTransport

__all__ = [
    "error_body",
    "install_exception_handlers",
    "status_for_exception",
    "SecureHTTPTransport",
]
