"""
Custom exception classes for WAF rule management.
"""
from typing import Any, Optional


class WAFManagerError(Exception):
    """Base exception for WAF manager errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class RequestError(WAFManagerError):
    """Exception raised when a Cloudflare API call fails for good.

    Raised for non-retryable statuses, unparseable bodies, and once the
    retry policy is exhausted.
    """

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None, body: Any = None):
        self.status = status
        self.url = url
        self.body = body
        super().__init__(message, "REQUEST_ERROR")


class CloudflareAPIError(WAFManagerError):
    """Exception raised when Cloudflare answers with ``success: false``."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message, "CLOUDFLARE_ERROR")


class TemplateFetchError(WAFManagerError):
    """Exception raised when canonical templates cannot be loaded."""

    def __init__(self, message: str):
        super().__init__(message, "TEMPLATE_FETCH_ERROR")


class TemplateStoreError(WAFManagerError):
    """Exception raised when a template store write fails."""

    def __init__(self, message: str):
        super().__init__(message, "TEMPLATE_STORE_ERROR")


class TemplateNotFoundError(TemplateStoreError):
    """Exception raised when a template id does not exist."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}")
        self.error_code = "TEMPLATE_NOT_FOUND"


class InvalidRequestError(WAFManagerError):
    """Exception raised when an inbound proxy request is malformed."""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_REQUEST")
