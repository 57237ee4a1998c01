from typing import Optional


class ExternalServiceError(Exception):
    """Raised when a third-party API call fails or is not configured."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.message = message
        self.status_code = status_code or 500
        super().__init__(f"{service} error ({self.status_code}): {message}")
