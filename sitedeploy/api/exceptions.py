"""
Custom exceptions for Netlify site, domain and deploy operations
"""


class NetlifyServiceError(Exception):
    """Base exception for all site/domain/deploy errors"""

    def __init__(self, message: str, status_code: int = None, response_data: dict = None):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(self.message)

    def __str__(self):
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class InvariantViolationError(NetlifyServiceError):
    """Raised when a requested domain state contradicts the current one"""
    pass


class PreconditionFailedError(NetlifyServiceError):
    """Raised when a provider constraint blocks the operation"""
    pass


class NotFoundError(NetlifyServiceError):
    """Raised when a site, deploy or local path does not exist"""
    pass


class DeployFailedError(NetlifyServiceError):
    """Raised when a deploy reaches the 'error' state"""

    def __init__(self, error_message: str, deploy_id: str = None):
        self.error_message = error_message
        self.deploy_id = deploy_id
        super().__init__(error_message)


class DeployTimeoutError(NetlifyServiceError):
    """Raised when a deploy does not finish within the allowed time"""
    pass


class OperationCancelledError(NetlifyServiceError):
    """Raised when the caller cancels a pending wait"""
    pass


class RemoteCallError(NetlifyServiceError):
    """Raised on generic transport or HTTP failures from the Netlify API"""
    pass


class AuthenticationError(RemoteCallError):
    """Raised when API authentication fails"""
    pass


class BadRequestError(RemoteCallError):
    """Raised when Netlify rejects the request payload"""
    pass


class RateLimitError(RemoteCallError):
    """Raised when API rate limit is exceeded"""
    pass


class NetworkError(RemoteCallError):
    """Raised when network/connection errors occur"""
    pass


class ServerError(RemoteCallError):
    """Raised when Netlify returns 5xx errors"""
    pass
