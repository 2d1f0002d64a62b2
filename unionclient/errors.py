"""
Client-side errors

These are never raised past an action handler. The reconciliation layer
carries them inside `Err` outcomes and the controller turns them into a
message for the user.
"""

from typing import Optional, Any, Dict


class ClientError(Exception):
    """Base exception for all client errors"""

    user_message = "잠시 후 다시 시도해주세요."

    def __init__(
        self,
        message: str,
        code: str = "CLIENT_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ClientError):
    """Missing field, mismatched confirmation, disallowed value"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)
        self.user_message = message


class AuthorizationError(ClientError):
    """Wrong role, approval state or password"""

    def __init__(self, message: str = "권한이 없습니다."):
        super().__init__(message, code="NOT_AUTHORIZED")
        self.user_message = message


class RemoteError(ClientError):
    """Backend or network failure; recoverable"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, code="REMOTE_ERROR", details=details)
        self.status_code = status_code


class RemoteTimeoutError(RemoteError):
    """The transport gave up (timeout or aborted request)"""

    user_message = "요청 시간이 초과되었습니다. 네트워크 상태를 확인 후 다시 시도해주세요."

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message)
        self.code = "REMOTE_TIMEOUT"


class NotConfiguredError(RemoteError):
    """No remote backend is configured"""

    user_message = "서버가 설정되지 않았습니다."

    def __init__(self):
        super().__init__("Remote backend is not configured")
        self.code = "NOT_CONFIGURED"


class NotFoundError(ClientError):
    """Addressed record does not exist"""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )
        self.user_message = "대상을 찾을 수 없습니다."


class ApprovalPendingError(AuthorizationError):
    """Account exists but the membership application is not approved"""

    def __init__(self):
        super().__init__("가입 승인 대기 중입니다.")
        self.code = "APPROVAL_PENDING"
