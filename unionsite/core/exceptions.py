"""
Custom Exceptions for the union site API
========================================

Raise these from services and endpoints instead of generic Exception; the
handler registered in main.py maps them to JSON error bodies with a stable
`code` the client can branch on.

Usage:
    from unionsite.core.exceptions import PostNotFoundError

    if not post:
        raise PostNotFoundError(post_id)
"""

from typing import Optional, Any, Dict


class UnionSiteError(Exception):
    """Base exception for all union site errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
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


# ============================================
# Authorization Errors
# ============================================

class AuthorizationError(UnionSiteError):
    """Caller not allowed to do this"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class AdminRequiredError(AuthorizationError):
    """Admin token required"""

    def __init__(self):
        super().__init__("Admin access required")
        self.code = "ADMIN_REQUIRED"


class ApprovalPendingError(AuthorizationError):
    """Member application has not been approved yet"""

    def __init__(self):
        super().__init__("Membership approval pending")
        self.code = "APPROVAL_PENDING"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(UnionSiteError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class PostNotFoundError(ResourceNotFoundError):
    def __init__(self, post_id: str):
        super().__init__("Post", post_id)


class MemberNotFoundError(ResourceNotFoundError):
    def __init__(self, member_id: str):
        super().__init__("Member", member_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(UnionSiteError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateEmailError(ValidationError):
    def __init__(self, email: str):
        super().__init__("Email already registered", field="email")
        self.code = "EMAIL_TAKEN"
        self.details["email"] = email


# ============================================
# Notification Errors
# ============================================

class PushDeliveryError(UnionSiteError):
    """Push service rejected a message"""

    status_code = 502

    def __init__(self, endpoint: str, status: int, message: str = "Push delivery failed"):
        super().__init__(message, code="PUSH_DELIVERY_FAILED", details={"endpoint": endpoint, "status": status})
        self.status = status

    @property
    def subscription_gone(self) -> bool:
        """The push service says this endpoint no longer exists"""
        return self.status in (404, 410)


def error_response(error: UnionSiteError) -> Dict[str, Any]:
    """Build the JSON body for an error response"""
    return {
        "success": False,
        "detail": error.message,
        "error": error.to_dict()
    }
