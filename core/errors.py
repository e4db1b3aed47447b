# core/errors.py

from typing import Optional

from core.logging_config import logger


# ============================================================
# Domain error taxonomy
# ============================================================
class HostelError(Exception):
    """
    Base class for every error the API reports to callers.
    `detail` is always safe to return; internal context goes to the log.
    """

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(HostelError):
    status_code = 401
    default_detail = "Invalid or expired authentication token"


class Forbidden(HostelError):
    status_code = 403
    default_detail = "You do not have permission to perform this action"


class NoRoleAssigned(Forbidden):
    default_detail = "User has no assigned role"


class NotFound(HostelError):
    status_code = 404
    default_detail = "Resource not found"


class InvalidInput(HostelError):
    status_code = 400
    default_detail = "Invalid request"


class UpstreamFailure(HostelError):
    status_code = 500
    default_detail = "Upstream service failed"


# ============================================================
# Store / provider error extraction
# ============================================================
def extract_store_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors (APIError carries .message / .code)
      • GoTrue (Auth) errors
      • botocore ClientError responses
      • Generic Python exceptions
    """

    # Case 1: PostgREST / GoTrue errors
    message = getattr(error, "message", None)
    if message:
        code = getattr(error, "code", None)
        return f"{code}: {message}" if code else str(message)

    # Case 2: botocore ClientError
    response = getattr(error, "response", None)
    if isinstance(response, dict) and "Error" in response:
        err = response["Error"]
        return f"{err.get('Code', 'Unknown')}: {err.get('Message', '')}".strip()

    # Case 3: errors with args (common)
    if error.args:
        return str(error.args[0])

    return error.__class__.__name__


def upstream_failure(error: Exception, operation: str) -> UpstreamFailure:
    """
    Log the raw upstream error and return a sanitized UpstreamFailure.
    Returns (doesn't raise) so the caller can `raise ... from error`.
    """
    logger.error(f"{operation}: {extract_store_error(error)}", exc_info=error)
    return UpstreamFailure(f"{operation} failed")
