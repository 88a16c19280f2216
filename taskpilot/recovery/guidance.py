"""User-facing guidance text and alternative actions for failed operations."""

from __future__ import annotations

from typing import List, Optional

from ..errors import AuthorizationError, ErrorCategory, NotFoundError, classify_error, error_status
from .models import ErrorContext, RecoveryStrategy

_STATUS_ALTERNATIVES = {
    404: [
        "Search for similar items using partial names",
        "List all available items to find the correct one",
        "Check if the item was recently moved or renamed",
    ],
    403: [
        "Request access from your workspace administrator",
        "Try viewing public projects instead",
        "Check your workspace membership status",
    ],
    429: [
        "Wait 1-2 minutes before trying again",
        "Use simpler operations that require fewer API calls",
    ],
}

_OPERATION_ALTERNATIVES = {
    "create_task": [
        "Try creating the task in a different project",
        "Simplify the task details and add more information later",
    ],
    "create_project": [
        "Try creating the project in a different team or workspace",
        "Simplify the project details and add more information later",
    ],
    "update_task": [
        "Try updating individual fields separately",
        "Check if the task still exists",
    ],
    "list_tasks": [
        "Try listing tasks from a specific project",
        "Use filters to reduce the amount of data",
    ],
}

_GENERIC_ALTERNATIVES = [
    "Try rephrasing your request with different wording",
    "Provide more specific details about what you want to do",
    "Check if the items you're referencing still exist",
]


def _effective_status(error: BaseException) -> Optional[int]:
    status = error_status(error)
    if status is None and isinstance(error, AuthorizationError):
        return 403
    if status is None and isinstance(error, NotFoundError):
        return 404
    return status


def determine_strategy(error: BaseException) -> RecoveryStrategy:
    """Pick the recovery strategy for a terminal error."""
    status = error_status(error)
    if status in (401, 403):
        return "user_guidance"
    if status == 404:
        return "alternative_approach"
    if status == 429:
        return "retry"
    if status is not None and 500 <= status < 600:
        return "fallback"
    if status is not None:
        return "user_guidance"

    category = classify_error(error)
    if category == ErrorCategory.TRANSIENT:
        return "retry"
    if category == ErrorCategory.AUTHORIZATION:
        return "user_guidance"
    if category == ErrorCategory.NOT_FOUND:
        return "alternative_approach"
    if category == ErrorCategory.VALIDATION:
        return "user_guidance"
    return "graceful_degradation"


def generate_guidance(error: BaseException, context: ErrorContext) -> str:
    """Explain the failure in domain terms and suggest a next step."""
    operation = context.operation.replace("_", " ")
    status = _effective_status(error)
    message = str(error)

    if status == 401:
        return (
            "**Authentication Required**\n\n"
            "Your access token appears to be invalid or expired. Please check your "
            "configuration and make sure a valid access token is set up."
        )
    if status == 403:
        return (
            "**Permission Denied**\n\n"
            f"You don't have permission to {operation}. Please check that:\n"
            "- You have the necessary permissions in your workspace\n"
            "- The resource exists and you have access to it\n"
            "- Your account has the required privileges"
        )
    if status == 404:
        return (
            "**Resource Not Found**\n\n"
            f'The requested resource for "{operation}" could not be found. This might mean:\n'
            "- The item was deleted or moved\n"
            "- You don't have access to it\n"
            "- There's a typo in the name\n\n"
            "Try searching for similar items or check if the resource still exists."
        )
    if status == 429:
        return (
            "**Rate Limit Exceeded**\n\n"
            "The API rate limit has been reached. Wait a moment before trying again. "
            "If this persists, try:\n"
            "- Reducing the frequency of requests\n"
            "- Waiting a few minutes before trying again"
        )
    if status is not None and 500 <= status < 600:
        return (
            "**Service Temporarily Unavailable**\n\n"
            "The backend is experiencing issues. This is usually temporary. Try:\n"
            "- Waiting a few minutes and trying again\n"
            "- Checking the service status page for known issues\n"
            "- Using basic operations instead of complex ones"
        )

    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered or isinstance(error, TimeoutError):
        return (
            "**Connection Timeout**\n\n"
            f"The request to {operation} timed out. This might be due to:\n"
            "- Slow internet connection\n"
            "- Server delays\n"
            "- Large amounts of data being processed\n\n"
            "Try again in a moment or check your internet connection."
        )
    if "required" in lowered:
        return (
            "**Missing Required Information**\n\n"
            f"To {operation}, please provide all required details. Check that you've included:\n"
            "- All mandatory fields\n"
            "- Proper formatting for dates and names\n"
            "- Valid references to existing items"
        )

    return (
        "**Operation Failed**\n\n"
        f"The {operation} operation encountered an issue: {message}\n\n"
        "Try rephrasing your request or providing more specific details."
    )


def suggest_alternatives(
    error: BaseException, context: ErrorContext, contextual: bool = True
) -> List[str]:
    """Combine status-specific and operation-specific next actions."""
    suggestions: List[str] = list(_STATUS_ALTERNATIVES.get(_effective_status(error), []))
    if contextual:
        suggestions.extend(_OPERATION_ALTERNATIVES.get(context.operation, []))
    if not suggestions:
        suggestions.extend(_GENERIC_ALTERNATIVES)
    return suggestions
