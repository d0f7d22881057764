"""Owner resolution for incoming requests.

The core never reads an ambient session: every operation receives an
explicit owner_id, resolved here at the tool boundary.
"""

from typing import Any, Optional

from feed_timeline.config import get_config
from feed_timeline.errors import AuthorizationError

OWNER_HEADER = "x-owner-id"


def require_owner(owner_id: Optional[str]) -> str:
    """Return a usable owner ID or raise AuthorizationError."""
    if owner_id is None or not str(owner_id).strip():
        raise AuthorizationError("Unauthorized: no owner identity for this request")
    return str(owner_id).strip()


def _owner_from_request(ctx: Any) -> Optional[str]:
    """Read the owner header from an HTTP transport request, if there is one."""
    if ctx is None:
        return None
    try:
        request = ctx.request_context.request
    except (AttributeError, ValueError, LookupError):
        return None
    headers = getattr(request, "headers", None)
    if headers is None:
        return None
    return headers.get(OWNER_HEADER)


def resolve_owner_id(ctx: Any = None) -> str:
    """Resolve the owner for a tool call.

    The ``X-Owner-Id`` header wins on HTTP transports; otherwise the
    configured owner_id is used (single-user STDIO deployments).

    Raises:
        AuthorizationError: If neither source yields an owner
    """
    owner_id = _owner_from_request(ctx) or get_config().owner_id
    return require_owner(owner_id)
