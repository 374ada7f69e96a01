"""Callable RPC errors.

Handlers raise :class:`RpcError` with one of a fixed set of kinds. The tool
layer turns it into a fastmcp ``ToolError`` whose message starts with the
kind, so clients can branch on ``"not-found: ..."`` and so on.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable

from fastmcp.exceptions import ToolError

from lifelog.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)

UNAUTHENTICATED = "unauthenticated"
INVALID_ARGUMENT = "invalid-argument"
NOT_FOUND = "not-found"
INTERNAL = "internal"

ERROR_KINDS = frozenset({UNAUTHENTICATED, INVALID_ARGUMENT, NOT_FOUND, INTERNAL})


class RpcError(Exception):
    """An error surfaced to the RPC caller as ``<kind>: <message>``."""

    def __init__(self, kind: str, message: str) -> None:
        if kind not in ERROR_KINDS:
            raise ValueError(f"Unknown RPC error kind: {kind!r}")
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_tool_error(self) -> ToolError:
        return ToolError(f"{self.kind}: {self.message}")


def require_caller(caller_uid: str) -> str:
    """Return the caller id or raise ``unauthenticated``."""
    if not caller_uid:
        raise RpcError(UNAUTHENTICATED, "User must be authenticated")
    return caller_uid


async def invoke_rpc(
    name: str,
    handler: Callable[[], Awaitable[Any]],
    *,
    caller_uid: str = "",
    params: dict[str, Any] | None = None,
    audit: AuditLogger | None = None,
) -> Any:
    """Run an RPC implementation with error mapping and auditing.

    ``RpcError`` becomes a ``ToolError`` carrying its kind. Any other
    exception is logged and reported as ``internal`` with a generic message.

    Args:
        name: RPC name, used in logs and the audit trail.
        handler: Zero-argument coroutine function doing the work.
        caller_uid: Authenticated caller forwarded by the gateway.
        params: Call arguments; only their hash is audited.
        audit: Optional audit logger.
    """
    start = time.monotonic()
    status, error_type = "success", None
    try:
        return await handler()
    except RpcError as exc:
        status, error_type = "failure", exc.kind
        logger.info("RPC %s rejected: %s: %s", name, exc.kind, exc.message)
        raise exc.to_tool_error() from exc
    except Exception as exc:
        status, error_type = "failure", INTERNAL
        logger.exception("RPC %s failed", name)
        raise ToolError(f"{INTERNAL}: Failed to process {name}") from exc
    finally:
        if audit is not None:
            audit.log_rpc_call(
                name,
                params,
                user_id=caller_uid,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
                status=status,
                error_type=error_type,
            )
