"""Push notification sender interface.

Delivery to devices is behind a narrow Protocol. The bundled
:class:`MockPushSender` logs instead of sending and is the default; a real
provider only needs to implement :meth:`PushSender.send`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Error codes that mean the token will never work again and should be pruned.
INVALID_TOKEN_ERRORS = frozenset({
    "invalid-registration-token",
    "registration-token-not-registered",
})


@dataclass
class PushMessage:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


@dataclass
class SendResult:
    """Outcome of delivering to a single device token."""

    token: str
    success: bool
    error_code: str | None = None

    @property
    def token_invalid(self) -> bool:
        return not self.success and self.error_code in INVALID_TOKEN_ERRORS


@runtime_checkable
class PushSender(Protocol):
    """Sends a message to a set of device tokens."""

    async def send(self, tokens: list[str], message: PushMessage) -> list[SendResult]:
        """Deliver ``message`` and return one result per token, in order."""
        ...


class MockPushSender:
    """Logs messages instead of sending them. Keeps no per-message state.

    Tokens listed in ``invalid_tokens`` fail with
    ``registration-token-not-registered`` so pruning can be exercised.
    """

    def __init__(self, invalid_tokens: set[str] | None = None) -> None:
        self.invalid_tokens = set(invalid_tokens or ())

    async def send(self, tokens: list[str], message: PushMessage) -> list[SendResult]:
        results: list[SendResult] = []
        for token in tokens:
            if token in self.invalid_tokens:
                results.append(SendResult(token, False, "registration-token-not-registered"))
            else:
                results.append(SendResult(token, True))
        logger.info("Mock push '%s' to %d device(s)", message.title, len(tokens))
        return results


def summarize_results(results: list[SendResult]) -> dict[str, Any]:
    return {
        "successCount": sum(1 for r in results if r.success),
        "failureCount": sum(1 for r in results if not r.success),
    }
