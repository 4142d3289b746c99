"""Window intent: what a freshly opened wallet window wants from the user.

The extension encodes the intent in the ``action`` query parameter of the
popup URL. Classification maps that string onto a closed enumeration; any
value outside the known set is ``UNRECOGNIZED`` rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qs, urlsplit


class WindowIntent(str, Enum):
    """Classified purpose of a wallet window."""

    REQUEST_ACCOUNTS = "request-accounts"
    SIGN_MESSAGE = "sign-message"
    SEND_TRANSACTION = "send-transaction"
    UNRECOGNIZED = "unrecognized"


# Sign-only and send transactions share one prompt (and one event) for now.
ACTION_INTENTS: dict[str, WindowIntent] = {
    "requestEthereumAccounts": WindowIntent.REQUEST_ACCOUNTS,
    "signEthereumMessage": WindowIntent.SIGN_MESSAGE,
    "signEthereumTransaction": WindowIntent.SEND_TRANSACTION,
    "sendEthereumTransaction": WindowIntent.SEND_TRANSACTION,
}


@dataclass(frozen=True)
class Classification:
    """Result of classifying a window URL.

    Attributes:
        intent: The classified intent.
        action: Raw ``action`` query parameter (``None`` when absent).
    """

    intent: WindowIntent
    action: str | None = None


def action_parameter(url: str) -> str | None:
    """Return the first ``action`` query parameter of *url*, if any."""
    try:
        query = urlsplit(url).query
    except ValueError:
        return None
    values = parse_qs(query).get("action")
    return values[0] if values else None


def classify_url(url: str) -> Classification:
    """Classify a window by the ``action`` query parameter of its URL."""
    action = action_parameter(url)
    intent = ACTION_INTENTS.get(action or "", WindowIntent.UNRECOGNIZED)
    return Classification(intent=intent, action=action)
