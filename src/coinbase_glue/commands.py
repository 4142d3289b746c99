"""Inbound harness commands.

Each command family is its own model. Approve/reject families restrict
``action`` to ``ResponseAction`` so an unknown action is rejected while the
payload is validated, long before any UI is touched.

Wire payloads use the harness's camelCase names (``chainId``, ``rpcUrl``);
Python code uses snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ResponseAction(str, Enum):
    """What the harness wants done with a pending wallet prompt."""

    APPROVE = "approve"
    REJECT = "reject"


class Command(BaseModel):
    """Base for inbound commands."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class WindowCommand(Command):
    """A response to a prompt raised by a specific wallet window.

    Attributes:
        id: The window handle carried by the event being answered.
        action: ``approve`` or ``reject``.
    """

    id: str
    action: ResponseAction


class RequestAccounts(WindowCommand):
    """Answer a ``requestaccounts`` event."""


class SignMessage(WindowCommand):
    """Answer a ``signmessage`` event."""


class SendTransaction(WindowCommand):
    """Answer a ``sendtransaction`` event."""


class SignTransaction(WindowCommand):
    """Answer a sign-only transaction prompt."""


class ActivateChain(Command):
    """Add (and switch to) a custom network in the wallet."""

    chain_id: str = Field(alias="chainId")
    rpc_url: str = Field(alias="rpcUrl")


class SwitchEthereumChain(Command):
    """Answer a chain-switch prompt."""

    chain_id: str = Field(alias="chainId")
