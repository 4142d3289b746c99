"""CSS selectors for the Coinbase Wallet extension UI.

The extension tags its controls with ``data-testid``. Keep every selector
here so a wallet release that renames one only touches this file.
"""

from __future__ import annotations


def testid(name: str, *, enabled: bool = False) -> str:
    """Selector for ``[data-testid='name']``, optionally excluding disabled controls."""
    selector = f"[data-testid='{name}']"
    return f"{selector}:not([disabled])" if enabled else selector


# Lock screen
UNLOCK_WITH_PASSWORD = testid("unlock-with-password")

# Onboarding
IMPORT_EXISTING_WALLET = testid("btn-import-existing-wallet")
IMPORT_RECOVERY_PHRASE = testid("btn-import-recovery-phrase")
SECRET_INPUT = testid("secret-input")
IMPORT_WALLET = testid("btn-import-wallet", enabled=True)
SET_PASSWORD = testid("setPassword")
SET_PASSWORD_VERIFY = testid("setPasswordVerify")
TERMS_AND_PRIVACY = testid("terms-and-privacy-policy-parent")
PASSWORD_CONTINUE = testid("btn-password-continue", enabled=True)
NOTIFICATION_BELL = testid("notification-bell-container")

# Dapp test page
DAPP_CONNECT = "#connect"

# Connect prompt
ALLOW_AUTHORIZE = testid("allow-authorize-button", enabled=True)
DENY_AUTHORIZE = testid("deny-authorize-button", enabled=True)

# Signature and transaction prompts
REQUEST_CONFIRM = testid("request-confirm-button", enabled=True)
REQUEST_CANCEL = testid("request-cancel-button", enabled=True)
SIGN_MESSAGE_TEXT = testid("sign-message-text")
TRANSACTION_FROM = testid("transaction-from-address")
TRANSACTION_TO = testid("transaction-to-address")
TRANSACTION_COST = testid("transaction-total-cost")

# Settings → networks
SETTINGS_LINK = testid("settings-navigation-link")
NETWORKS_MENU = testid("settings-networks-menu-cell-pressable")
ADD_CUSTOM_NETWORK = testid("add-custom-network")
CUSTOM_NETWORK_NAME = testid("custom-network-name-input")
CUSTOM_NETWORK_RPC_URL = testid("custom-network-rpc-url-input")
CUSTOM_NETWORK_CHAIN_ID = testid("custom-network-chain-id-input")
CUSTOM_NETWORK_SAVE = testid("custom-network-save", enabled=True)
