"""
Canonical messages that wallets sign.

Every signed action follows the template "I {action} on {app_name}", so the
same action always produces the same text and different actions (verb or
handle) never collide.
"""

from .models import strip_marker

MESSAGE_TEMPLATE_VERSION = 1
MESSAGE_TEMPLATE = "I {action} on {app_name}"
DEFAULT_APP_NAME = "TippinBit"


def standardize_message(action: str, app_name: str = DEFAULT_APP_NAME) -> str:
    """
    Wrap an action in the application's message template.

    >>> standardize_message("claim @alice")
    'I claim @alice on TippinBit'
    """
    if not isinstance(action, str):
        raise TypeError(f"Action must be a string, got {type(action).__name__}")
    if not isinstance(app_name, str):
        raise TypeError(f"App name must be a string, got {type(app_name).__name__}")
    return MESSAGE_TEMPLATE.format(action=action, app_name=app_name)


def claim_action(handle: str) -> str:
    """The action text for claiming a handle; case is kept as typed."""
    return f"claim @{strip_marker(handle)}"


def claim_message(handle: str, app_name: str = DEFAULT_APP_NAME) -> str:
    """Canonical message a wallet signs to claim a handle."""
    return standardize_message(claim_action(handle), app_name)
