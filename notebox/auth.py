"""
Notebox Backend — Telegram WebApp Authentication
==================================================

What:  Verifies the `initData` string a Telegram Mini App hands its backend,
       and exposes a FastAPI dependency that enforces it on mutating routes.
How:   Telegram signs init data with a key derived from the bot token:

           secret_key       = HMAC_SHA256(key="WebAppData", msg=bot_token)
           data_check_string = "\n".join(sorted("k=v" for every field but hash))
           valid            = hex(HMAC_SHA256(secret_key, data_check_string)) == hash

When:  Enforced only when TELEGRAM_AUTH_REQUIRED=true; otherwise
       `require_auth` lets every request through.
"""

import hashlib
import hmac
import logging
from typing import Dict, Optional
from urllib.parse import parse_qsl

from fastapi import Header, Request

from notebox.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

INIT_DATA_HEADER = "X-Telegram-Init-Data"


def parse_init_data(init_data: str) -> Dict[str, str]:
    """Decodes the URL-encoded init data into a flat dict (last value wins)."""
    return dict(parse_qsl(init_data, keep_blank_values=True))


def _data_check_string(fields: Dict[str, str]) -> str:
    return "\n".join(f"{k}={v}" for k, v in sorted(fields.items()) if k != "hash")


def sign_init_data(fields: Dict[str, str], bot_token: str) -> str:
    """Returns the hex hash Telegram would attach to these fields."""
    secret_key = hmac.new(b"WebAppData", bot_token.encode("utf-8"), hashlib.sha256).digest()
    return hmac.new(
        secret_key,
        _data_check_string(fields).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_init_data(init_data: str, bot_token: str) -> bool:
    """
    True when `init_data` carries a hash that matches its other fields.

    An empty bot token never verifies.
    """
    if not init_data or not bot_token:
        return False
    fields = parse_init_data(init_data)
    received = fields.get("hash")
    if not received:
        return False
    return hmac.compare_digest(sign_init_data(fields, bot_token), received)


async def require_auth(
    request: Request,
    init_data: Optional[str] = Header(default=None, alias=INIT_DATA_HEADER),
) -> None:
    """
    FastAPI dependency guarding note and attachment mutations.

    Raises:
        AuthenticationError: auth is required and the header is missing or
                             does not verify (→ 401)
    """
    settings = request.app.state.settings
    if not settings.telegram_auth_required:
        return

    if not init_data:
        raise AuthenticationError(message=f"Missing {INIT_DATA_HEADER} header")

    if not verify_init_data(init_data, settings.telegram_bot_token):
        logger.warning("Rejected request with invalid Telegram init data")
        raise AuthenticationError(message="Telegram init data failed verification")
