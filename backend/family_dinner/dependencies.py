"""Request-scoped dependencies: caller identity, settings and the notifier.

Authentication itself happens upstream; the auth proxy forwards the signed-in
user's id in the ``X-User-Id`` header.
"""
from typing import Optional

from fastapi import Header, Request

from family_dinner.config import Settings
from family_dinner.errors import Unauthenticated
from family_dinner.services.notifications import Notifier


def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    user_id = get_optional_user_id(x_user_id)
    if user_id is None:
        raise Unauthenticated()
    return user_id


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier
