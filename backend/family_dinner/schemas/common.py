"""Response envelope shared by every endpoint, plus common field checks."""
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BeforeValidator, EmailStr


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Success envelope: ``{success: true, data?, message?}``."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def failure(message: str, error_code: Optional[str] = None) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if error_code is not None:
        body["error_code"] = error_code
    return body


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# Guest identity key: a real address, compared lower-cased
EmailAddress = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(str.lower)]
