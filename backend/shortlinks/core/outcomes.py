"""
Tagged results of the redirect and password-verification flows.

Denials are ordinary return values, not exceptions: callers match on the
type and decide how to present each case.
"""
from dataclasses import dataclass
from typing import Optional, Union

from ..models import Click


@dataclass(frozen=True)
class NotFound:
    short_code: str


@dataclass(frozen=True)
class Expired:
    short_code: str


@dataclass(frozen=True)
class Deactivated:
    short_code: str


@dataclass(frozen=True)
class PasswordRequired:
    short_code: str


@dataclass(frozen=True)
class Redirect:
    destination_url: str
    click: Optional[Click] = None


@dataclass(frozen=True)
class InvalidOrUnprotected:
    short_code: str


@dataclass(frozen=True)
class IncorrectPassword:
    short_code: str


RedirectOutcome = Union[NotFound, Expired, Deactivated, PasswordRequired, Redirect]
VerifyOutcome = Union[InvalidOrUnprotected, IncorrectPassword, Redirect]
