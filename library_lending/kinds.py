from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar, Union

from library_lending.exceptions import InvalidVariantError


class MemberKind(Enum):
    REGULAR = "regular"
    VIP = "vip"
    EMPLOYEE = "employee"
    VISITOR = "visitor"


class LoanKind(Enum):
    REGULAR = "regular"
    SHORT = "short"
    REFERENCE = "reference"
    DIGITAL = "digital"


class PolicyKind(Enum):
    STRICT = "strict"
    FLEXIBLE = "flexible"
    STUDENT = "student"
    FACULTY = "faculty"


K = TypeVar("K", MemberKind, LoanKind, PolicyKind)


def coerce_kind(kind_cls: Type[K], value: Union[K, str]) -> K:
    """
    Resolves an enum member or its string value into a kind.

    Accepts "vip", "VIP" or MemberKind.VIP alike.

    Raises:
        InvalidVariantError: If the value names no member of kind_cls.
    """
    if isinstance(value, kind_cls):
        return value
    if isinstance(value, str):
        try:
            return kind_cls(value.strip().lower())
        except ValueError:
            pass
    raise InvalidVariantError(f"Unknown {kind_cls.__name__}: {value!r}")
