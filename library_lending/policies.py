"""
Lending policies.

A policy decides, independently of member and loan kinds:
    (1) whether a member may borrow at all
    (2) how long a loan lasts, given the member's base duration
    (3) whether an existing loan may be renewed

Each policy kind maps to a PolicyRules row of plain functions; LendingPolicy
is the stateless handle the library holds and swaps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, FrozenSet, Optional, Union

from library_lending.catalog import Book
from library_lending.kinds import PolicyKind, coerce_kind
from library_lending.loans import Loan
from library_lending.members import Member

FLEXIBLE_RENEWAL_GRACE_DAYS = 7
# June, July, December
EXAM_MONTHS: FrozenSet[int] = frozenset({6, 7, 12})
EXTENDED_DURATION_DAYS = 60
MAX_RENEWALS = 5


# Strict: no lending while anything is overdue
def _strict_can_borrow(member: Member, book: Book, now: datetime) -> bool:
    return not member.has_overdue_loans(now)


def _strict_duration(member: Member, base_days: int, now: datetime) -> int:
    return base_days


def _strict_allows_renewal(member: Member, loan: Loan, now: datetime) -> bool:
    return not member.has_overdue_loans(now) and not loan.is_overdue(now)


# Flexible: always lends, shortens loans for members with overdue items
def _always(member: Member, book: Book, now: datetime) -> bool:
    return True


def _flexible_duration(member: Member, base_days: int, now: datetime) -> int:
    if member.has_overdue_loans(now):
        return base_days // 2
    return base_days


def _flexible_allows_renewal(member: Member, loan: Loan, now: datetime) -> bool:
    return loan.days_overdue(now) <= FLEXIBLE_RENEWAL_GRACE_DAYS


# Student: doubled loans and free renewals during exams
def _student_duration(member: Member, base_days: int, now: datetime) -> int:
    if now.month in EXAM_MONTHS:
        return base_days * 2
    return base_days


def _student_allows_renewal(member: Member, loan: Loan, now: datetime) -> bool:
    if now.month in EXAM_MONTHS:
        return True
    return not loan.is_overdue(now)


# Faculty: long fixed loans, several renewals
def _faculty_duration(member: Member, base_days: int, now: datetime) -> int:
    return EXTENDED_DURATION_DAYS


def _count_renewals(loan: Loan) -> int:
    # Renewals are not recorded anywhere yet, so every loan reports none.
    return 0


def _faculty_allows_renewal(member: Member, loan: Loan, now: datetime) -> bool:
    return _count_renewals(loan) < MAX_RENEWALS


@dataclass(frozen=True)
class PolicyRules:
    can_borrow: Callable[[Member, Book, datetime], bool]
    compute_duration: Callable[[Member, int, datetime], int]
    allows_renewal: Callable[[Member, Loan, datetime], bool]


POLICY_RULES: Dict[PolicyKind, PolicyRules] = {
    PolicyKind.STRICT: PolicyRules(
        _strict_can_borrow, _strict_duration, _strict_allows_renewal
    ),
    PolicyKind.FLEXIBLE: PolicyRules(
        _always, _flexible_duration, _flexible_allows_renewal
    ),
    PolicyKind.STUDENT: PolicyRules(
        _always, _student_duration, _student_allows_renewal
    ),
    PolicyKind.FACULTY: PolicyRules(
        _always, _faculty_duration, _faculty_allows_renewal
    ),
}


@dataclass(frozen=True)
class LendingPolicy:
    """
    Stateless lending strategy.

    Attributes:
        kind (PolicyKind): Which rule set this policy applies.
    """
    kind: PolicyKind

    @property
    def rules(self) -> PolicyRules:
        return POLICY_RULES[self.kind]

    def can_borrow(
        self, member: Member, book: Book, now: Optional[datetime] = None
    ) -> bool:
        if now is None:
            now = datetime.now()
        return self.rules.can_borrow(member, book, now)

    def compute_duration(
        self, member: Member, base_days: int, now: Optional[datetime] = None
    ) -> int:
        if now is None:
            now = datetime.now()
        return self.rules.compute_duration(member, base_days, now)

    def allows_renewal(
        self, member: Member, loan: Loan, now: Optional[datetime] = None
    ) -> bool:
        if now is None:
            now = datetime.now()
        return self.rules.allows_renewal(member, loan, now)


def create_policy(kind: Union[PolicyKind, str]) -> LendingPolicy:
    """
    Builds the policy of the requested kind.

    Raises:
        InvalidVariantError: If kind is not a known policy kind.
    """
    return LendingPolicy(coerce_kind(PolicyKind, kind))
