from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from library_lending.catalog import Book
from library_lending.exceptions import DuplicateMemberError
from library_lending.kinds import MemberKind, coerce_kind
from library_lending.loans import ZERO, Loan, money

logger = logging.getLogger("library_lending.members")


@dataclass(frozen=True)
class MemberRules:
    """
    Entitlements shared by every member of one kind.

    Attributes:
        loan_days (int): Default loan duration the member is entitled to.
        max_loans (Optional[int]): Concurrent loan limit; None means unbounded.
        fines_waived (bool): Whether overdue fines are forgiven.
        reference_access (bool): Whether reference material may be used.
    """
    loan_days: int
    max_loans: Optional[int]
    fines_waived: bool = False
    reference_access: bool = False


MEMBER_RULES: Dict[MemberKind, MemberRules] = {
    MemberKind.REGULAR: MemberRules(loan_days=14, max_loans=3),
    MemberKind.VIP: MemberRules(loan_days=21, max_loans=5, fines_waived=True),
    MemberKind.EMPLOYEE: MemberRules(loan_days=30, max_loans=None, reference_access=True),
    MemberKind.VISITOR: MemberRules(loan_days=0, max_loans=0),
}


@dataclass
class Member:
    """
    Represents a library patron.

    Attributes:
        kind (MemberKind): Member category.
        member_id (int): Unique member identifier.
        first_name (str): First name.
        last_name (str): Last name.
        _loans (List[Loan]): Active loans in creation order.
    """
    kind: MemberKind
    member_id: int
    first_name: str
    last_name: str
    _loans: List[Loan] = field(default_factory=list, repr=False)

    @property
    def rules(self) -> MemberRules:
        return MEMBER_RULES[self.kind]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def loan_days(self) -> int:
        return self.rules.loan_days

    @property
    def max_loans(self) -> Optional[int]:
        return self.rules.max_loans

    @property
    def loans(self) -> List[Loan]:
        """
        Returns a copy of the active loans.
        """
        return list(self._loans)

    @property
    def active_loan_count(self) -> int:
        return len(self._loans)

    def can_borrow(self, book: Optional[Book] = None) -> bool:
        """
        Returns True while the member is below their concurrent loan limit.

        Visitors never borrow; employees have no limit.
        """
        if self.kind is MemberKind.VISITOR:
            return False
        if self.max_loans is None:
            return True
        return len(self._loans) < self.max_loans

    def can_access_reference(self) -> bool:
        return self.rules.reference_access

    def can_consult_catalog(self) -> bool:
        return True

    def add_loan(self, loan: Loan) -> None:
        self._loans.append(loan)

    def remove_loan(self, loan: Loan) -> None:
        if loan in self._loans:
            self._loans.remove(loan)

    def has_loan_for(self, book: Book) -> Optional[Loan]:
        for loan in self._loans:
            if loan.book == book:
                return loan
        return None

    def overdue_loans(self, now: Optional[datetime] = None) -> List[Loan]:
        if now is None:
            now = datetime.now()
        return [loan for loan in self._loans if loan.is_overdue(now)]

    def has_overdue_loans(self, now: Optional[datetime] = None) -> bool:
        if now is None:
            now = datetime.now()
        return any(loan.is_overdue(now) for loan in self._loans)

    def total_fine_owed(self, now: Optional[datetime] = None) -> Decimal:
        if self.rules.fines_waived:
            return ZERO
        if now is None:
            now = datetime.now()
        return money(sum((loan.compute_fine(now) for loan in self._loans), ZERO))


def create_member(
    kind: Union[MemberKind, str],
    member_id: int,
    first_name: str,
    last_name: str,
) -> Member:
    """
    Builds a member of the requested kind.

    Raises:
        InvalidVariantError: If kind is not a known member kind.
    """
    member_kind = coerce_kind(MemberKind, kind)
    return Member(member_kind, member_id, first_name, last_name)


class MemberRegistry:
    """
    Members keyed by id, in registration order.
    """

    def __init__(self) -> None:
        self._members: Dict[int, Member] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self):
        return iter(list(self._members.values()))

    def add(self, member: Member) -> None:
        """
        Registers a new member.

        Raises:
            DuplicateMemberError: If the member id already exists.
        """
        if member.member_id in self._members:
            raise DuplicateMemberError(
                f"Member already exists: memberId={member.member_id}"
            )
        self._members[member.member_id] = member
        logger.info(
            "Member registered | memberId=%s kind=%s",
            member.member_id,
            member.kind.value,
        )

    def find_by_id(self, member_id: int) -> Optional[Member]:
        return self._members.get(member_id)
