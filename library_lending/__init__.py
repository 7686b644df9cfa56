"""Library lending core: loans, members, lending policies and search."""

from library_lending.catalog import Book, Catalog
from library_lending.kinds import LoanKind, MemberKind, PolicyKind
from library_lending.library_system import Library
from library_lending.loans import Loan, create_loan
from library_lending.members import Member, MemberRegistry, create_member
from library_lending.policies import LendingPolicy, create_policy

__all__ = [
    "Book",
    "Catalog",
    "Library",
    "LendingPolicy",
    "Loan",
    "LoanKind",
    "Member",
    "MemberKind",
    "MemberRegistry",
    "PolicyKind",
    "create_loan",
    "create_member",
    "create_policy",
]
