class LibraryError(Exception):
    """Base exception for library lending errors."""


class NotFoundError(LibraryError):
    """A requested member, book or search system does not exist."""


class BookNotFoundError(NotFoundError):
    """Requested ISBN does not exist in the catalog."""


class MemberNotFoundError(NotFoundError):
    """Requested member id does not exist in the registry."""


class SearchSystemNotFoundError(NotFoundError):
    """Requested search system is not registered."""


class BookNotBorrowedError(LibraryError):
    """Member holds no active loan for the book."""


class BookUnavailableError(LibraryError):
    """Book is already referenced by an active loan."""


class PolicyDeniedError(LibraryError):
    """Borrow or renewal rejected by a lending rule."""


class NotWithdrawableError(LibraryError):
    """Reference-only item cannot leave the library."""


class InvalidVariantError(LibraryError):
    """Unrecognized member, loan or policy kind."""


class DuplicateBookError(LibraryError):
    """Trying to add a book that already exists."""


class DuplicateMemberError(LibraryError):
    """Trying to register a member that already exists."""
