from __future__ import annotations


class RemoteUnavailable(RuntimeError):
    """Raised when the resource directory cannot be reached or answers with a server error."""


class DecodeError(ValueError):
    """Raised when a directory response cannot be parsed into a search bundle."""


class PageOutOfRange(LookupError):
    """Raised when the requested page starts beyond the last matching entity."""

    def __init__(self, page_number: int, size: int, total: int) -> None:
        super().__init__(
            f"No resources were found for page number {page_number} "
            f"(size={size}, total={total})"
        )
        self.page_number = page_number
        self.size = size
        self.total = total


class ResourceNotFound(LookupError):
    """Raised when a single resource read finds nothing."""


class ContractError(ValueError):
    """Raised when request violates documented contract (e.g., unknown search key)."""
