"""Service layer for business logic."""

from fragments.services.fragment_service import FragmentService

__all__ = [
    "FragmentService",
]
