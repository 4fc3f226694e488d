"""Domain services for business logic.

Services implement logic that doesn't naturally fit within a single
entity: identity allocation and write serialization.
"""

from tabstore.domain.services.identity_allocator import IdentityAllocator
from tabstore.domain.services.lock_manager import LockManager

__all__ = [
    "IdentityAllocator",
    "LockManager",
]
