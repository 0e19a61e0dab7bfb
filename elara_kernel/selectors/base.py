"""
Module: elara_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain DTOs.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      call add(), delete(), commit() or flush().
    - DTO return convention: selectors return frozen dataclasses or plain
      values, not ORM instances.
    - Session ownership: the caller owns the session and its transaction, so
      selector reads see the caller's uncommitted changes (autoflush).
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Holds the caller's session for subclass queries."""

    def __init__(self, session: Session):
        self.session = session
