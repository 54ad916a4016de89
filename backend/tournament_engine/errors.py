"""
Error taxonomy for the tournament structure engine.

NotFoundError   - a referenced pool / bracket / game id does not exist
ValidationError - a structural constraint is violated
ConflictError   - a mutation is refused because of existing completed games
"""

from typing import List, Optional


class TournamentError(Exception):
    """Base exception for engine errors"""

    pass


class NotFoundError(TournamentError):
    """Raised when a pool, bracket or game id is unknown"""

    def __init__(self, kind: str, entity_id: object):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class ValidationError(TournamentError):
    """Raised when a structural constraint is violated"""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        self.issues = list(issues) if issues else [message]
        super().__init__(message)

    @classmethod
    def from_issues(cls, issues: List[str]) -> "ValidationError":
        return cls("; ".join(issues), issues)


class ConflictError(TournamentError):
    """Raised when existing completed games forbid a structural change"""

    pass
