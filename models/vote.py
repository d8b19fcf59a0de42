"""
models/vote.py
--------------
Domain models for ballots, the voting summary and the outcome of a cast.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class Candidate(str, Enum):
    """The two options a vote can be cast for."""
    TABS = "TABS"
    SPACES = "SPACES"

    def __str__(self) -> str:
        return self.value


@dataclass
class Vote:
    """
    Represents a single cast ballot.

    Attributes:
        candidate: Who the vote was cast for.
        cast_at: Server-side time of the insert.
        id: Database primary key (None for new records).
    """
    candidate: Candidate
    cast_at: datetime
    id: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.candidate} @ {self.cast_at}"


@dataclass
class VoteSummary:
    """
    Vote counts and the most recent ballots, as shown on the summary page.

    Attributes:
        tabs_count: Number of votes for TABS.
        spaces_count: Number of votes for SPACES.
        recent_votes: Up to five votes, most recent first.
    """
    tabs_count: int
    spaces_count: int
    recent_votes: list[Vote] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.tabs_count + self.spaces_count

    @property
    def leader(self) -> Optional[Candidate]:
        """The candidate with more votes, or None on a tie."""
        if self.tabs_count > self.spaces_count:
            return Candidate.TABS
        if self.spaces_count > self.tabs_count:
            return Candidate.SPACES
        return None

    @property
    def margin(self) -> int:
        return abs(self.tabs_count - self.spaces_count)


# ── Cast outcomes ─────────────────────────────────────────

@dataclass(frozen=True)
class Rejected:
    """The input was not a valid candidate. Nothing was stored; do not retry."""
    reason: str


@dataclass(frozen=True)
class Failed:
    """The input was valid but the insert failed. Nothing was stored; may retry."""
    error: Exception


@dataclass(frozen=True)
class Succeeded:
    """The vote was stored."""
    candidate: Candidate
    cast_at: datetime
    vote_id: Optional[int] = None


CastResult = Union[Rejected, Failed, Succeeded]
