"""
services/vote_service.py
------------------------
Business logic for casting votes and summarizing results.
Validates user input and translates database failures into results the
HTTP layer can map to status codes. Nothing psycopg2-specific leaves here.
"""

from datetime import datetime
from typing import Optional

import psycopg2

from models.vote import Candidate, CastResult, Failed, Rejected, Succeeded, Vote, VoteSummary
from repositories.vote_repo import VoteRepository
from utils.logger import get_logger

logger = get_logger(__name__)

INVALID_TEAM_REASON = "Invalid team specified."


class VotingDataUnavailableError(RuntimeError):
    """Raised when the summary cannot be read from the database."""


def normalize_and_validate(raw: Optional[str]) -> Optional[Candidate]:
    """
    Turn raw user input into a Candidate.

    Surrounding whitespace and case are ignored, so " tabs " is TABS.

    Returns:
        The matching Candidate, or None if the input is missing or names
        anything other than TABS or SPACES.
    """
    if raw is None:
        return None
    value = raw.strip().upper()
    if value not in Candidate.__members__:
        return None
    return Candidate(value)


class VoteService:
    """
    Handles the read and write paths of the voting page.

    Workflow (cast):
        1. Validate the raw team name; reject without touching the pool.
        2. Stamp the vote with the current time.
        3. Persist via the repository.
        4. Return Rejected / Failed / Succeeded.
    """

    def __init__(self, repo: VoteRepository):
        self.repo = repo

    def get_summary(self) -> VoteSummary:
        """
        Get vote counts and the five most recent votes.

        Raises:
            VotingDataUnavailableError: If any of the reads fail.
        """
        try:
            return self.repo.get_summary()
        except psycopg2.Error as e:
            logger.error(f"get_summary failed: {e}", exc_info=True)
            raise VotingDataUnavailableError("Unable to retrieve voting data.") from e

    def cast_vote(self, raw_team: Optional[str]) -> CastResult:
        """
        Validate and store a single vote.

        Args:
            raw_team: The team name as submitted by the client.

        Returns:
            Rejected if the input is invalid, Failed if the insert did not
            go through, otherwise Succeeded with the stored candidate and time.
        """
        candidate = normalize_and_validate(raw_team)
        if candidate is None:
            logger.info(f"Rejected vote for {raw_team!r}")
            return Rejected(INVALID_TEAM_REASON)

        now = datetime.now()
        try:
            vote = self.repo.add(Vote(candidate=candidate, cast_at=now))
        except psycopg2.Error as e:
            logger.warning(f"cast_vote failed for {candidate}: {e}", exc_info=True)
            return Failed(e)

        return Succeeded(candidate=vote.candidate, cast_at=vote.cast_at, vote_id=vote.id)
