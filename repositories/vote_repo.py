"""
repositories/vote_repo.py
-------------------------
Data access layer for ballots.
All SQL queries related to the `votes` table live here.
"""

from db.connection import ConnectionPool
from models.vote import Candidate, Vote, VoteSummary
from utils.logger import get_logger

logger = get_logger(__name__)

INSERT_VOTE_SQL = "INSERT INTO votes (time_cast, candidate) VALUES (%s, %s) RETURNING vote_id;"
RECENT_VOTES_SQL = "SELECT candidate, time_cast FROM votes ORDER BY time_cast DESC LIMIT %s;"
COUNT_VOTES_SQL = "SELECT COUNT(vote_id) FROM votes WHERE candidate = %s;"

RECENT_LIMIT = 5


class VoteRepository:
    """Repository for the votes table. Every method holds one pooled connection."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    # ── CREATE ────────────────────────────────────────────

    def add(self, vote: Vote) -> Vote:
        """
        Insert a ballot in its own transaction.

        Args:
            vote: The Vote to persist; `cast_at` is stored as given.

        Returns:
            The same Vote with its `id` populated.
        """
        with self.pool.connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(INSERT_VOTE_SQL, (vote.cast_at, vote.candidate.value))
                    vote.id = cur.fetchone()[0]
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        logger.info(f"Recorded vote #{vote.id} for {vote.candidate}")
        return vote

    # ── READ ──────────────────────────────────────────────

    def get_summary(self, limit: int = RECENT_LIMIT) -> VoteSummary:
        """
        Fetch the most recent ballots and the per-candidate counts over a
        single connection. The three reads are not one snapshot.

        Args:
            limit: How many recent votes to return.

        Returns:
            A VoteSummary with `recent_votes` ordered most recent first.
        """
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(RECENT_VOTES_SQL, (limit,))
                recent = [self._row_to_vote(r) for r in cur.fetchall()]

                counts = {}
                for candidate in Candidate:
                    cur.execute(COUNT_VOTES_SQL, (candidate.value,))
                    row = cur.fetchone()
                    counts[candidate] = int(row[0]) if row else 0

        return VoteSummary(
            tabs_count=counts[Candidate.TABS],
            spaces_count=counts[Candidate.SPACES],
            recent_votes=recent,
        )

    @staticmethod
    def _row_to_vote(row) -> Vote:
        """Convert a (candidate, time_cast) row into a Vote. CHAR(6) pads with spaces."""
        return Vote(candidate=Candidate(row[0].strip()), cast_at=row[1])
