"""
handlers/vote_handler.py
------------------------
HTTP routes for the voting page.
Delegates all logic to VoteService and maps its results to status codes.

Routes are plain (sync) functions, so FastAPI runs each request in its
worker thread pool and the blocking pool checkout never stalls the event loop.
"""

from html import escape
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from models.vote import Candidate, Failed, Rejected, VoteSummary
from services.vote_service import VoteService, VotingDataUnavailableError
from utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

CAST_FAILED_TEXT = (
    "Unable to successfully cast vote! Please check the application logs for more details."
)
SUMMARY_FAILED_TEXT = (
    "Unable to retrieve voting data. Please check the application logs for more details."
)


def get_vote_service(request: Request) -> VoteService:
    """The VoteService built at startup by the application lifespan."""
    return request.app.state.vote_service


def headline(summary: VoteSummary) -> str:
    if summary.leader is None:
        return "TABS and SPACES are evenly matched!"
    noun = "vote" if summary.margin == 1 else "votes"
    return f"{summary.leader} are winning by {summary.margin} {noun}!"


def render_index(summary: VoteSummary) -> str:
    """Render the summary page."""
    rows = "\n".join(
        f"      <li><strong>{escape(str(v.candidate))}</strong> at {escape(str(v.cast_at))}</li>"
        for v in summary.recent_votes
    ) or "      <li>No votes yet.</li>"
    buttons = "\n".join(
        f'      <button type="submit" name="team" value="{c.value}">{c.value}</button>'
        for c in Candidate
    )
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Tabs VS Spaces</title>
  </head>
  <body>
    <h1>Tabs VS Spaces</h1>
    <h2>{escape(headline(summary))}</h2>
    <p>TABS: <span id="tabs-count">{summary.tabs_count}</span> votes</p>
    <p>SPACES: <span id="spaces-count">{summary.spaces_count}</span> votes</p>
    <p>Total: <span id="total-count">{summary.total}</span> votes</p>
    <form method="post" action="/">
{buttons}
    </form>
    <h3>Recent Votes</h3>
    <ul id="recent-votes">
{rows}
    </ul>
  </body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    """Show vote counts and the five most recent votes."""
    try:
        summary = get_vote_service(request).get_summary()
    except VotingDataUnavailableError:
        return PlainTextResponse(SUMMARY_FAILED_TEXT, status_code=500)
    return HTMLResponse(render_index(summary))


@router.post("/", response_class=PlainTextResponse)
def cast_vote(request: Request, team: Optional[str] = Form(None)):
    """Record a vote for the `team` form field."""
    result = get_vote_service(request).cast_vote(team)

    if isinstance(result, Rejected):
        return PlainTextResponse(result.reason, status_code=400)
    if isinstance(result, Failed):
        return PlainTextResponse(CAST_FAILED_TEXT, status_code=500)
    return PlainTextResponse(
        f"Vote successfully cast for '{result.candidate}' at time {result.cast_at}!"
    )
