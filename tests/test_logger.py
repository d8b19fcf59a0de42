import logging

from utils.logger import get_logger


def test_get_logger_returns_named_logger():
    assert get_logger("repositories.vote_repo").name == "repositories.vote_repo"


def test_uvicorn_access_log_is_quieted():
    get_logger(__name__)
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
    assert logging.getLogger().handlers
