"""Database layer."""

from .models import CYCLE_TABLE, SCHEMA, TALLY_TABLE, USER_VOTE_TABLE
from .repository import CycleRecord, Repository, TallyRecord, UserVoteRecord

__all__ = [
    "SCHEMA",
    "TALLY_TABLE",
    "USER_VOTE_TABLE",
    "CYCLE_TABLE",
    "Repository",
    "TallyRecord",
    "UserVoteRecord",
    "CycleRecord",
]
