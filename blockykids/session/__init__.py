"""
Session Module - Level sessions and trace replay.

A session represents one learner working through a level pack:
- Created when the learner opens a domain
- Owns the replay scheduler and with it the live world
- Runs programs, checks goals and advances levels
- Removed when ended or after it has been idle too long

Sessions are EPHEMERAL:
- No persistence to database
- Worlds are rebuilt from level documents
"""

from .scheduler import ReplayScheduler, SchedulerState, RejectedStep
from .manager import SessionManager, LevelSession, RunResult, RunStatus, SessionNotFoundError

__all__ = [
    "ReplayScheduler",
    "SchedulerState",
    "RejectedStep",
    "SessionManager",
    "LevelSession",
    "RunResult",
    "RunStatus",
    "SessionNotFoundError",
]
