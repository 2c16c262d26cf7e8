from .alignment import AlignmentSession, LoadedAlignment, PollJob, build_record
from .client import AlignmentApiClient, ApiError, MissingApiKeyError
from .lyrics import LyricLine, LyricsDocument, LyricWord
from .poller import PollState, PollTimeoutError, TaskFailedError, TaskPoller, poll_task

__all__ = [
    "AlignmentSession",
    "LoadedAlignment",
    "PollJob",
    "build_record",
    "AlignmentApiClient",
    "ApiError",
    "MissingApiKeyError",
    "LyricLine",
    "LyricsDocument",
    "LyricWord",
    "PollState",
    "PollTimeoutError",
    "TaskFailedError",
    "TaskPoller",
    "poll_task",
]
