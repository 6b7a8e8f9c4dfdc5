"""Background workers."""

from moodring.application.workers.activity_poller import (
    ActivityPoller,
    PollerState,
    PollHandle,
)

__all__ = ["ActivityPoller", "PollHandle", "PollerState"]
