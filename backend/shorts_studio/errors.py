"""Error taxonomy shared by the orchestrator, workflow and UI."""

from __future__ import annotations


class StudioError(Exception):
    """Base class for every user-facing studio failure."""


class ConfigError(StudioError):
    """The API credential (or another required setting) is missing."""


class ServiceError(StudioError):
    """The generation endpoint failed; the user may retry the same action."""


class FormatError(ServiceError):
    """The endpoint answered, but not in the shape we asked for."""


class VideoTimeoutError(ServiceError):
    """A video job did not finish before the configured deadline."""


class VideoCancelledError(ServiceError):
    """The caller stopped waiting for a video job."""


class WorkflowStateError(StudioError):
    """An action was requested that the current workflow state does not allow."""
