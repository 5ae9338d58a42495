"""Exceptions raised by pyptree."""


class PtreeError(Exception):
    """Base class for pyptree errors."""


class SnapshotUnavailable(PtreeError):
    """The process table could not be read at all."""


class UsageError(PtreeError):
    """The command line was malformed."""
