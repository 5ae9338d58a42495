"""Data models for pyptree."""

from dataclasses import dataclass

Owner = int | str


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable record of a single process as reported by the OS."""

    pid: int
    parent_pid: int  # May name a pid missing from the snapshot
    owner: Owner  # Real uid on POSIX, user name elsewhere
    command_line: str


@dataclass(slots=True, frozen=True)
class ProcessNode:
    """
    A process placed in a forest.

    Children are not stored on the node: the owning Forest keeps them in its
    index so that filtered forests can share nodes with the forest they were
    derived from. ``parent_pid`` is a lookup key into that forest, or None for
    a root.
    """

    pid: int
    owner: Owner
    command_line: str
    parent_pid: int | None = None

    @classmethod
    def from_record(cls, record: ProcessRecord, parent_pid: int | None) -> "ProcessNode":
        """Create a node for ``record`` linked under ``parent_pid``."""
        return cls(
            pid=record.pid,
            owner=record.owner,
            command_line=record.command_line,
            parent_pid=parent_pid,
        )
