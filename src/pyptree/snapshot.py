"""Process snapshot collection for pyptree."""

import logging
import os
from dataclasses import dataclass

import psutil

from pyptree.errors import SnapshotUnavailable
from pyptree.models import Owner, ProcessRecord
from pyptree.render import escape_control_chars

logger = logging.getLogger(__name__)

# psutil only implements uids() on POSIX platforms
HAS_UIDS = hasattr(psutil.Process, "uids")


@dataclass(slots=True)
class Snapshot:
    """Every readable process plus the id of the user running pyptree."""

    records: list[ProcessRecord]
    current_user: Owner


def format_command_line(argv: list[str] | None, name: str, status: str = "") -> str:
    """
    Build the displayed command line of a process.

    Arguments containing whitespace are quoted so the line reads like a shell
    command, and control characters are escaped so the result stays on one
    line. Processes without an argv (kernel threads) are shown as ``[name]``
    and zombies are flagged.
    """
    if argv:
        command = " ".join(
            f'"{arg}"' if any(char.isspace() for char in arg) else arg for arg in argv
        )
    else:
        command = f"[{name}]"

    if status == psutil.STATUS_ZOMBIE:
        command = f"[{command}] zombie!"
    return escape_control_chars(command)


def current_user() -> Owner:
    """Return the identifier process owners are compared against."""
    if hasattr(os, "getuid"):
        return os.getuid()
    return psutil.Process().username()


class SnapshotSource:
    """
    Reads the process table once using psutil.

    Processes that exit or deny access while being read are skipped; only a
    failure to enumerate processes at all is fatal.
    """

    def __init__(self) -> None:
        """Initialize the SnapshotSource."""
        self._attrs = ["pid", "ppid", "name", "cmdline", "status"]
        self._attrs.append("uids" if HAS_UIDS else "username")

    def collect(self) -> Snapshot:
        """
        Collect a snapshot of every visible process.

        Raises:
            SnapshotUnavailable: If the process table cannot be enumerated.
        """
        try:
            records = self._collect_records()
            user = current_user()
        except (psutil.Error, OSError) as exc:
            raise SnapshotUnavailable(f"cannot read process table: {exc}") from exc

        if not records:
            raise SnapshotUnavailable("cannot read process table: no processes visible")

        logger.debug("collected %d process records", len(records))
        return Snapshot(records=records, current_user=user)

    def _collect_records(self) -> list[ProcessRecord]:
        """Collect a record for every process psutil can read."""
        records: list[ProcessRecord] = []

        for proc in psutil.process_iter(attrs=self._attrs):
            try:
                with proc.oneshot():
                    info = proc.info
                    name = info.get("name") or ""
                    command_line = format_command_line(
                        info.get("cmdline"), name, info.get("status") or ""
                    )

                    records.append(
                        ProcessRecord(
                            pid=info["pid"],
                            parent_pid=info.get("ppid") or 0,
                            owner=self._owner_of(info),
                            command_line=command_line,
                        )
                    )

            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Process exited mid-read or is unreadable; leave it out
                logger.debug("skipping unreadable process %s", proc.pid)
                continue

        return records

    @staticmethod
    def _owner_of(info: dict) -> Owner:
        """Extract the owner from a process_iter info dict."""
        if HAS_UIDS:
            uids = info.get("uids")
            return uids.real if uids else -1
        return info.get("username") or ""
