"""Snapshot normalization and forest construction."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from pyptree.models import ProcessNode, ProcessRecord

logger = logging.getLogger(__name__)


def normalize_records(records: Iterable[ProcessRecord]) -> dict[int, ProcessRecord]:
    """
    Key records by pid.

    The first record seen for a pid wins; later duplicates and records with a
    non-positive pid are dropped. A parent pid missing from the input is kept
    as-is, it simply means the process has no parent in this snapshot.
    """
    normalized: dict[int, ProcessRecord] = {}
    for record in records:
        if record.pid <= 0:
            logger.debug("dropping record with invalid pid %d", record.pid)
            continue
        if record.pid in normalized:
            logger.debug("dropping duplicate record for pid %d", record.pid)
            continue
        normalized[record.pid] = record
    return normalized


@dataclass(slots=True)
class Forest:
    """
    An ordered collection of process trees.

    Nodes live in a single pid-keyed arena. Parent to child links are held in
    ``children`` and both child tuples and ``roots`` are sorted by pid.
    """

    nodes: dict[int, ProcessNode] = field(default_factory=dict)
    children: dict[int, tuple[int, ...]] = field(default_factory=dict)
    roots: tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, pid: object) -> bool:
        return pid in self.nodes

    def children_of(self, pid: int) -> tuple[int, ...]:
        """Return the pids of the children of ``pid`` in this forest."""
        return self.children.get(pid, ())

    def parent_of(self, pid: int) -> int | None:
        """Return the parent of ``pid`` if that parent is part of this forest."""
        parent_pid = self.nodes[pid].parent_pid
        return parent_pid if parent_pid in self.nodes else None

    def ancestors(self, pid: int) -> Iterator[int]:
        """Yield the ancestors of ``pid``, nearest first."""
        parent_pid = self.parent_of(pid)
        while parent_pid is not None:
            yield parent_pid
            parent_pid = self.parent_of(parent_pid)

    def descendants(self, pid: int) -> Iterator[int]:
        """Yield every descendant of ``pid`` in pre-order."""
        stack = list(reversed(self.children_of(pid)))
        while stack:
            child = stack.pop()
            yield child
            stack.extend(reversed(self.children_of(child)))

    def walk(self) -> Iterator[tuple[ProcessNode, int]]:
        """Yield ``(node, depth)`` pairs depth-first, pre-order, by pid."""
        stack = [(pid, 0) for pid in reversed(self.roots)]
        while stack:
            pid, depth = stack.pop()
            yield self.nodes[pid], depth
            stack.extend((child, depth + 1) for child in reversed(self.children_of(pid)))

    def subset(self, keep: set[int]) -> "Forest":
        """
        Derive a forest holding only the pids in ``keep``.

        Nodes are shared with this forest; only the index is rebuilt. Every
        kept pid must have its parent chain kept as well, otherwise it is
        promoted to a root.
        """
        children = {
            pid: tuple(child for child in kids if child in keep)
            for pid, kids in self.children.items()
            if pid in keep
        }
        roots = tuple(
            pid
            for pid in sorted(keep)
            if pid in self.nodes and self.parent_of(pid) not in keep
        )
        return Forest(
            nodes={pid: self.nodes[pid] for pid in keep if pid in self.nodes},
            children={pid: kids for pid, kids in children.items() if kids},
            roots=roots,
        )


def _cycle_members(records: dict[int, ProcessRecord]) -> set[int]:
    """
    Find every pid whose parent chain loops back to itself.

    Each pid is walked at most once: a walk stops at a pid settled by an
    earlier walk, so the whole pass is linear in the number of records.
    """
    cyclic: set[int] = set()
    settled: set[int] = set()
    for start in records:
        path: list[int] = []
        on_path: set[int] = set()
        pid = start
        while pid in records and pid not in settled and pid not in on_path:
            path.append(pid)
            on_path.add(pid)
            pid = records[pid].parent_pid
        if pid in on_path:
            # Only the loop itself, not the chain leading into it
            cyclic.update(path[path.index(pid):])
        settled.update(path)
    return cyclic


def build_forest(records: dict[int, ProcessRecord]) -> Forest:
    """
    Link normalized records into a forest.

    A record becomes a root when its parent is absent, when it names itself as
    its parent, or when its parent chain loops back to it.
    """
    nodes: dict[int, ProcessNode] = {}
    children: defaultdict[int, list[int]] = defaultdict(list)
    roots: list[int] = []
    cyclic = _cycle_members(records)

    for pid, record in records.items():
        parent_pid: int | None = record.parent_pid
        if parent_pid not in records or parent_pid == pid:
            parent_pid = None
        elif pid in cyclic:
            logger.debug("pid %d is part of a parent cycle, treating as root", pid)
            parent_pid = None

        nodes[pid] = ProcessNode.from_record(record, parent_pid)
        if parent_pid is None:
            roots.append(pid)
        else:
            children[parent_pid].append(pid)

    return Forest(
        nodes=nodes,
        children={pid: tuple(sorted(kids)) for pid, kids in children.items()},
        roots=tuple(sorted(roots)),
    )
