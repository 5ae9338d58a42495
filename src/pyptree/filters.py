"""Forest filtering by owner and by command-line substring."""

import logging

from pyptree.models import Owner
from pyptree.tree import Forest

logger = logging.getLogger(__name__)


def _with_ancestors(forest: Forest, pids: set[int]) -> set[int]:
    """Return ``pids`` plus every ancestor needed to reach their roots."""
    keep = set(pids)
    for pid in pids:
        for ancestor in forest.ancestors(pid):
            if ancestor in keep:
                break
            keep.add(ancestor)
    return keep


def filter_by_user(forest: Forest, user: Owner) -> Forest:
    """Keep processes owned by ``user`` and the ancestors connecting them."""
    survivors = {pid for pid, node in forest.nodes.items() if node.owner == user}
    return forest.subset(_with_ancestors(forest, survivors))


def filter_by_name(
    forest: Forest,
    pattern: str,
    source: Forest | None = None,
    owner: Owner | None = None,
) -> Forest:
    """
    Keep processes whose command line contains ``pattern``.

    Matching is case-sensitive substring containment. Every match brings its
    ancestors along, and its whole subtree as found in ``source`` (``forest``
    itself by default), so children of a match show up even when an earlier
    filter dropped them.

    Args:
        forest: The forest to search for matches.
        pattern: Substring to look for.
        source: Forest the matches' descendants are taken from. Must contain
            every node of ``forest``.
        owner: Only processes owned by this user can match. Other nodes of
            ``forest`` are kept as connecting ancestors at most.
    """
    if source is None:
        source = forest

    matches = {
        pid
        for pid, node in forest.nodes.items()
        if pattern in node.command_line and (owner is None or node.owner == owner)
    }
    logger.debug("%d processes match %r", len(matches), pattern)

    keep = _with_ancestors(source, matches)
    for pid in matches:
        keep.update(source.descendants(pid))
    return source.subset(keep)


def filter_forest(forest: Forest, user: Owner | None = None, pattern: str | None = None) -> Forest:
    """
    Apply the user filter, then the name filter.

    Args:
        forest: The complete forest.
        user: Only show this owner's processes. None shows every user.
        pattern: Command-line substring. None or empty disables the filter.
    """
    result = forest
    if user is not None:
        result = filter_by_user(result, user)
    if pattern:
        result = filter_by_name(result, pattern, source=forest, owner=user)
    return result
