"""Tests for forest filtering."""

from pyptree.filters import filter_by_name, filter_by_user, filter_forest
from pyptree.models import ProcessRecord
from pyptree.render import format_forest
from pyptree.tree import Forest, build_forest, normalize_records


def forest_of(*rows: tuple[int, int, str, str]) -> Forest:
    records = [ProcessRecord(pid=pid, parent_pid=ppid, owner=owner, command_line=cmd) for pid, ppid, owner, cmd in rows]
    return build_forest(normalize_records(records))


def pids(forest: Forest) -> list[int]:
    return [node.pid for node, _ in forest.walk()]


DESKTOP = forest_of(
    (1, 0, "root", "init"),
    (2, 1, "u1", "systemd --user"),
    (3, 2, "u1", "gnome-shell"),
    (4, 1, "root", "sshd"),
    (5, 3, "u1", "firefox"),
    (6, 5, "u1", "Web Content"),
    (7, 3, "u1", "nautilus"),
    (8, 2, "u1", "pulseaudio"),
    (9, 5, "root", "crashpad_handler"),
    (10, 4, "u2", "sshd: u2@pts/0"),
    (11, 10, "u2", "firefox --headless"),
)


class TestUserFilter:
    """Tests for filter_by_user."""

    def test_drops_other_users(self):
        """Test processes of other users are removed."""
        forest = forest_of(
            (1, 0, "u1", "bash"),
            (2, 1, "u2", "sleep 100"),
            (3, 1, "u1", "top"),
        )
        result = filter_by_user(forest, "u1")

        assert pids(result) == [1, 3]
        assert result.children_of(1) == (3,)

    def test_keeps_ancestors_of_survivors(self):
        """Test foreign ancestors are kept to connect survivors to the root."""
        result = filter_by_user(DESKTOP, "u2")

        assert pids(result) == [1, 4, 10, 11]
        assert result.roots == (1,)

    def test_no_survivors(self):
        """Test an unknown user yields an empty forest."""
        result = filter_by_user(DESKTOP, "nobody")
        assert len(result) == 0
        assert result.roots == ()


class TestNameFilter:
    """Tests for filter_by_name."""

    def test_match_with_ancestors_and_children(self):
        """Test a nested match keeps its ancestor chain and subtree only."""
        result = filter_by_name(DESKTOP, "fire")

        assert pids(result) == [1, 2, 3, 5, 6, 9, 4, 10, 11]
        assert 7 not in result
        assert 8 not in result

    def test_match_pulls_in_other_owners(self):
        """Test descendants of a match are kept whoever owns them."""
        result = filter_by_name(DESKTOP, "gnome-shell")

        assert pids(result) == [1, 2, 3, 5, 6, 9, 7]
        assert result.nodes[9].owner == "root"

    def test_case_sensitive(self):
        """Test matching is case-sensitive."""
        assert len(filter_by_name(DESKTOP, "Firefox")) == 0
        assert 6 in filter_by_name(DESKTOP, "Web")

    def test_not_a_regex(self):
        """Test the pattern is matched literally."""
        assert len(filter_by_name(DESKTOP, "fire.*")) == 0

    def test_no_match_is_empty(self):
        """Test a pattern matching nothing gives an empty forest."""
        result = filter_by_name(DESKTOP, "emacs")

        assert len(result) == 0
        assert format_forest(result, 80) == ""

    def test_idempotent(self):
        """Test filtering a filtered forest again changes nothing."""
        once = filter_by_name(DESKTOP, "fire")
        twice = filter_by_name(once, "fire")

        assert twice == once

    def test_shares_nodes(self):
        """Test the filtered forest does not copy nodes or command lines."""
        result = filter_by_name(DESKTOP, "fire")

        for pid, node in result.nodes.items():
            assert node is DESKTOP.nodes[pid]


class TestFilterForest:
    """Tests for composing filters."""

    def test_no_filters_returns_forest(self):
        """Test the forest is returned untouched when no filter is active."""
        assert filter_forest(DESKTOP) is DESKTOP
        assert filter_forest(DESKTOP, pattern="") is DESKTOP

    def test_user_only(self):
        """Test the user filter alone keeps reconnected ancestors."""
        result = filter_forest(DESKTOP, user="u1")
        assert pids(result) == [1, 2, 3, 5, 6, 7, 8]

    def test_name_only(self):
        """Test all-users mode with a pattern."""
        assert filter_forest(DESKTOP, pattern="fire") == filter_by_name(DESKTOP, "fire")

    def test_user_then_name(self):
        """Test matches are found among the user's processes."""
        result = filter_forest(DESKTOP, user="u1", pattern="fire")

        # u2's firefox is not matched, root's crashpad is pulled in by u1's firefox
        assert pids(result) == [1, 2, 3, 5, 6, 9]

    def test_match_restores_dropped_descendants(self):
        """Test a match brings back children the user filter removed."""
        forest = forest_of(
            (1, 0, "u1", "bash"),
            (2, 1, "u1", "sudo make install"),
            (3, 2, "root", "make install"),
            (4, 3, "root", "cc -c main.c"),
        )
        assert pids(filter_forest(forest, user="u1")) == [1, 2]
        assert pids(filter_forest(forest, user="u1", pattern="sudo")) == [1, 2, 3, 4]

    def test_connecting_ancestor_cannot_match(self):
        """Test a foreign ancestor kept for connectivity does not pull in its subtree."""
        forest = forest_of(
            (1, 0, "root", "/usr/lib/systemd/systemd"),
            (2, 1, "u1", "/usr/lib/systemd/systemd --user"),
            (3, 1, "u2", "secret-u2-job"),
            (4, 3, "u2", "secret-child"),
        )
        result = filter_forest(forest, user="u1", pattern="systemd")

        assert pids(result) == [1, 2]
        assert 3 not in result
        assert 4 not in result

    def test_foreign_only_match_is_empty(self):
        """Test a pattern matching only other users' processes shows nothing."""
        result = filter_forest(DESKTOP, user="u1", pattern="init")
        assert len(result) == 0

    def test_owner_restricts_matches(self):
        """Test filter_by_name only matches nodes of the given owner."""
        assert pids(filter_by_name(DESKTOP, "sshd", owner="u2")) == [1, 4, 10, 11]
        assert len(filter_by_name(DESKTOP, "sshd", owner="u1")) == 0
