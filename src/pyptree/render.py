"""Text rendering of process forests."""

from pyptree.models import ProcessNode
from pyptree.tree import Forest

DEFAULT_WIDTH = 80

TEE = "├─"
ELBOW = "└─"
BAR = "│"
# Per-ancestor indentation, as wide as a connector plus its trailing space
PREFIX_BAR = BAR + "  "
PREFIX_BLANK = "   "

# Control characters and line separators would break the drawing, show them escaped
_CONTROL_ESCAPES = {code: f"\\x{code:02x}" for code in [*range(0x20), *range(0x7F, 0xA0)]}
_CONTROL_ESCAPES.update({ord("\n"): "\\n", ord("\r"): "\\r", ord("\t"): "\\t"})
_CONTROL_ESCAPES.update({0x2028: "\\u2028", 0x2029: "\\u2029"})


def escape_control_chars(text: str) -> str:
    """Replace control characters in ``text`` with printable escapes."""
    return text.translate(_CONTROL_ESCAPES)


def wrap_command_line(text: str, width: int) -> list[str]:
    """
    Greedily pack the words of ``text`` into lines of at most ``width``.

    Words are separated on single spaces and never split, so a word longer
    than ``width`` gets a line to itself. Joining the result with single
    spaces gives back ``text`` unchanged.
    """
    lines: list[str] = []
    current: str | None = None
    for word in text.split(" "):
        if current is None:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
    if current is not None:
        lines.append(current)
    return lines


def _render_node(
    forest: Forest,
    node: ProcessNode,
    prefix: str,
    connector: str,
    child_prefix: str,
    width: int,
    out: list[str],
) -> None:
    """Append the lines for ``node`` and its subtree to ``out``."""
    head = f"{prefix}{connector} " if connector else prefix
    pid = str(node.pid)
    text = escape_control_chars(node.command_line)
    text_column = len(head) + len(pid) + 1

    fragments = wrap_command_line(text, width - text_column)
    first, rest = fragments[0], fragments[1:]
    out.append(f"{head}{pid} {first}" if text else f"{head}{pid}")

    children = forest.children_of(node.pid)
    if rest:
        link = BAR if children else " "
        indent = f"{child_prefix}{link}".ljust(text_column)
        out.extend(f"{indent}{fragment}" for fragment in rest)

    for index, child_pid in enumerate(children):
        last = index == len(children) - 1
        _render_node(
            forest,
            forest.nodes[child_pid],
            prefix=child_prefix,
            connector=ELBOW if last else TEE,
            child_prefix=child_prefix + (PREFIX_BLANK if last else PREFIX_BAR),
            width=width,
            out=out,
        )


def render_forest(forest: Forest, width: int | None = None) -> list[str]:
    """
    Render ``forest`` as box-drawing lines.

    Roots are drawn bare; every other process gets a tee or elbow connector
    depending on whether more siblings follow. Command lines that do not fit
    in ``width`` columns are wrapped, with continuation lines starting under
    the first line's text.
    """
    if width is None:
        width = DEFAULT_WIDTH

    lines: list[str] = []
    for root in forest.roots:
        _render_node(forest, forest.nodes[root], "", "", "", width, lines)
    return lines


def format_forest(forest: Forest, width: int | None = None) -> str:
    """Render ``forest`` to a single string, one newline-terminated line each."""
    return "".join(f"{line}\n" for line in render_forest(forest, width))
