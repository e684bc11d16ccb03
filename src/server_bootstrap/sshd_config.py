"""Line-preserving model of an OpenSSH daemon configuration file."""

import re
from enum import Enum
from typing import List, NamedTuple, Optional

DIRECTIVE_PATTERN = re.compile(
    r"^(?P<indent>\s*)(?P<comment>#?)(?P<key>[A-Za-z][A-Za-z0-9]*)(?:\s*=\s*|\s+)(?P<value>\S.*?)\s*$"
)


class EditAction(str, Enum):
    """What happened to a directive during an upsert."""

    UNCHANGED = "unchanged"
    UPDATED = "updated"
    REPLACED_DEFAULT = "replaced_default"
    APPENDED = "appended"


class Directive(NamedTuple):
    """A keyword/value pair parsed from one configuration line."""

    key: str
    value: str
    commented: bool


def parse_line(line: str) -> Optional[Directive]:
    """Parse a single line into a directive.

    Commented lines only count as directives when the keyword follows the
    ``#`` directly, the way OpenSSH ships its defaults (``#Port 22``).
    Prose comments such as ``# Authentication:`` are not directives.
    """
    match = DIRECTIVE_PATTERN.match(line)
    if not match:
        return None
    return Directive(
        key=match.group("key"),
        value=match.group("value"),
        commented=bool(match.group("comment")),
    )


def _is_match_all(criteria: str) -> bool:
    return criteria.split("#", 1)[0].strip().lower() == "all"


class SshdConfig:
    """Ordered view of ``sshd_config`` that supports directive upserts.

    Every line is kept as-is unless a directive is set, so comments and
    unrelated settings survive a round trip. Directives are only edited in
    global scope: conditional ``Match`` blocks keep whatever the operator
    put there.
    """

    def __init__(self, lines: List[str]) -> None:
        self.lines = lines

    @classmethod
    def parse(cls, text: str) -> "SshdConfig":
        return cls(text.splitlines())

    def render(self) -> str:
        return "\n".join(self.lines) + "\n" if self.lines else ""

    def _global_lines(self) -> List[int]:
        """Indices of lines that apply to every connection.

        ``Match all`` ends the preceding conditional block and returns to
        global scope, the way OpenSSH documents it.
        """
        indices: List[int] = []
        in_global = True
        for index, line in enumerate(self.lines):
            directive = parse_line(line)
            if directive and not directive.commented and directive.key.lower() == "match":
                in_global = _is_match_all(directive.value)
            elif in_global:
                indices.append(index)
        return indices

    def _insert_index(self) -> int:
        for index, line in enumerate(self.lines):
            directive = parse_line(line)
            if (
                directive
                and not directive.commented
                and directive.key.lower() == "match"
                and not _is_match_all(directive.value)
            ):
                return index
        return len(self.lines)

    def _find(self, key: str, commented: bool) -> List[int]:
        wanted = key.lower()
        found: List[int] = []
        for index in self._global_lines():
            directive = parse_line(self.lines[index])
            if (
                directive
                and directive.commented == commented
                and directive.key.lower() == wanted
            ):
                found.append(index)
        return found

    def get(self, key: str) -> Optional[str]:
        """Return the effective global value of ``key``, if set.

        sshd uses the first value it reads, so later duplicates are ignored.
        """
        positions = self._find(key, commented=False)
        if not positions:
            return None
        directive = parse_line(self.lines[positions[0]])
        return directive.value if directive else None

    def count(self, key: str) -> int:
        """Number of active global lines for ``key``."""
        return len(self._find(key, commented=False))

    def set(self, key: str, value: str) -> EditAction:
        """Make ``key value`` the single active global setting for ``key``.

        The first active line is rewritten and any other active duplicates
        are dropped. Without an active line, the first commented default is
        uncommented in place; failing that, the line goes at the end of the
        global section, ahead of any conditional ``Match`` block.
        """
        new_line = f"{key} {value}"

        active = self._find(key, commented=False)
        if active:
            first, duplicates = active[0], active[1:]
            changed = self.lines[first] != new_line or bool(duplicates)
            self.lines[first] = new_line
            for index in reversed(duplicates):
                del self.lines[index]
            return EditAction.UPDATED if changed else EditAction.UNCHANGED

        defaults = self._find(key, commented=True)
        if defaults:
            self.lines[defaults[0]] = new_line
            return EditAction.REPLACED_DEFAULT

        self.lines.insert(self._insert_index(), new_line)
        return EditAction.APPENDED
