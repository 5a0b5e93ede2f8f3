"""Semantic versions and version range constraints."""

from __future__ import annotations

import functools
import re
from collections.abc import Callable
from dataclasses import dataclass

_VERSION_RE = re.compile(
    r"^v?([0-9]+)(\.[0-9]+)?(\.[0-9]+)?"
    r"(?:-([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)
_TERM_RE = re.compile(
    r"^(!=|>=|=>|<=|=<|~>|>|<|~|\^|=)?\s*v?([0-9xX*]+(?:\.[0-9xX*]+){0,2})"
    r"(?:-([0-9A-Za-z\-.]+))?(?:\+([0-9A-Za-z\-.]+))?$"
)
_TOKEN_RE = re.compile(r"(?:[!<>=~^]+\s*)?[^\s,<>=!~^]+")
_HYPHEN_RE = re.compile(r"(\S+)\s+-\s+(\S+)")
_OP_ALIASES = {"=>": ">=", "=<": "<=", "~>": "~", None: "="}


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A semantic version; build metadata does not take part in ordering."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a version such as 1.2.3, v1.2 or 1.2.3-beta.1+build."""
        match = _VERSION_RE.match(text.strip())
        if match is None:
            raise ValueError(f"invalid semantic version: {text!r}")
        major, minor, patch, pre, meta = match.groups()
        return cls(
            int(major),
            int(minor[1:]) if minor else 0,
            int(patch[1:]) if patch else 0,
            pre or "",
            meta or "",
        )

    def _key(self) -> tuple:
        if not self.prerelease:
            pre: tuple = (1,)
        else:
            pre = (
                0,
                tuple(
                    (0, int(part), "") if part.isdigit() else (1, 0, part)
                    for part in self.prerelease.split(".")
                ),
            )
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text


_Predicate = Callable[[Version], bool]


@dataclass(frozen=True)
class _Term:
    predicates: tuple[_Predicate, ...]
    allows_prerelease: bool

    def check(self, version: Version) -> bool:
        if version.prerelease and not self.allows_prerelease:
            return False
        return all(pred(version) for pred in self.predicates)


def _parse_term(token: str) -> _Term:
    match = _TERM_RE.match(token.strip())
    if match is None:
        raise ValueError(f"improper constraint: {token}")
    op = _OP_ALIASES.get(match.group(1), match.group(1))
    pre = match.group(3) or ""
    parts: list[int | None] = [
        None if p in ("x", "X", "*") else int(p) for p in match.group(2).split(".")
    ]
    parts += [None] * (3 - len(parts))
    wild = next((i for i, p in enumerate(parts) if p is None), 3)
    nums = [p if p is not None and i < wild else 0 for i, p in enumerate(parts)]
    major, minor, patch = nums
    base = Version(major, minor, patch, pre if wild == 3 else "")

    def upper(index: int) -> Version:
        if index == 1:
            return Version(major + 1)
        return Version(major, minor + 1)

    def ge(v: Version) -> _Predicate:
        return lambda x: x >= v

    def lt(v: Version) -> _Predicate:
        return lambda x: x < v

    preds: list[_Predicate]
    if op == "=":
        if wild == 3:
            preds = [lambda x: x == base]
        elif wild == 0:
            preds = []
        else:
            preds = [ge(base), lt(upper(wild))]
    elif op == "!=":
        if wild == 3:
            preds = [lambda x: x != base]
        elif wild == 0:
            preds = [lambda x: False]
        else:
            high = upper(wild)
            preds = [lambda x: x < base or x >= high]
    elif op == ">":
        if wild == 3:
            preds = [lambda x: x > base]
        elif wild == 0:
            preds = [lambda x: False]
        else:
            preds = [ge(upper(wild))]
    elif op == ">=":
        preds = [ge(base)]
    elif op == "<":
        preds = [lt(base)]
    elif op == "<=":
        if wild == 3:
            preds = [lambda x: x <= base]
        elif wild == 0:
            preds = []
        else:
            preds = [lt(upper(wild))]
    elif op == "~":
        if wild == 0:
            preds = []
        elif wild == 1:
            preds = [ge(base), lt(Version(major + 1))]
        else:
            preds = [ge(base), lt(Version(major, minor + 1))]
    else:  # "^"
        if wild == 0:
            preds = []
        elif major > 0:
            preds = [ge(base), lt(Version(major + 1))]
        elif wild == 1:
            preds = [ge(base), lt(Version(1))]
        elif minor > 0 or wild == 2:
            preds = [ge(base), lt(Version(0, minor + 1))]
        else:
            preds = [ge(base), lt(Version(0, 0, patch + 1))]
    return _Term(tuple(preds), bool(pre))


@dataclass(frozen=True)
class Constraint:
    """A version range such as ^1.2.3, 2.x, ~1.4 or >=1.0, <2.0 || 3.x."""

    text: str
    _groups: tuple[tuple[_Term, ...], ...]

    @classmethod
    def parse(cls, text: str) -> Constraint:
        """Parse a constraint; raise ValueError when it is not one."""
        groups = []
        for alternative in text.split("||"):
            alternative = _HYPHEN_RE.sub(r">=\1, <=\2", alternative.strip())
            tokens = _TOKEN_RE.findall(alternative)
            leftover = _TOKEN_RE.sub("", alternative).replace(",", "").strip()
            if not tokens or leftover:
                raise ValueError(f"improper constraint: {text}")
            groups.append(tuple(_parse_term(token) for token in tokens))
        return cls(text, tuple(groups))

    def check(self, version: Version | str) -> bool:
        """Return True when *version* satisfies the constraint."""
        if isinstance(version, str):
            version = Version.parse(version)
        return any(all(term.check(version) for term in group) for group in self._groups)

    def __str__(self) -> str:
        return self.text