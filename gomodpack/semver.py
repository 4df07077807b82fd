"""
Semantic version parsing and ordering for Go module versions.

Go module versions are semver strings with a mandatory leading ``v``
(``v1.2.3``, ``v1.2.3-pre.1+build``). The shorthands ``v1`` and ``v1.2``
are accepted and treated as ``v1.0.0`` and ``v1.2.0``. Ordering follows
semver precedence: build metadata is ignored, and an invalid version sorts
before every valid one.
"""

import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple

_NUM = r'(?:0|[1-9][0-9]*)'
_IDENT = r'[0-9A-Za-z-]+'
_SEMVER_RE = re.compile(
    rf'^v(?P<major>{_NUM})'
    rf'(?:\.(?P<minor>{_NUM})'
    rf'(?:\.(?P<patch>{_NUM})'
    rf'(?:-(?P<prerelease>{_IDENT}(?:\.{_IDENT})*))?'
    rf'(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?'
    r')?)?$'
)

PSEUDO_VERSION_RE = re.compile(r'^v0\.0\.0-(?P<timestamp>[0-9]{14})-(?P<revision>[0-9a-f]{12})$')


@dataclass(frozen=True)
class SemVer:
    """Parsed semantic version."""
    major: str
    minor: str
    patch: str
    prerelease: Tuple[str, ...] = ()
    build: str = ""

    @property
    def canonical(self) -> str:
        """Version without build metadata, shorthands expanded."""
        text = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text


def parse(version: str) -> Optional[SemVer]:
    """
    Parse a ``v``-prefixed semantic version.

    Returns:
        SemVer, or None if the string is not a valid version
    """
    if not version:
        return None
    match = _SEMVER_RE.match(version)
    if not match:
        return None

    prerelease = ()
    if match.group('prerelease'):
        prerelease = tuple(match.group('prerelease').split('.'))
        for ident in prerelease:
            # Numeric identifiers must not have leading zeros
            if ident.isdigit() and len(ident) > 1 and ident[0] == '0':
                return None

    return SemVer(
        major=match.group('major'),
        minor=match.group('minor') or "0",
        patch=match.group('patch') or "0",
        prerelease=prerelease,
        build=match.group('build') or "",
    )


def is_valid(version: str) -> bool:
    """Check whether ``version`` is a valid semantic version."""
    return parse(version) is not None


def is_pseudo_version(version: str) -> bool:
    """Check whether ``version`` has the ``v0.0.0-<timestamp>-<hash>`` shape."""
    return bool(PSEUDO_VERSION_RE.match(version or ""))


def _compare_int(a: str, b: str) -> int:
    # Decimal strings without leading zeros compare by length first
    if len(a) != len(b):
        return -1 if len(a) < len(b) else 1
    if a == b:
        return 0
    return -1 if a < b else 1


def _compare_prerelease(a: Tuple[str, ...], b: Tuple[str, ...]) -> int:
    if a == b:
        return 0
    # A version without prerelease has higher precedence
    if not a:
        return 1
    if not b:
        return -1

    for x, y in zip(a, b):
        if x == y:
            continue
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            return _compare_int(x, y)
        if x_num != y_num:
            return -1 if x_num else 1
        return -1 if x < y else 1

    return -1 if len(a) < len(b) else 1


def compare(v: str, w: str) -> int:
    """
    Compare two versions by semver precedence.

    Returns:
        -1, 0 or +1. Invalid versions are equal to each other and less
        than any valid version.
    """
    pv, pw = parse(v), parse(w)
    if pv is None and pw is None:
        return 0
    if pv is None:
        return -1
    if pw is None:
        return 1

    for a, b in ((pv.major, pw.major), (pv.minor, pw.minor), (pv.patch, pw.patch)):
        result = _compare_int(a, b)
        if result:
            return result
    return _compare_prerelease(pv.prerelease, pw.prerelease)


def max_version(versions: Iterable[str]) -> Optional[str]:
    """Return the greatest version, or None for an empty input."""
    best = None
    for version in versions:
        if best is None or _sort_cmp(version, best) > 0:
            best = version
    return best


def _sort_cmp(v: str, w: str) -> int:
    result = compare(v, w)
    if result:
        return result
    # Equal precedence (build metadata, invalid strings): plain string order
    if v == w:
        return 0
    return -1 if v < w else 1


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort versions ascending by semver precedence."""
    return sorted(versions, key=cmp_to_key(_sort_cmp))


def is_canonical(version: str) -> bool:
    """
    Check whether ``version`` is in canonical form: full ``vX.Y.Z``, no build
    metadata except ``+incompatible``.
    """
    parsed = parse(version)
    if parsed is None:
        return False
    expected = parsed.canonical
    if parsed.build == "incompatible":
        expected += "+incompatible"
    return version == expected
