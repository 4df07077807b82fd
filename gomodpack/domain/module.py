"""
Module domain objects: identity of the module being packaged and the
``.info`` record stored next to each cached version.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ModuleIdentity:
    """Module as reported by ``go list -m -json``."""
    path: str
    dir: str
    go_mod: str
    version: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ModuleIdentity':
        return cls(
            path=data.get('Path', '') or '',
            dir=data.get('Dir', '') or '',
            go_mod=data.get('GoMod', '') or '',
            version=data.get('Version', '') or '',
        )


def format_time(value: datetime) -> str:
    """
    Format a time as RFC 3339 in UTC, the way Go's encoding/json does.

    Fractional seconds are emitted only when non-zero, without trailing zeros.
    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime('%Y-%m-%dT%H:%M:%S')
    if value.microsecond:
        text += ('.%06d' % value.microsecond).rstrip('0')
    return text + 'Z'


def parse_time(text: str) -> datetime:
    """Parse an RFC 3339 time as written by ``format_time``."""
    return datetime.fromisoformat(text.replace('Z', '+00:00')).astimezone(timezone.utc)


@dataclass(frozen=True)
class VersionInfo:
    """
    Module proxy ``.info`` record: ``{"Version": ..., "Time": ...}``.

    Ref: https://go.dev/ref/mod#goproxy-protocol
    """
    version: str
    time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'Version': self.version,
            'Time': format_time(self.time),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'))

    @classmethod
    def from_json(cls, text: str) -> 'VersionInfo':
        data = json.loads(text)
        return cls(version=data['Version'], time=parse_time(data['Time']))


@dataclass(frozen=True)
class PackResult:
    """Outcome of one packaging run."""
    module_path: str
    version: str
    folder: str
    skipped: bool = False
    forced: bool = False
    commit_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'module': self.module_path,
            'version': self.version,
            'folder': self.folder,
            'skipped': self.skipped,
            'forced': self.forced,
            'commit_time': format_time(self.commit_time) if self.commit_time else None,
        }
