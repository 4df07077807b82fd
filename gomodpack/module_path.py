"""
Module path and version escaping for the on-disk cache layout.

Module paths and versions may contain uppercase letters, but the cache must
work on case-insensitive filesystems. Each uppercase letter is therefore
written as ``!`` followed by its lowercase form (``Foo/Bar`` -> ``!foo/!bar``).
The mapping is reversible with ``unescape_path``/``unescape_version``.
"""

import re

from .errors import ModuleZipError

# Characters allowed in a module path element (besides ASCII letters and digits)
_PATH_PUNCT = set("-._~")
# File paths inside a module may use a wider set, plus non-ASCII letters
_FILE_PUNCT = set("-._~!#$%&()+,=@[]^{} ")

_WINDOWS_RESERVED = re.compile(r'^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\..*)?$', re.IGNORECASE)


def _check_elem(elem: str, what: str, file_path: bool = False) -> None:
    if elem == "":
        raise ModuleZipError(f"malformed {what}: empty path element")
    if elem in (".", ".."):
        raise ModuleZipError(f"malformed {what}: invalid path element {elem!r}")
    if not file_path and elem.startswith("."):
        raise ModuleZipError(f"malformed {what}: leading dot in path element {elem!r}")
    if elem.endswith("."):
        raise ModuleZipError(f"malformed {what}: trailing dot in path element {elem!r}")

    allowed = _FILE_PUNCT if file_path else _PATH_PUNCT
    for ch in elem:
        if ch.isascii():
            if ch.isalnum() or ch in allowed:
                continue
        elif file_path and ch.isalpha():
            # Any Unicode letter is fine in a file name, module paths stay ASCII
            continue
        raise ModuleZipError(f"malformed {what}: invalid char {ch!r} in {elem!r}")

    if _WINDOWS_RESERVED.match(elem):
        raise ModuleZipError(f"malformed {what}: {elem!r} is a reserved file name")


def check_path(module_path: str) -> None:
    """
    Validate a module path.

    Raises:
        ModuleZipError: if the path is empty, absolute, or has a bad element
    """
    if not module_path:
        raise ModuleZipError("malformed module path: empty string")
    if module_path.startswith("/") or module_path.endswith("/"):
        raise ModuleZipError(f"malformed module path {module_path!r}: leading or trailing slash")
    for elem in module_path.split("/"):
        _check_elem(elem, f"module path {module_path!r}")


def check_file_path(file_path: str) -> None:
    """
    Validate a slash-separated file path relative to the module root.

    Raises:
        ModuleZipError: on absolute paths, backslashes, ``..`` or bad characters
    """
    if not file_path:
        raise ModuleZipError("malformed file path: empty string")
    if file_path.startswith("/") or "\\" in file_path:
        raise ModuleZipError(f"malformed file path {file_path!r}")
    for elem in file_path.split("/"):
        _check_elem(elem, f"file path {file_path!r}", file_path=True)


def _escape(text: str) -> str:
    out = []
    for ch in text:
        if "A" <= ch <= "Z":
            out.append("!" + ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def _unescape(text: str, what: str) -> str:
    out = []
    bang = False
    for ch in text:
        if bang:
            if not ("a" <= ch <= "z"):
                raise ModuleZipError(f"invalid escaped {what} {text!r}")
            out.append(ch.upper())
            bang = False
        elif ch == "!":
            bang = True
        elif "A" <= ch <= "Z":
            raise ModuleZipError(f"invalid escaped {what} {text!r}: uppercase letter")
        else:
            out.append(ch)
    if bang:
        raise ModuleZipError(f"invalid escaped {what} {text!r}: trailing '!'")
    return "".join(out)


def escape_path(module_path: str) -> str:
    """Escape a module path for use as a directory path."""
    check_path(module_path)
    return _escape(module_path)


def escape_version(version: str) -> str:
    """Escape a version for use as a file name."""
    if not version:
        raise ModuleZipError("malformed version: empty string")
    if "!" in version or "/" in version:
        raise ModuleZipError(f"malformed version {version!r}")
    _check_elem(version, f"version {version!r}", file_path=True)
    return _escape(version)


def unescape_path(escaped: str) -> str:
    """Reverse ``escape_path``."""
    module_path = _unescape(escaped, "module path")
    check_path(module_path)
    return module_path


def unescape_version(escaped: str) -> str:
    """Reverse ``escape_version``."""
    return _unescape(escaped, "version")
