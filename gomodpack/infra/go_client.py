"""
Go toolchain client for gomodpack.

Wraps the two ``go`` invocations the packager needs: listing the current
module (``go list -m -json``) and reading environment paths (``go env -json``).
"""

import json
import shutil
import subprocess
from typing import Any, Dict, List, Optional
import logging

from ..domain import ModuleIdentity
from ..errors import ModuleIdentityError, ProcessFailureError

logger = logging.getLogger(__name__)


def decode_json_stream(text: str) -> List[Dict[str, Any]]:
    """Decode a sequence of concatenated JSON objects, as printed by ``go list -json``."""
    decoder = json.JSONDecoder()
    objects = []
    idx = 0
    length = len(text)
    while True:
        while idx < length and text[idx].isspace():
            idx += 1
        if idx >= length:
            break
        obj, idx = decoder.raw_decode(text, idx)
        objects.append(obj)
    return objects


class GoClient:
    """
    Abstraction over the ``go`` command.

    Example:
        client = GoClient()
        module = client.list_module()
        print(module.path, module.dir)
    """

    def __init__(self, executable: str = "go", timeout: Optional[float] = None):
        self.executable = executable
        self.timeout = timeout

    def _output(self, args: List[str], cwd: Optional[str] = None) -> str:
        go_path = shutil.which(self.executable)
        if not go_path:
            raise ProcessFailureError(f"cannot find {self.executable} executable")
        logger.debug(f"Running go {' '.join(args)}")
        try:
            result = subprocess.run(
                [go_path] + args,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise ProcessFailureError(f"go command failed: go {' '.join(args)}: {e}", path=cwd) from e
        if result.returncode != 0:
            raise ProcessFailureError(
                f"go {args[0]} exited with status {result.returncode}",
                path=cwd, detail=(result.stderr or "").strip()
            )
        return result.stdout or ""

    def list_modules(self, cwd: Optional[str] = None) -> List[ModuleIdentity]:
        """List modules of the main module set (``go list -m -json``)."""
        output = self._output(['list', '-m', '-json'], cwd=cwd)
        try:
            return [ModuleIdentity.from_dict(obj) for obj in decode_json_stream(output)]
        except ValueError as e:
            raise ProcessFailureError(f"cannot parse go list output: {e}", path=cwd) from e

    def list_module(self, cwd: Optional[str] = None) -> ModuleIdentity:
        """
        Get the module to package.

        When several modules are listed (workspace mode) only the first is
        used and the rest are logged.

        Raises:
            ModuleIdentityError: if nothing is listed or a field is empty
        """
        modules = self.list_modules(cwd=cwd)
        if not modules:
            raise ModuleIdentityError("empty module list", path=cwd)
        if len(modules) > 1:
            logger.warning("got multiple module information. only 1st one will be packed.")
            for idx, mod in enumerate(modules):
                marker = "* " if idx == 0 else "- "
                logger.warning(f"{marker}{mod.path}@{mod.version}")

        module = modules[0]
        if not module.path:
            raise ModuleIdentityError("empty module path", path=cwd)
        if not module.dir:
            raise ModuleIdentityError("empty module folder path", path=cwd)
        if not module.go_mod:
            raise ModuleIdentityError("empty module definition path", path=cwd)
        return module

    def env(self, *names: str) -> Dict[str, str]:
        """Read go environment variables (``go env -json NAME...``)."""
        output = self._output(['env', '-json'] + list(names))
        try:
            data = json.loads(output or "{}")
        except ValueError as e:
            raise ProcessFailureError(f"cannot parse go env output: {e}") from e
        return {k: str(v) for k, v in data.items()}
