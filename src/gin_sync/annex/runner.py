"""
Thin wrapper around the git-annex command line tool.

Every method runs one command in the repository directory and returns its
combined output, raising AnnexCommandError on any failure (non-zero exit,
missing executable, timeout).
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import AnnexCommandError
from ..utils.git_runner import run_git_command

logger = logging.getLogger(__name__)

MEGABYTE = 1000 * 1000
ANNEX_VERSION = "7"
DEFAULT_BACKEND = "MD5"


class AnnexRunner:
    """Runs git-annex (and related git config) commands for one repository at a time."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def run(self, path: Union[str, Path], args: List[str]) -> str:
        cmd = ["git"] + list(args)
        command = " ".join(cmd)
        logger.debug(f"Running '{command}' in '{path}'")

        try:
            result = run_git_command(cmd, cwd=Path(path), check=False, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise AnnexCommandError(f"'{command}' timed out", str(e))
        except OSError as e:
            # Missing git executable or missing repository directory
            raise AnnexCommandError(f"'{command}' could not be started", str(e))

        output = "\n".join(
            part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
        )
        if result.returncode != 0:
            raise AnnexCommandError(
                f"'{command}' failed",
                output or f"exit status {result.returncode}",
                returncode=result.returncode,
                output=output,
            )
        return output

    def init(self, path: Union[str, Path], version: str = ANNEX_VERSION) -> str:
        return self.run(path, ["annex", "init", f"--version={version}"])

    def upgrade(self, path: Union[str, Path]) -> str:
        return self.run(path, ["annex", "upgrade"])

    def set_add_unlocked(self, path: Union[str, Path]) -> str:
        return self.run(path, ["config", "annex.addunlocked", "true"])

    def set_backend(self, path: Union[str, Path], backend: str = DEFAULT_BACKEND) -> str:
        return self.run(path, ["config", "annex.backend", backend])

    def set_size_filter(self, path: Union[str, Path], size_bytes: int) -> str:
        return self.run(path, ["config", "annex.largefiles", f"largerthan={size_bytes}"])

    def sync(self, path: Union[str, Path], *flags: str) -> str:
        return self.run(path, ["annex", "sync"] + list(flags))

    def uninit(self, path: Union[str, Path]) -> str:
        return self.run(path, ["annex", "uninit"])
