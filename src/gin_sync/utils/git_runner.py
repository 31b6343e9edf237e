"""
Git command runner with dubious ownership handling.

Repository directories on a hosting server are often owned by a different
user than the process managing them, which makes git refuse to operate
("dubious ownership"). Commands run through this module get a
safe.directory entry for their working directory via GIT_CONFIG_* variables.
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional


def get_git_environment(repo_dir: Path) -> Dict[str, str]:
    """
    Get environment variables for git commands to handle dubious ownership.

    Existing GIT_CONFIG_KEY_n/GIT_CONFIG_VALUE_n pairs from the calling
    environment are kept and shifted up by one to make room for
    safe.directory at index 0.

    Args:
        repo_dir: Path to the repository directory

    Returns:
        Dictionary of environment variables for git commands
    """
    env = os.environ.copy()

    try:
        existing = int(os.environ.get("GIT_CONFIG_COUNT", "0"))
    except ValueError:
        existing = 0

    for idx in range(existing - 1, -1, -1):
        key = os.environ.get(f"GIT_CONFIG_KEY_{idx}")
        if key is None:
            continue
        env[f"GIT_CONFIG_KEY_{idx + 1}"] = key
        env[f"GIT_CONFIG_VALUE_{idx + 1}"] = os.environ.get(
            f"GIT_CONFIG_VALUE_{idx}", ""
        )

    env["GIT_CONFIG_KEY_0"] = "safe.directory"
    env["GIT_CONFIG_VALUE_0"] = str(Path(repo_dir).resolve())
    env["GIT_CONFIG_COUNT"] = str(existing + 1)

    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    check: bool = True,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run a git command with proper environment handling for dubious ownership.

    Args:
        cmd: Git command as a list (e.g., ["git", "annex", "init"])
        cwd: Working directory for the command
        check: Whether to raise CalledProcessError on non-zero exit
        timeout: Optional timeout in seconds

    Returns:
        CompletedProcess instance with the command result

    Raises:
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded
    """
    if not cmd or cmd[0] != "git":
        raise ValueError("Command must start with 'git'")

    return subprocess.run(
        cmd,
        cwd=cwd,
        check=check,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=get_git_environment(cwd),
    )
