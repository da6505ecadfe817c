"""
Git publisher component.

Commits the contents of a local directory onto a remote branch with the
``git`` command line: clone the branch into a scratch directory, copy the
changes over it, commit and push.
"""

import asyncio
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pr_publisher.models.access import AuthorInfo, Credentials
from pr_publisher.services.access_resolver import build_authorization_header
from pr_publisher.services.errors import CommitPushFailed, InvalidSourceDirectory
from pr_publisher.utils.logging import get_logger


logger = get_logger(__name__)


def resolve_workspace_dir(source_dir: str, workspace_root: str) -> Path:
    """
    Resolve a requested source directory inside the workspace root.

    Relative paths are taken relative to ``workspace_root``. Symlinks and
    ``..`` segments are resolved before the check, so the result always lies
    strictly below the root.

    Raises:
        InvalidSourceDirectory: If the path is the root itself or escapes it
    """
    root = Path(workspace_root).resolve()
    candidate = (root / source_dir).resolve()
    if candidate == root or not candidate.is_relative_to(root):
        raise InvalidSourceDirectory(
            f"Source directory {source_dir} is not a workspace under {root}"
        )
    return candidate


class ChangePublisher(Protocol):
    """Commit-and-push capability consumed by the workflow."""

    async def commit_and_push(
        self,
        working_dir: Path,
        remote_url: str,
        branch: str,
        credentials: Credentials,
        commit_message: str,
        author: AuthorInfo,
    ) -> Optional[str]:
        ...


class GitPublisher:
    """
    Publishes local changes to a remote branch using the git CLI.

    Credentials travel as an ``http.extraHeader`` set through the
    ``GIT_CONFIG_*`` environment, so they never appear in the remote URL or
    on the command line.
    """

    def __init__(self, git_executable: str = "git"):
        self.git_executable = git_executable

    async def commit_and_push(
        self,
        working_dir: Path,
        remote_url: str,
        branch: str,
        credentials: Credentials,
        commit_message: str,
        author: AuthorInfo,
    ) -> str:
        """
        Commit ``working_dir`` onto ``branch`` and push it.

        Args:
            working_dir: Directory whose contents become the new commit
            remote_url: Git remote URL
            branch: Existing remote branch to commit onto
            credentials: Token or username/password
            commit_message: Commit message (may be empty)
            author: Author and committer identity

        Returns:
            Hash of the pushed commit

        Raises:
            CommitPushFailed: If the directory is missing or a git command fails
        """
        return await asyncio.to_thread(
            self._commit_and_push_sync,
            Path(working_dir),
            remote_url,
            branch,
            credentials,
            commit_message,
            author,
        )

    def _commit_and_push_sync(
        self,
        working_dir: Path,
        remote_url: str,
        branch: str,
        credentials: Credentials,
        commit_message: str,
        author: AuthorInfo,
    ) -> str:
        if not working_dir.is_dir():
            raise CommitPushFailed(f"Source directory {working_dir} does not exist")

        env = self._auth_env(credentials)

        with tempfile.TemporaryDirectory(prefix="pr-publisher-") as temp_dir:
            checkout = Path(temp_dir) / "checkout"

            self._run_git(
                ["clone", "--branch", branch, "--single-branch", remote_url, str(checkout)],
                cwd=Path(temp_dir),
                env=env,
            )

            shutil.copytree(
                working_dir,
                checkout,
                dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(".git"),
            )

            self._run_git(["add", "--all", "."], cwd=checkout, env=env)
            self._run_git(
                [
                    "-c", f"user.name={author.name}",
                    "-c", f"user.email={author.email}",
                    "commit",
                    "--allow-empty",
                    "--allow-empty-message",
                    "-m", commit_message,
                ],
                cwd=checkout,
                env=env,
            )
            commit_hash = self._run_git(["rev-parse", "HEAD"], cwd=checkout, env=env).strip()
            self._run_git(
                ["push", "origin", f"HEAD:refs/heads/{branch}"],
                cwd=checkout,
                env=env,
            )

        logger.info(f"Pushed commit {commit_hash} to {branch}")
        return commit_hash

    @staticmethod
    def _auth_env(credentials: Credentials) -> Dict[str, str]:
        env = dict(os.environ)
        env.update({
            "GIT_TERMINAL_PROMPT": "0",
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: {build_authorization_header(credentials)}",
        })
        return env

    def _run_git(self, args: List[str], cwd: Path, env: Dict[str, str]) -> str:
        """
        Run one git command.

        Returns:
            Captured stdout

        Raises:
            CommitPushFailed: If git cannot be started or exits non-zero
        """
        command = [self.git_executable, *args]
        printable = " ".join(args)
        logger.debug(f"Running git {printable}")

        try:
            result = subprocess.run(command, cwd=cwd, env=env, capture_output=True, text=True)
        except OSError as e:
            raise CommitPushFailed(f"Unable to run git: {e}", command=printable) from e

        if result.returncode != 0:
            raise CommitPushFailed(
                f"git {printable} failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}",
                command=printable,
                stderr=result.stderr,
            )
        return result.stdout
