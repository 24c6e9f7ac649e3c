import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import UpscaleConfig
from .errors import PublishError


BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "github-actions[bot]@users.noreply.github.com"

NOTHING_TO_COMMIT = ("nothing to commit", "nothing added to commit", "no changes added to commit")

Runner = Callable[[Sequence[str], Path], "subprocess.CompletedProcess[str]"]


def run_command(args: Sequence[str], cwd: Path) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(
        list(args),
        cwd=cwd,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
    )


class GitRepository:
    """
    Named git operations over a working copy.

    Commands go through `runner` so the publishing logic can be exercised
    without a git binary. Every echoed command and error has the token masked.
    """

    def __init__(self, workdir: Path, runner: Optional[Runner] = None) -> None:
        self.workdir = workdir
        self.runner = runner or run_command
        self._secrets: List[str] = []

    def configure(self, token: str, remote_url: str) -> None:
        self._secrets.append(token)
        self._git("config", "user.email", BOT_EMAIL)
        self._git("config", "user.name", BOT_NAME)
        self._git("remote", "set-url", "origin", remote_url)

    def ensure_branch(self, branch: str) -> bool:
        """
        Put the working copy on `branch`, returning whether it existed remotely.

        An existing remote branch is checked out with any local divergence
        discarded; otherwise an orphan branch with an empty index is created.
        """
        self._git("fetch", "origin")

        exists = self._git("rev-parse", "--verify", "--quiet", f"origin/{branch}", check=False).returncode == 0
        if exists:
            print(f"🌿 Resetting {branch} to origin/{branch}")
            self._git("checkout", "-B", branch, f"origin/{branch}")
        else:
            print(f"🌱 Creating orphan branch {branch}")
            self._git("checkout", "--orphan", branch)
            # Untracked files (the freshly rendered output) are left in place.
            self._git("rm", "-r", "-f", "--quiet", "--ignore-unmatch", ".")
        return exists

    def commit_file(self, path: Path, message: str) -> bool:
        """
        Stage a single file and commit it.

        Returns False when git reports there is nothing to commit; any other
        commit failure raises PublishError.
        """
        self._git("add", "--", self.relative_path(path))
        result = self._git("commit", "-m", message, check=False)
        if result.returncode == 0:
            return True

        output = f"{result.stdout or ''}\n{result.stderr or ''}".lower()
        if any(marker in output for marker in NOTHING_TO_COMMIT):
            print("ℹ️  Nothing to commit, pushing the current branch tip.")
            return False
        raise PublishError(self._failure_message(("commit", "-m", message), result))

    def force_push(self, branch: str) -> None:
        self._git("push", "origin", branch, "--force")

    def _git(self, *args: str, check: bool = True) -> "subprocess.CompletedProcess[str]":
        print(f"$ {self._redact(' '.join(('git',) + args))}")
        try:
            result = self.runner(["git", *args], self.workdir)
        except OSError as exc:
            raise PublishError(self._redact(f"Failed to run git {args[0]}: {exc}")) from exc

        if result.stdout:
            print(self._redact(result.stdout.rstrip()))
        if check and result.returncode != 0:
            raise PublishError(self._failure_message(args, result))
        return result

    def _failure_message(self, args: Sequence[str], result: "subprocess.CompletedProcess[str]") -> str:
        detail = (result.stderr or result.stdout or "").strip()
        return self._redact(f"git {args[0]} failed with exit code {result.returncode}: {detail}")

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            if secret:
                text = text.replace(secret, "***")
        return text

    def relative_path(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.workdir.resolve()).as_posix()
        except ValueError:
            return path.as_posix()


class BranchPublisher:
    """
    Commits a rendered file to the artifact branch and returns its raw URL.
    """

    def __init__(self, repo: GitRepository, config: UpscaleConfig) -> None:
        self.repo = repo
        self.config = config

    def raw_url(self, output_path: Path) -> str:
        c = self.config
        return f"https://{c.raw_host}/{c.owner}/{c.repo}/{c.branch}/{self.repo.relative_path(output_path)}"

    def publish(self, output_path: Path) -> str:
        if not output_path.exists():
            raise PublishError(f"Output file does not exist: {output_path}")

        c = self.config
        self.repo.configure(c.token, c.push_url)
        self.repo.ensure_branch(c.branch)
        self.repo.commit_file(
            output_path,
            f"Add upscaled image for issue #{c.issue_number}: {output_path.name}",
        )
        self.repo.force_push(c.branch)
        return self.raw_url(output_path)
