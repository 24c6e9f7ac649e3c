import math
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .errors import ConfigError


DEFAULT_API_URL = "https://api.github.com"
DEFAULT_SERVER_URL = "https://github.com"
DEFAULT_RAW_HOST = "raw.githubusercontent.com"
DEFAULT_BRANCH = "upscaled-results"
DEFAULT_TIMEOUT = 30.0

REQUIRED_ENV = ("GITHUB_TOKEN", "COMMENT_BODY", "ISSUE_NUMBER", "REPOSITORY")


@dataclass(frozen=True)
class ReportTarget:
    """
    The minimum context needed to post a comment back on the triggering issue.
    """

    token: str
    owner: str
    repo: str
    issue_number: int
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Optional["ReportTarget"]:
        """
        Best-effort variant of `UpscaleConfig.from_env` used for error reporting.

        Returns None instead of raising when the token, repository or issue
        number cannot be recovered.
        """
        token = environ.get("GITHUB_TOKEN")
        if not token:
            return None
        try:
            owner, repo = _split_repository(environ.get("REPOSITORY") or "")
            issue_number = _parse_issue_number(environ.get("ISSUE_NUMBER") or "")
        except ConfigError:
            return None
        return cls(
            token=token,
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            api_url=_api_url(environ),
        )


@dataclass(frozen=True)
class UpscaleConfig:
    token: str
    owner: str
    repo: str
    issue_number: int
    comment_body: str
    api_url: str = DEFAULT_API_URL
    server_url: str = DEFAULT_SERVER_URL
    raw_host: str = DEFAULT_RAW_HOST
    branch: str = DEFAULT_BRANCH
    workdir: Path = Path(".")
    scratch_dir: Path = Path("tmp_upscale")
    results_dir: Path = Path("results")
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str],
        workdir: Optional[Path] = None,
        scratch_dir: Optional[Path] = None,
        results_dir: Optional[Path] = None,
        branch: Optional[str] = None,
    ) -> "UpscaleConfig":
        """
        Validate the environment once at entry.

        `COMMENT_BODY` has to be present but may be empty (the scale then
        falls back to its default). Relative scratch/results directories are
        resolved against `workdir` by the steps that use them.
        """
        missing = [name for name in REQUIRED_ENV if environ.get(name) is None]
        if missing or not environ.get("GITHUB_TOKEN"):
            names = ", ".join(missing or ["GITHUB_TOKEN"])
            raise ConfigError(f"Missing required environment variables: {names}")

        owner, repo = _split_repository(environ["REPOSITORY"])
        issue_number = _parse_issue_number(environ["ISSUE_NUMBER"])

        timeout_raw = environ.get("UPSCALE_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            raise ConfigError(f"UPSCALE_TIMEOUT is not a number: {timeout_raw!r}")
        if not math.isfinite(timeout) or timeout <= 0:
            raise ConfigError(f"UPSCALE_TIMEOUT must be a positive number, got {timeout_raw!r}")

        return cls(
            token=environ["GITHUB_TOKEN"],
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            comment_body=environ["COMMENT_BODY"],
            api_url=_api_url(environ),
            server_url=(environ.get("GITHUB_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
            raw_host=environ.get("UPSCALE_RAW_HOST") or DEFAULT_RAW_HOST,
            branch=branch or environ.get("UPSCALE_BRANCH") or DEFAULT_BRANCH,
            workdir=workdir or Path("."),
            scratch_dir=scratch_dir or Path("tmp_upscale"),
            results_dir=results_dir or Path("results"),
            timeout=timeout,
        )

    @property
    def report_target(self) -> ReportTarget:
        return ReportTarget(
            token=self.token,
            owner=self.owner,
            repo=self.repo,
            issue_number=self.issue_number,
            api_url=self.api_url,
        )

    @property
    def push_url(self) -> str:
        # https://x-access-token:<token>@github.com/owner/repo.git
        scheme, _, host = self.server_url.partition("://")
        return f"{scheme}://x-access-token:{self.token}@{host}/{self.owner}/{self.repo}.git"


def _api_url(environ: Mapping[str, str]) -> str:
    return (environ.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/")


def _split_repository(value: str) -> Tuple[str, str]:
    owner, sep, repo = value.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ConfigError(f"REPOSITORY must look like 'owner/name', got {value!r}")
    return owner, repo


def _parse_issue_number(value: str) -> int:
    try:
        number = int(value.strip())
    except ValueError:
        raise ConfigError(f"ISSUE_NUMBER is not an integer: {value!r}")
    if number <= 0:
        raise ConfigError(f"ISSUE_NUMBER must be positive, got {number}")
    return number
