from typing import Any, Dict, Optional

import requests

from .config import ReportTarget
from .errors import IssueTrackerError
from .inputs import format_scale


MAX_ERROR_LENGTH = 200


def success_comment(scale: float, raw_url: str, branch: str) -> str:
    return (
        f":white_check_mark: Upscaled image (scale {format_scale(scale)}x) was created and stored "
        f"on branch `{branch}`.\n\n"
        f"Direct link (raw): {raw_url}\n\n"
        f"To download the file, open the raw link or browse the `{branch}` branch."
    )


def no_image_comment() -> str:
    return (
        ":warning: No image found in the issue body. "
        "Please add an image to the issue body first."
    )


def error_comment(error: BaseException) -> str:
    message = str(error) or error.__class__.__name__
    return f":x: An error occurred while upscaling: {message[:MAX_ERROR_LENGTH]}"


class IssueClient:
    """
    Thin adapter over the issue-tracker REST API for a single issue.
    """

    def __init__(
        self,
        target: ReportTarget,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.target = target
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def issue_url(self) -> str:
        t = self.target
        return f"{t.api_url}/repos/{t.owner}/{t.repo}/issues/{t.issue_number}"

    def get_issue_body(self) -> str:
        response = self.session.get(
            self.issue_url,
            headers=self._headers(),
            timeout=self.timeout,
        )
        if not response.ok:
            raise IssueTrackerError(f"Failed to fetch issue: {response.status_code}")
        payload: Dict[str, Any] = response.json()
        return payload.get("body") or ""

    def post_comment(self, body: str) -> None:
        response = self.session.post(
            f"{self.issue_url}/comments",
            headers=self._headers(),
            json={"body": body},
            timeout=self.timeout,
        )
        if not response.ok:
            raise IssueTrackerError(f"Failed to post comment: {response.status_code}")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.target.token}",
            "Accept": "application/vnd.github+json",
        }
