import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional

import requests

from .config import ReportTarget, UpscaleConfig
from .fetch import download_image
from .inputs import find_image_url, format_scale, image_extension, parse_scale
from .issues import IssueClient, error_comment, no_image_comment, success_comment
from .publisher import BranchPublisher
from .render import resize_image


OutcomeStatus = Literal["published", "no_image", "failed"]


@dataclass
class UpscaleOutcome:
    status: OutcomeStatus
    scale: Optional[float] = None
    image_url: Optional[str] = None
    output_path: Optional[Path] = None
    raw_url: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


def _now_millis() -> int:
    return int(time.time() * 1000)


class UpscalePipeline:
    """
    Orchestrates a single `/upscale` invocation:
    - resolve the scale from the triggering comment
    - fetch the issue body and pick the first image URL
    - download, resize and re-encode the image
    - commit it to the artifact branch and reply with the raw link

    `run()` never raises; failures come back as a "failed" outcome so the
    caller can report them.
    """

    def __init__(
        self,
        config: UpscaleConfig,
        issues: IssueClient,
        publisher: BranchPublisher,
        session: Optional[requests.Session] = None,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self.config = config
        self.issues = issues
        self.publisher = publisher
        self.session = session or issues.session
        self.clock = clock

    def run(self) -> UpscaleOutcome:
        scale = parse_scale(self.config.comment_body)
        print(f"🔎 Requested scale: {format_scale(scale)}")
        try:
            return self._run(scale)
        except Exception as exc:
            print(f"❌ Error in upscale run: {exc}", file=sys.stderr)
            return UpscaleOutcome(status="failed", scale=scale, error=exc)

    def output_path_for(self, ext: str) -> Path:
        c = self.config
        filename = f"upscaled-issue{c.issue_number}-{self.clock()}{ext}"
        return c.workdir / c.results_dir / filename

    def _run(self, scale: float) -> UpscaleOutcome:
        c = self.config
        body = self.issues.get_issue_body()

        image_url = find_image_url(body)
        if image_url is None:
            print("⚠️  No image found in issue body.")
            self.issues.post_comment(no_image_comment())
            return UpscaleOutcome(status="no_image", scale=scale)
        print(f"🖼️  Found image URL: {image_url}")

        input_path = download_image(
            image_url,
            c.workdir / c.scratch_dir,
            session=self.session,
            timeout=c.timeout,
        )

        output_path = self.output_path_for(image_extension(image_url))
        resize_image(input_path, scale, output_path)

        raw_url = self.publisher.publish(output_path)
        self.issues.post_comment(success_comment(scale, raw_url, c.branch))
        print(f"🎯 Done. Comment posted with link: {raw_url}")

        return UpscaleOutcome(
            status="published",
            scale=scale,
            image_url=image_url,
            output_path=output_path,
            raw_url=raw_url,
        )


def notify_failure(
    target: Optional[ReportTarget],
    error: BaseException,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> bool:
    """
    Post the error comment on the triggering issue, if it can be identified.

    Returns whether the comment was posted. Failures here are only logged.
    """
    if target is None:
        print("⚠️  Not enough context to report the error on the issue.", file=sys.stderr)
        return False
    try:
        IssueClient(target, session=session, timeout=timeout).post_comment(error_comment(error))
    except Exception as exc:
        print(f"⚠️  Also failed to post error comment: {exc}", file=sys.stderr)
        return False
    return True
