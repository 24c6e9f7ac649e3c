import argparse
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

import requests
from dotenv import load_dotenv

from upscaler.config import DEFAULT_TIMEOUT, ReportTarget, UpscaleConfig
from upscaler.core import UpscalePipeline, notify_failure
from upscaler.errors import ConfigError
from upscaler.issues import IssueClient
from upscaler.publisher import BranchPublisher, GitRepository, Runner


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upscale the first image of an issue and publish it to a results branch."
    )
    parser.add_argument(
        "--workdir",
        type=Path,
        default=Path("."),
        help="Repository checkout to commit results into.",
    )
    parser.add_argument(
        "--scratch-dir",
        type=Path,
        default=Path("tmp_upscale"),
        help="Folder (relative to the workdir) where the source image is downloaded.",
    )
    parser.add_argument(
        "--results-dir",
        type=Path,
        default=Path("results"),
        help="Folder (relative to the workdir) where upscaled images are written.",
    )
    parser.add_argument(
        "--branch",
        default=None,
        help="Branch that stores the results (defaults to UPSCALE_BRANCH or upscaled-results).",
    )
    return parser.parse_args(argv)


def main(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    session: Optional[requests.Session] = None,
    runner: Optional[Runner] = None,
) -> int:
    # Load environment variables from a local .env file if present
    # (e.g. GITHUB_TOKEN=ghp_...). Only applies to the real process environment.
    if environ is None:
        load_dotenv()
        environ = os.environ

    args = parse_args(argv)
    session = session or requests.Session()

    try:
        config = UpscaleConfig.from_env(
            environ,
            workdir=args.workdir,
            scratch_dir=args.scratch_dir,
            results_dir=args.results_dir,
            branch=args.branch,
        )
    except ConfigError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        notify_failure(ReportTarget.from_env(environ), exc, session=session, timeout=DEFAULT_TIMEOUT)
        return 1

    pipeline = UpscalePipeline(
        config=config,
        issues=IssueClient(config.report_target, session=session, timeout=config.timeout),
        publisher=BranchPublisher(GitRepository(config.workdir, runner=runner), config),
        session=session,
    )
    outcome = pipeline.run()

    if not outcome.ok:
        notify_failure(config.report_target, outcome.error, session=session, timeout=config.timeout)
        return 1
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
