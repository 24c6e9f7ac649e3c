"""Shared fakes for the upscaler tests.

No network or git binary is touched: HTTP goes through FakeSession and git
commands through FakeGitRunner.
"""

import io
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from PIL import Image

from upscaler.config import UpscaleConfig


API = "https://api.github.com"
ISSUE_URL = f"{API}/repos/octo/pics/issues/7"
COMMENTS_URL = f"{ISSUE_URL}/comments"


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data=None, content: bytes = b"") -> None:
        self.status_code = status_code
        self._json = json_data
        self.content = content

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        return self._json


class FakeSession:
    """Minimal stand-in for requests.Session keyed by URL."""

    def __init__(self, responses: Optional[Dict[str, FakeResponse]] = None) -> None:
        self.responses = responses or {}
        self.gets: List[dict] = []
        self.posts: List[dict] = []
        self.post_status = 201

    def get(self, url, headers=None, timeout=None):
        self.gets.append({"url": url, "headers": headers, "timeout": timeout})
        return self.responses.get(url, FakeResponse(404))

    def post(self, url, headers=None, json=None, timeout=None):
        self.posts.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return FakeResponse(self.post_status)

    @property
    def comments(self) -> List[str]:
        return [p["json"]["body"] for p in self.posts if p["url"].endswith("/comments")]


class FakeGitRunner:
    """Records git invocations; `results` maps a git subcommand to its outcome."""

    def __init__(self, results: Optional[Dict[str, subprocess.CompletedProcess]] = None) -> None:
        self.results = results or {}
        self.calls: List[List[str]] = []

    def __call__(self, args, cwd: Path) -> subprocess.CompletedProcess:
        args = list(args)
        self.calls.append(args)
        result = self.results.get(args[1])
        if result is not None:
            return result
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

    @property
    def subcommands(self) -> List[str]:
        return [call[1] for call in self.calls]


def image_bytes(size=(40, 20), fmt="PNG", mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color=(200, 40, 40) if mode == "RGB" else None).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def env() -> Dict[str, str]:
    return {
        "GITHUB_TOKEN": "ghs_secret123",
        "COMMENT_BODY": "/upscale 2",
        "ISSUE_NUMBER": "7",
        "REPOSITORY": "octo/pics",
    }


@pytest.fixture
def config(env, tmp_path) -> UpscaleConfig:
    return UpscaleConfig.from_env(env, workdir=tmp_path)
