import subprocess

from PIL import Image

import run_upscale
from upscaler.config import DEFAULT_TIMEOUT, ReportTarget
from upscaler.core import UpscalePipeline, notify_failure
from upscaler.issues import IssueClient
from upscaler.publisher import BranchPublisher, GitRepository

from conftest import COMMENTS_URL, ISSUE_URL, FakeGitRunner, FakeResponse, FakeSession, image_bytes


IMAGE_URL = "https://cdn.example.com/uploads/cat.png"
OTHER_URL = "https://cdn.example.com/uploads/dog.jpg"


def make_session(body, image=None, image_status=200):
    responses = {ISSUE_URL: FakeResponse(200, json_data={"body": body})}
    responses[IMAGE_URL] = FakeResponse(image_status, content=image or b"")
    responses[OTHER_URL] = FakeResponse(200, content=image_bytes(fmt="JPEG"))
    return FakeSession(responses)


def make_pipeline(config, session, runner):
    return UpscalePipeline(
        config=config,
        issues=IssueClient(config.report_target, session=session),
        publisher=BranchPublisher(GitRepository(config.workdir, runner=runner), config),
        session=session,
        clock=lambda: 1700000000000,
    )


class TestUpscalePipeline:
    def test_publishes_upscaled_image(self, config):
        session = make_session(f"Look: ![cat]({IMAGE_URL})", image=image_bytes(size=(40, 20)))
        runner = FakeGitRunner()

        outcome = make_pipeline(config, session, runner).run()

        assert outcome.status == "published"
        assert outcome.scale == 2.0
        assert outcome.output_path == config.workdir / "results" / "upscaled-issue7-1700000000000.png"
        with Image.open(outcome.output_path) as img:
            assert img.size == (80, 40)
            assert img.format == "PNG"
        assert (config.workdir / "tmp_upscale" / "input.png").exists()
        assert len(session.comments) == 1
        assert outcome.raw_url in session.comments[0]
        assert runner.subcommands[-1] == "push"

    def test_first_image_is_used(self, config):
        session = make_session(f"{OTHER_URL}\n{IMAGE_URL}", image=image_bytes())

        outcome = make_pipeline(config, session, FakeGitRunner()).run()

        assert outcome.image_url == OTHER_URL
        assert outcome.output_path.suffix == ".jpg"

    def test_no_image_posts_warning_without_touching_git(self, config):
        session = make_session("no attachments here")
        runner = FakeGitRunner()

        outcome = make_pipeline(config, session, runner).run()

        assert outcome.status == "no_image"
        assert outcome.ok
        assert len(session.comments) == 1
        assert session.comments[0].startswith(":warning:")
        assert runner.calls == []

    def test_failed_download_returns_failed_outcome(self, config):
        session = make_session(IMAGE_URL, image_status=404)
        runner = FakeGitRunner()

        outcome = make_pipeline(config, session, runner).run()

        assert outcome.status == "failed"
        assert not outcome.ok
        assert "404" in str(outcome.error)
        assert session.comments == []
        assert runner.calls == []

    def test_git_failure_returns_failed_outcome(self, config):
        session = make_session(IMAGE_URL, image=image_bytes())
        runner = FakeGitRunner({"push": subprocess.CompletedProcess([], 1, stdout="", stderr="rejected")})

        outcome = make_pipeline(config, session, runner).run()

        assert outcome.status == "failed"
        assert "rejected" in str(outcome.error)
        assert session.comments == []


def test_notify_failure_without_target():
    assert notify_failure(None, RuntimeError("boom")) is False


def test_notify_failure_swallows_post_errors():
    session = FakeSession()
    session.post_status = 502
    target = ReportTarget(token="t", owner="octo", repo="pics", issue_number=7)
    assert notify_failure(target, RuntimeError("boom"), session=session) is False


class TestMain:
    def test_success_exit_code(self, env, tmp_path):
        env["COMMENT_BODY"] = "/upscale 1.5"
        session = make_session(IMAGE_URL, image=image_bytes(size=(10, 10)))

        code = run_upscale.main(["--workdir", str(tmp_path)], environ=env, session=session, runner=FakeGitRunner())

        assert code == 0
        assert len(session.comments) == 1
        assert "scale 1.5x" in session.comments[0]
        [result] = (tmp_path / "results").iterdir()
        with Image.open(result) as img:
            assert img.size == (15, 15)

    def test_non_200_download_exits_1_with_one_error_comment(self, env, tmp_path):
        session = make_session(IMAGE_URL, image_status=500)
        runner = FakeGitRunner()

        code = run_upscale.main(["--workdir", str(tmp_path)], environ=env, session=session, runner=runner)

        assert code == 1
        assert len(session.comments) == 1
        assert session.posts[0]["url"] == COMMENTS_URL
        comment = session.comments[0]
        assert comment.startswith(":x:")
        message = comment.rpartition(": ")[2]
        assert len(message) <= 200
        assert runner.calls == []

    def test_no_image_exits_0(self, env, tmp_path):
        session = make_session("text only")

        code = run_upscale.main(["--workdir", str(tmp_path)], environ=env, session=session, runner=FakeGitRunner())

        assert code == 0
        assert len(session.comments) == 1

    def test_config_error_reports_when_possible(self, env, tmp_path):
        del env["COMMENT_BODY"]
        session = FakeSession()

        code = run_upscale.main(["--workdir", str(tmp_path)], environ=env, session=session)

        assert code == 1
        assert len(session.comments) == 1
        assert "COMMENT_BODY" in session.comments[0]

    def test_missing_token_posts_nothing(self, env, tmp_path):
        del env["GITHUB_TOKEN"]
        session = FakeSession()

        assert run_upscale.main(["--workdir", str(tmp_path)], environ=env, session=session) == 1
        assert session.posts == []

    def test_config_error_comment_uses_default_timeout(self, env, tmp_path):
        env["UPSCALE_TIMEOUT"] = "nan"
        session = FakeSession()

        assert run_upscale.main(["--workdir", str(tmp_path)], environ=env, session=session) == 1
        assert len(session.posts) == 1
        assert session.posts[0]["timeout"] == DEFAULT_TIMEOUT
