"""Unit tests for PullRequestWorkflow."""

from pathlib import Path

import pytest
from unittest.mock import AsyncMock, Mock, patch

from pr_publisher.models.access import AuthorInfo, BasicCredentials, TokenCredentials
from pr_publisher.services.errors import (
    CommitPushFailed,
    InvalidRepositoryUrl,
    MissingAuthorization,
    RemoteCallFailed,
    TargetBranchNotFound,
)
from pr_publisher.services.git_publisher import GitPublisher
from pr_publisher.services.pr_workflow import (
    PullRequestWorkflow,
    WorkflowDefaults,
    get_pull_request_workflow,
)


REPO_URL = "bitbucket.example.com?project=PROJ&repo=service"
PR_URL = "https://bitbucket.example.com/projects/PROJ/repos/service/pull-requests/1"


@pytest.fixture
def publisher(fake_server):
    """Publisher double that records the push in the fake server's call log."""
    publisher = Mock()

    async def push(working_dir, remote_url, branch, credentials, commit_message, author):
        fake_server.calls.append(("PUSH", remote_url, {"branch": branch}))
        return "f00dbabe"

    publisher.commit_and_push = AsyncMock(side_effect=push)
    return publisher


@pytest.fixture
def workflow(access_resolver, fake_server, publisher):
    return PullRequestWorkflow(
        access_resolver=access_resolver,
        transport=fake_server,
        publisher=publisher,
        defaults=WorkflowDefaults(
            default_author_name="Release Bot",
            default_author_email="release-bot@example.com",
            default_commit_message="Automated change",
        ),
    )


class TestPullRequestWorkflow:
    """Test suite for the end-to-end workflow."""

    @pytest.mark.asyncio
    async def test_absent_source_branch_is_created_then_pr_opened(self, workflow, fake_server, publisher, tmp_path):
        """Target master at c1, feature-x absent: create, push, open PR."""
        result = await workflow.run(
            repo_url=REPO_URL,
            title="Add feature X",
            source_branch="feature-x",
            source_dir=tmp_path,
            description="Adds feature X",
        )

        create_calls = fake_server.calls_to("POST", "/branches")
        assert len(create_calls) == 1
        assert create_calls[0][2] == {"name": "feature-x", "startPoint": "c1"}

        pr_calls = fake_server.calls_to("POST", "/pull-requests")
        assert len(pr_calls) == 1
        assert pr_calls[0][2]["fromRef"]["displayId"] == "feature-x"
        assert pr_calls[0][2]["toRef"]["displayId"] == "master"

        assert result.url == PR_URL

        methods = [call[0] for call in fake_server.calls]
        assert methods == ["GET", "GET", "POST", "PUSH", "POST"]

    @pytest.mark.asyncio
    async def test_existing_source_branch_is_never_created(self, workflow, fake_server, tmp_path):
        fake_server.add_branch("feature-x", "c3")

        result = await workflow.run(
            repo_url=REPO_URL,
            title="Update feature X",
            source_branch="feature-x",
            source_dir=tmp_path,
        )

        assert fake_server.calls_to("POST", "/branches") == []
        assert fake_server.calls_to("POST", "/pull-requests")[0][2]["fromRef"]["latestCommit"] == "c3"
        assert result.url == PR_URL

    @pytest.mark.asyncio
    async def test_missing_target_aborts_before_any_write(self, workflow, fake_server, publisher, tmp_path):
        with pytest.raises(TargetBranchNotFound):
            await workflow.run(
                repo_url=REPO_URL,
                title="Add feature X",
                source_branch="feature-x",
                source_dir=tmp_path,
                target_branch="release",
            )

        assert fake_server.calls_to("POST", "/branches") == []
        assert fake_server.calls_to("POST", "/pull-requests") == []
        publisher.commit_and_push.assert_not_called()

    @pytest.mark.asyncio
    async def test_pr_conflict_leaves_branch_and_push_in_place(self, workflow, fake_server, publisher, tmp_path):
        """A 409 on PR creation fails the run without undoing earlier steps."""
        fake_server.pull_request_status = 409

        with pytest.raises(RemoteCallFailed) as exc_info:
            await workflow.run(
                repo_url=REPO_URL,
                title="Add feature X",
                source_branch="feature-x",
                source_dir=tmp_path,
            )

        assert exc_info.value.status_code == 409
        assert "feature-x" in fake_server.branches
        publisher.commit_and_push.assert_awaited_once()
        assert fake_server.pull_requests == []

    @pytest.mark.asyncio
    async def test_push_failure_skips_pull_request(self, workflow, fake_server, publisher, tmp_path):
        publisher.commit_and_push.side_effect = CommitPushFailed("git push failed")

        with pytest.raises(CommitPushFailed):
            await workflow.run(
                repo_url=REPO_URL,
                title="Add feature X",
                source_branch="feature-x",
                source_dir=tmp_path,
            )

        assert "feature-x" in fake_server.branches
        assert fake_server.calls_to("POST", "/pull-requests") == []

    @pytest.mark.asyncio
    async def test_push_arguments(self, workflow, publisher, tmp_path):
        await workflow.run(
            repo_url=REPO_URL,
            title="Add feature X",
            source_branch="feature-x",
            source_dir=str(tmp_path),
            description="Adds feature X",
        )

        args = publisher.commit_and_push.await_args.args
        assert args[0] == Path(tmp_path)
        assert args[1] == "https://bitbucket.example.com/scm/PROJ/service.git"
        assert args[2] == "feature-x"
        assert args[3] == TokenCredentials(token="config-token")
        assert args[4] == "Adds feature X"
        assert args[5] == AuthorInfo(name="Release Bot", email="release-bot@example.com")

    @pytest.mark.asyncio
    async def test_commit_message_falls_back_to_configured_default(self, workflow, publisher, tmp_path):
        await workflow.run(
            repo_url=REPO_URL, title="T", source_branch="feature-x", source_dir=tmp_path
        )

        assert publisher.commit_and_push.await_args.args[4] == "Automated change"

    @pytest.mark.asyncio
    async def test_commit_message_defaults_to_empty(self, access_resolver, fake_server, publisher, tmp_path):
        workflow = PullRequestWorkflow(access_resolver, fake_server, publisher)

        await workflow.run(
            repo_url=REPO_URL, title="T", source_branch="feature-x", source_dir=tmp_path
        )

        assert publisher.commit_and_push.await_args.args[4] == ""

    @pytest.mark.asyncio
    async def test_explicit_commit_message_and_author(self, workflow, publisher, tmp_path):
        await workflow.run(
            repo_url=REPO_URL,
            title="T",
            source_branch="feature-x",
            source_dir=tmp_path,
            description="PR body",
            commit_message="Bump version",
            author=AuthorInfo(name="Jo Dev"),
        )

        args = publisher.commit_and_push.await_args.args
        assert args[4] == "Bump version"
        assert args[5] == AuthorInfo(name="Jo Dev", email="release-bot@example.com")

    @pytest.mark.asyncio
    async def test_per_call_token_overrides_configured_credentials(self, workflow, publisher, tmp_path):
        await workflow.run(
            repo_url=REPO_URL,
            title="T",
            source_branch="feature-x",
            source_dir=tmp_path,
            token="run-token",
        )

        assert publisher.commit_and_push.await_args.args[3] == TokenCredentials(token="run-token")

    @pytest.mark.asyncio
    async def test_invalid_repo_url_fails_before_any_call(self, workflow, fake_server, tmp_path):
        with pytest.raises(InvalidRepositoryUrl):
            await workflow.run(
                repo_url="bitbucket.example.com?repo=service",
                title="T",
                source_branch="feature-x",
                source_dir=tmp_path,
            )

        assert fake_server.calls == []

    @pytest.mark.asyncio
    async def test_missing_authorization_fails_before_any_call(self, fake_server, publisher, tmp_path):
        from pr_publisher.config import BitbucketServerIntegration
        from pr_publisher.services.access_resolver import AccessResolver

        resolver = AccessResolver([BitbucketServerIntegration(host="bitbucket.example.com")])
        workflow = PullRequestWorkflow(resolver, fake_server, publisher)

        with pytest.raises(MissingAuthorization):
            await workflow.run(
                repo_url=REPO_URL, title="T", source_branch="feature-x", source_dir=tmp_path
            )

        assert fake_server.calls == []

    @pytest.mark.asyncio
    async def test_basic_credentials_are_passed_to_publisher(self, fake_server, publisher, tmp_path):
        from pr_publisher.config import BitbucketServerIntegration
        from pr_publisher.services.access_resolver import AccessResolver

        resolver = AccessResolver([BitbucketServerIntegration(
            host="bitbucket.example.com", username="bot", password="s3cret"
        )])
        workflow = PullRequestWorkflow(resolver, fake_server, publisher)

        await workflow.run(
            repo_url=REPO_URL, title="T", source_branch="feature-x", source_dir=tmp_path
        )

        assert publisher.commit_and_push.await_args.args[3] == BasicCredentials(
            username="bot", password="s3cret"
        )

    @pytest.mark.asyncio
    async def test_target_branch_default_comes_from_defaults(self, access_resolver, fake_server, publisher, tmp_path):
        fake_server.add_branch("main", "m1")
        workflow = PullRequestWorkflow(
            access_resolver, fake_server, publisher,
            defaults=WorkflowDefaults(default_target_branch="main"),
        )

        await workflow.run(
            repo_url=REPO_URL, title="T", source_branch="feature-x", source_dir=tmp_path
        )

        assert fake_server.calls_to("POST", "/branches")[0][2] == {"name": "feature-x", "startPoint": "m1"}


def test_factory_uses_caller_transport_and_settings(fake_server):
    """The factory never opens a transport of its own."""
    with patch("pr_publisher.config.settings.default_target_branch", "develop"):
        workflow = get_pull_request_workflow(fake_server)

    assert workflow.transport is fake_server
    assert isinstance(workflow.publisher, GitPublisher)
    assert workflow.defaults.default_target_branch == "develop"
