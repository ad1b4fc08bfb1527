"""Post test run results as a pull request comment on GitHub."""

import asyncio
import json
import logging
import os
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiohttp
from pydantic import BaseModel, SecretStr, field_validator

from run_k6_action.command_builder import clean_script_path
from run_k6_action.errors import ConfigurationConflictError
from run_k6_action.reporting.base import ResultReporter
from run_k6_action.reporting.cloud import CloudResultsClient, extract_test_run_id
from run_k6_action.reporting.markdown import (
    results_comment_markdown,
    run_summary_markdown,
)

log = logging.getLogger(__name__)

PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})


class GitHubConfig(BaseModel):
    """Configuration for commenting on GitHub pull requests."""

    token: SecretStr
    repository: str
    api_base_url: str = "https://api.github.com"
    event_name: str = ""
    event: Mapping[str, Any] = {}
    job: str = ""

    @field_validator("repository")
    @classmethod
    def _require_owner_and_repo(cls, value: str) -> str:
        owner, _, repo = value.partition("/")
        if not owner or not repo:
            raise ValueError(f"expected <owner>/<repo>, got {value!r}")
        return value

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1]

    @classmethod
    def from_env(
        cls, token: SecretStr, env: Mapping[str, str] | None = None
    ) -> "GitHubConfig":
        """Read the workflow context from the GitHub Actions environment.

        Raises:
            ConfigurationConflictError: If GITHUB_REPOSITORY is not set to
                <owner>/<repo>

        """
        env = os.environ if env is None else env

        event: Mapping[str, Any] = {}
        if event_path := env.get("GITHUB_EVENT_PATH"):
            try:
                event = json.loads(Path(event_path).read_text())
            except (OSError, ValueError) as exc:
                log.warning("Could not read event payload %s: %s", event_path, exc)

        repository = env.get("GITHUB_REPOSITORY", "")
        owner, _, repo = repository.partition("/")
        if not owner or not repo:
            raise ConfigurationConflictError(
                "GITHUB_REPOSITORY must be set as <owner>/<repo> to comment on "
                f"pull requests, got {repository!r}"
            )

        return cls(
            token=token,
            repository=repository,
            api_base_url=env.get("GITHUB_API_URL") or "https://api.github.com",
            event_name=env.get("GITHUB_EVENT_NAME", ""),
            event=event,
            job=env.get("GITHUB_JOB", ""),
        )


@dataclass(frozen=True, kw_only=True)
class GitHubCommenter:
    """Creates or updates the single results comment of a pull request."""

    config: GitHubConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: GitHubConfig
    ) -> AsyncGenerator["GitHubCommenter", None]:
        """Create commenter with managed session lifecycle."""
        headers = {
            "Authorization": f"Bearer {config.token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
        }
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
        ) as session:
            yield cls(config=config, session=session)

    @property
    def watermark(self) -> str:
        return f"<!-- k6 GitHub Action Comment: {self.config.job} -->\n"

    async def get_pull_request_number(self) -> int | None:
        """Find the open pull request the workflow runs for.

        Pull request events carry the number. For pushes, the open pull
        requests of the pushed commit are listed and the one whose head branch
        matches the pushed ref wins, else the first one.
        """
        event = self.config.event
        if (pull_request := event.get("pull_request")) and pull_request.get("number"):
            return int(pull_request["number"])

        commit_sha: str | None = None
        if self.config.event_name in PULL_REQUEST_EVENTS:
            commit_sha = (event.get("pull_request") or {}).get("head", {}).get("sha")
        elif self.config.event_name == "push":
            commit_sha = event.get("after")

        if not commit_sha:
            log.debug("Commit SHA not found, unable to get pull request number.")
            return None

        url = (
            f"/repos/{self.config.owner}/{self.config.repo}"
            f"/commits/{commit_sha}/pulls"
        )
        async with self.session.get(url) as response:
            if response.status != 200:
                text = await response.text()
                raise RuntimeError(
                    f"Failed to list pull requests: {response.status} {text}"
                )
            pulls = await response.json()

        open_pulls = [pr for pr in pulls if pr.get("state") == "open"]
        ref = event.get("ref")
        for pr in open_pulls:
            if ref == f"refs/heads/{pr['head']['ref']}":
                return int(pr["number"])

        return int(open_pulls[0]["number"]) if open_pulls else None

    async def get_action_comment_id(self, pull_request_number: int) -> int | None:
        """Find the comment previously posted by this job, if any."""
        url = (
            f"/repos/{self.config.owner}/{self.config.repo}"
            f"/issues/{pull_request_number}/comments"
        )
        page = 1

        while True:
            params = {"per_page": "100", "page": str(page)}
            async with self.session.get(url, params=params) as response:
                if response.status != 200:
                    text = await response.text()
                    raise RuntimeError(
                        f"Failed to list comments: {response.status} {text}"
                    )
                comments = await response.json()

            for comment in comments:
                if (comment.get("body") or "").startswith(self.watermark):
                    return int(comment["id"])

            if len(comments) < 100:
                return None
            page += 1

    async def create_or_update_comment(
        self, pull_request_number: int, body: str
    ) -> None:
        """Post the comment, replacing the previous one of this job."""
        comment_id = await self.get_action_comment_id(pull_request_number)
        payload = {"body": self.watermark + body}
        base = f"/repos/{self.config.owner}/{self.config.repo}/issues"

        if comment_id is not None:
            request = self.session.patch(f"{base}/comments/{comment_id}", json=payload)
            expected = 200
        else:
            request = self.session.post(
                f"{base}/{pull_request_number}/comments", json=payload
            )
            expected = 201

        async with request as response:
            if response.status != expected:
                text = await response.text()
                raise RuntimeError(
                    f"Failed to write comment: {response.status} {text}"
                )


@dataclass(frozen=True, kw_only=True)
class PullRequestCommentReporter(ResultReporter):
    """Comments the test run URLs, and their summaries, on the pull request."""

    commenter: GitHubCommenter
    cloud_client: CloudResultsClient | None = None

    async def report(self, test_run_urls: Mapping[str, str]) -> None:
        if not test_run_urls:
            return

        log.debug("Generating PR comment")
        pull_request_number = await self.commenter.get_pull_request_number()
        if pull_request_number is None:
            log.debug("Pull request number not found, skipping comment creation")
            return

        cleaned = {
            clean_script_path(script_path): url
            for script_path, url in test_run_urls.items()
        }
        details = await self._fetch_details(cleaned)

        await self.commenter.create_or_update_comment(
            pull_request_number, results_comment_markdown(cleaned, details)
        )
        log.info("Results comment posted on pull request #%d", pull_request_number)

    async def _fetch_details(self, test_run_urls: Mapping[str, str]) -> dict[str, str]:
        client = self.cloud_client
        if client is None:
            return {}

        async def fetch(script_path: str, url: str) -> tuple[str, str] | None:
            if (test_run_id := extract_test_run_id(url)) is None:
                return None
            summary, checks = await asyncio.gather(
                client.fetch_test_run_summary(test_run_id),
                client.fetch_checks(test_run_id),
            )
            return script_path, run_summary_markdown(summary, checks)

        results = await asyncio.gather(
            *(fetch(script_path, url) for script_path, url in test_run_urls.items())
        )
        return dict(result for result in results if result is not None)
