from collections.abc import Callable, Iterable

import pytest

from code_assistant.services.crm import CRMData, CRMStore, User
from code_assistant.services.git import CommitInfo, ProjectStats


class ScriptedLLM:
    """Completion model that replays canned responses and records prompts.

    Exceptions in the script are raised instead of returned. Once the script
    is exhausted, `default` is returned for every further call.
    """

    def __init__(self, responses: Iterable[str | Exception] = (), default: str | None = None) -> None:
        self.responses = list(responses)
        self.default = default
        self.prompts: list[str] = []

    def invoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise RuntimeError("script exhausted")
        if isinstance(item, Exception):
            raise item
        return item


class FakeGit:
    def __init__(self, branch: str = "main", status: str = "") -> None:
        self.branch = branch
        self.status_text = status

    def current_branch(self) -> str:
        return self.branch

    def status(self) -> str:
        return self.status_text

    def project_stats(self) -> ProjectStats:
        commit = CommitInfo(hash="abc123", author="Ada", date="2026-01-01", message="Initial commit")
        return ProjectStats(
            branch=self.branch, total_commits=1, latest_commits=[commit], file_count=2
        )


@pytest.fixture
def make_llm() -> Callable[..., ScriptedLLM]:
    return ScriptedLLM


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def crm_store(tmp_path) -> CRMStore:
    path = tmp_path / "crm.json"
    data = CRMData(users=[User(id="user_1", name="Ada", email="ada@example.com", plan="pro")])
    path.write_text(data.model_dump_json(), encoding="utf-8")
    return CRMStore(path)
