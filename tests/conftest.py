from __future__ import annotations

from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient

from portal_chat.api import create_app
from portal_chat.config import Settings
from portal_chat.errors import PortalError
from portal_chat.gateway import GenerationGateway
from portal_chat.models import ExamFolder
from portal_chat.providers import GenerationProvider
from portal_chat.repository import SQLiteExamFolderRepository


RETRY_INFO = "type.googleapis.com/google.rpc.RetryInfo"


class FakeAPIError(Exception):
    """Shaped like the google-genai APIError: code, status, message, details."""

    def __init__(self, code: int, message: str = "", status: Optional[str] = None, details: Any = None) -> None:
        super().__init__(f"{code} {status}. {message}")
        self.code = code
        self.status = status
        self.message = message
        self.details = details


def quota_error(retry_delay: Optional[str] = "32s") -> FakeAPIError:
    details = {
        "error": {
            "code": 429,
            "status": "RESOURCE_EXHAUSTED",
            "details": [
                {"@type": "type.googleapis.com/google.rpc.QuotaFailure", "violations": []},
                {"@type": RETRY_INFO, "retryDelay": retry_delay},
            ],
        }
    }
    return FakeAPIError(429, "You exceeded your current quota", "RESOURCE_EXHAUSTED", details)


class FakeProvider(GenerationProvider):
    def __init__(self, name: str = "fake", model: str = "fake-model", reply: str = "ok", error: Optional[Exception] = None) -> None:
        super().__init__(model)
        self.name = name
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def _complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeFetcher:
    def __init__(self, folders: Optional[List[ExamFolder]] = None, error: Optional[PortalError] = None) -> None:
        self.folders = folders or []
        self.error = error
        self.calls: List[tuple] = []

    async def fetch_folders(self, roll_no: str, origin: str) -> List[ExamFolder]:
        self.calls.append((roll_no, origin))
        if self.error is not None:
            raise self.error
        return self.folders


def make_folder(exam_name: str = "Mid-1", subjects: Optional[list] = None, **extra: Any) -> ExamFolder:
    payload = {"_id": f"folder-{exam_name}", "studentRollNo": "21CMR001", "examName": exam_name}
    payload["subjects"] = subjects if subjects is not None else [
        {
            "subjectName": "DSA",
            "marksObtained": 18,
            "maxMarks": 25,
            "scripts": [{"url": "http://files.local/dsa-1.pdf"}, {"url": "http://files.local/dsa-2.pdf"}],
        }
    ]
    payload.update(extra)
    return ExamFolder.model_validate(payload)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(exam_db_path=str(tmp_path / "exams.db"), institution_name="CMRIT")


@pytest.fixture
def primary() -> FakeProvider:
    return FakeProvider(name="gemini", model="gemini-2.5-flash", reply="Primary answer")


@pytest.fixture
def secondary() -> FakeProvider:
    return FakeProvider(name="azure-openai", model="gpt-4o-mini", reply="Secondary answer")


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(folders=[make_folder("Mid-2"), make_folder("Mid-1")])


@pytest.fixture
def repository(settings) -> SQLiteExamFolderRepository:
    return SQLiteExamFolderRepository(settings.exam_db_path)


@pytest.fixture
def client(settings, primary, secondary, fetcher, repository) -> TestClient:
    app = create_app(
        settings,
        gateway=GenerationGateway(primary, secondary),
        fetcher=fetcher,
        repository=repository,
    )
    return TestClient(app)
