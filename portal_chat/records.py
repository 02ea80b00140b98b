from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError as SchemaError

from .errors import PortalError, UpstreamError
from .models import ExamFolder, ExamSubject


logger = logging.getLogger(__name__)

FOLDERS_PATH = "/api/exams/student/folders"
LOAD_FAILED_MESSAGE = "Failed to load exam folders"


class RecordFetcher:
    """Reads a student's exam folders from the exam-records endpoint over HTTP.

    Folders are returned in the collaborator's order (most recent first); no
    re-sorting happens here. ``base_url`` pins the collaborator; otherwise the
    caller passes the current request origin.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout
        self._transport = transport

    async def fetch_folders(self, roll_no: str, origin: str) -> List[ExamFolder]:
        base = self._base_url or origin.rstrip("/")
        url = base + FOLDERS_PATH
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(url, params={"rollNo": roll_no.strip()})
        except httpx.HTTPError as e:
            logger.error("Exam folders request to %s failed: %s", url, e)
            raise PortalError(LOAD_FAILED_MESSAGE) from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            raise UpstreamError(message or LOAD_FAILED_MESSAGE, status_code=resp.status_code)

        folders = data.get("folders") if isinstance(data, dict) else None
        if not isinstance(folders, list):
            logger.error("Malformed exam folders payload from %s", url)
            raise PortalError(LOAD_FAILED_MESSAGE)
        try:
            return [ExamFolder.model_validate(item) for item in folders]
        except SchemaError as e:
            logger.error("Invalid exam folder in payload from %s: %s", url, e)
            raise PortalError(LOAD_FAILED_MESSAGE) from e


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def select_folder(folders: List[ExamFolder], exam_name: Optional[str] = None) -> Optional[ExamFolder]:
    if not folders:
        return None
    if not _norm(exam_name):
        return folders[0]
    target = _norm(exam_name)
    return next((f for f in folders if _norm(f.exam_name) == target), None)


def find_subject(folder: ExamFolder, subject_name: Optional[str]) -> Optional[ExamSubject]:
    target = _norm(subject_name)
    if not target:
        return None
    return next((s for s in folder.subjects if s.subject_name and _norm(s.subject_name) == target), None)
