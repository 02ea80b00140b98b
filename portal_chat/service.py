from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import NotFoundError, ValidationError
from .extraction import QueryExtractor
from .gateway import GenerationGateway, GenerationResult
from .models import ExamSummaryMeta, ExamSummaryRequest
from .prompts import build_chat_prompt, build_exam_summary_prompt
from .records import RecordFetcher, find_subject, select_folder


logger = logging.getLogger(__name__)


class ChatService:
    """General-purpose chatbot: one prompt, one answer."""

    def __init__(self, gateway: GenerationGateway, institution: str = "CMRIT") -> None:
        self._gateway = gateway
        self._institution = institution

    async def ask(self, message: Optional[str], student_email: Optional[str] = None) -> GenerationResult:
        if not message or not message.strip():
            raise ValidationError("Message required")
        prompt = build_chat_prompt(message, student_email, institution=self._institution)
        return await self._gateway.generate(prompt)


@dataclass(frozen=True)
class ExamSummary:
    text: str
    meta: ExamSummaryMeta


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class ExamSummaryService:
    """Summarizes a student's exam performance from the exam-records collaborator."""

    def __init__(
        self,
        gateway: GenerationGateway,
        fetcher: RecordFetcher,
        extractor: Optional[QueryExtractor] = None,
        institution: str = "CMRIT",
    ) -> None:
        self._gateway = gateway
        self._fetcher = fetcher
        self._extractor = extractor or QueryExtractor()
        self._institution = institution

    def resolve(self, req: ExamSummaryRequest) -> ExamSummaryRequest:
        """Fill fields missing from the request with values extracted from its message."""
        roll_no = _clean(req.roll_no)
        subject_name = _clean(req.subject_name)
        exam_name = _clean(req.exam_name)

        if req.message and not (roll_no and subject_name and exam_name):
            extracted = self._extractor.extract(req.message)
            roll_no = roll_no or extracted.roll_no
            subject_name = subject_name or extracted.subject_name
            exam_name = exam_name or extracted.exam_name

        if not roll_no or not subject_name:
            raise ValidationError("rollNo and subjectName are required")
        return ExamSummaryRequest(
            roll_no=roll_no, subject_name=subject_name, exam_name=exam_name, message=req.message
        )

    async def summarize(self, req: ExamSummaryRequest, origin: str) -> ExamSummary:
        resolved = self.resolve(req)
        self._gateway.ensure_available()

        folders = await self._fetcher.fetch_folders(resolved.roll_no, origin)
        if not folders:
            raise NotFoundError("No exam folders found for this roll number")

        folder = select_folder(folders, resolved.exam_name)
        if folder is None:
            raise NotFoundError("Exam not found for given examName")

        subject = find_subject(folder, resolved.subject_name)
        if subject is None:
            raise NotFoundError(
                f'Subject "{resolved.subject_name}" not found in exam "{folder.exam_name}"'
            )

        logger.info(
            "Exam summary for %s: exam=%s subject=%s",
            resolved.roll_no,
            folder.exam_name,
            subject.subject_name,
        )
        prompt = build_exam_summary_prompt(
            resolved.roll_no, folder, subject, institution=self._institution
        )
        result = await self._gateway.generate(prompt)

        return ExamSummary(
            text=result.text,
            meta=ExamSummaryMeta(
                roll_no=resolved.roll_no,
                exam_name=folder.exam_name,
                subject_name=subject.subject_name,
                marks_obtained=subject.marks_obtained,
                max_marks=subject.max_marks,
                script_count=len(subject.scripts),
                model=result.model,
            ),
        )
