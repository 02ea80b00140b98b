from __future__ import annotations

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .repository import Folder, Script, Subject


Number = Union[int, float]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- chatbot ---------------------------------------------------------------


class ChatRequest(CamelModel):
    message: Optional[str] = None
    student_email: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
    model: Optional[str] = None


class ExamSummaryRequest(CamelModel):
    roll_no: Optional[str] = None
    subject_name: Optional[str] = None
    exam_name: Optional[str] = None
    message: Optional[str] = None


class ExamSummaryMeta(CamelModel):
    roll_no: str
    exam_name: str
    subject_name: str
    marks_obtained: Optional[Number] = None
    max_marks: Optional[Number] = None
    script_count: Optional[int] = None
    model: Optional[str] = None


class ExamSummaryResponse(BaseModel):
    response: str
    meta: ExamSummaryMeta


# --- exam records ----------------------------------------------------------


class ExamScript(CamelModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    file_name: Optional[str] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    uploaded_at: Optional[str] = None

    @classmethod
    def from_record(cls, script: Script) -> "ExamScript":
        return cls(
            id=script.id,
            file_name=script.file_name,
            original_name=script.original_name,
            mime_type=script.mime_type,
            size=script.size,
            url=script.url,
            uploaded_at=script.uploaded_at.isoformat(),
        )


class ExamSubject(CamelModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    subject_name: Optional[str] = None
    marks_obtained: Optional[Number] = None
    max_marks: Optional[Number] = 100
    scripts: List[ExamScript] = Field(default_factory=list)

    @classmethod
    def from_record(cls, subject: Subject) -> "ExamSubject":
        return cls(
            id=subject.id,
            subject_name=subject.subject_name,
            marks_obtained=subject.marks_obtained,
            max_marks=subject.max_marks,
            scripts=[ExamScript.from_record(s) for s in subject.scripts],
        )


class ExamFolder(CamelModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    student_roll_no: Optional[str] = None
    student_email: Optional[str] = None
    student_name: Optional[str] = None
    mentor_teacher_email: Optional[str] = None
    exam_name: str
    published: bool = True
    subjects: List[ExamSubject] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, folder: Folder) -> "ExamFolder":
        return cls(
            id=folder.id,
            student_roll_no=folder.student_roll_no,
            student_email=folder.student_email,
            student_name=folder.student_name,
            mentor_teacher_email=folder.mentor_teacher_email,
            exam_name=folder.exam_name,
            published=folder.published,
            subjects=[ExamSubject.from_record(s) for s in folder.subjects],
            created_at=folder.created_at.isoformat(),
            updated_at=folder.updated_at.isoformat(),
        )


class FoldersResponse(BaseModel):
    folders: List[ExamFolder]


class FolderResponse(BaseModel):
    message: str
    folder: ExamFolder


class FolderDetailResponse(BaseModel):
    folder: ExamFolder


class SubjectResponse(BaseModel):
    message: str
    subject: ExamSubject


class CreateFolderRequest(CamelModel):
    student_roll_no: Optional[str] = None
    mentor_teacher_email: Optional[str] = None
    exam_name: Optional[str] = None
    student_email: Optional[str] = None
    student_name: Optional[str] = None


class UpsertSubjectRequest(CamelModel):
    subject_name: Optional[str] = None
    marks_obtained: Optional[Number] = None
    max_marks: Optional[Number] = None


class ScriptIn(CamelModel):
    url: str
    file_name: Optional[str] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


class AddScriptsRequest(CamelModel):
    scripts: List[ScriptIn] = Field(default_factory=list)


# Explicit exports
__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ExamSummaryRequest",
    "ExamSummaryMeta",
    "ExamSummaryResponse",
    "ExamScript",
    "ExamSubject",
    "ExamFolder",
    "FoldersResponse",
    "FolderResponse",
    "FolderDetailResponse",
    "SubjectResponse",
    "CreateFolderRequest",
    "UpsertSubjectRequest",
    "ScriptIn",
    "AddScriptsRequest",
]
