from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from .classifier import classify_error
from .config import Settings, get_settings
from .errors import ForbiddenError, NotFoundError, ValidationError
from .gateway import GenerationGateway
from .logging_config import configure_logging
from .models import (
    AddScriptsRequest,
    ChatRequest,
    ChatResponse,
    CreateFolderRequest,
    ExamFolder,
    ExamSubject,
    ExamSummaryRequest,
    ExamSummaryResponse,
    FolderDetailResponse,
    FolderResponse,
    FoldersResponse,
    SubjectResponse,
    UpsertSubjectRequest,
)
from .providers import build_providers
from .records import RecordFetcher
from .repository import ExamFolderRepository, NewScript, SQLiteExamFolderRepository
from .service import ChatService, ExamSummaryService


logger = logging.getLogger(__name__)

chat_router = APIRouter()
exams_router = APIRouter(prefix="/api/exams")


def request_origin(request: Request) -> str:
    """Origin of the current request, honouring a reverse proxy's scheme."""
    forwarded = request.headers.get("x-forwarded-proto")
    proto = forwarded.split(",")[0].strip() if forwarded else request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def _norm(value: Optional[str]) -> str:
    return (value or "").strip()


# --- chatbot ---------------------------------------------------------------


@chat_router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, request: Request):
    service: ChatService = request.app.state.chat_service
    try:
        result = await service.ask(req.message, req.student_email)
        return ChatResponse(response=result.text, model=result.model)
    except Exception as e:
        return classify_error(e).to_response()


@chat_router.post("/exam-summary", response_model=ExamSummaryResponse)
async def exam_summary(req: ExamSummaryRequest, request: Request):
    service: ExamSummaryService = request.app.state.exam_summary_service
    try:
        summary = await service.summarize(req, request_origin(request))
        return ExamSummaryResponse(response=summary.text, meta=summary.meta)
    except Exception as e:
        return classify_error(e).to_response()


# --- exam records ----------------------------------------------------------


@exams_router.post("/teacher/create-folder", response_model=FolderResponse)
def create_folder(req: CreateFolderRequest, request: Request):
    repo: ExamFolderRepository = request.app.state.exam_repository
    try:
        roll_no = _norm(req.student_roll_no)
        teacher_email = _norm(req.mentor_teacher_email).lower()
        exam_name = _norm(req.exam_name)
        if not roll_no or not teacher_email or not exam_name:
            raise ValidationError("studentRollNo, mentorTeacherEmail, examName are required")
        folder = repo.get_or_create_folder(
            roll_no,
            teacher_email,
            exam_name,
            student_email=_norm(req.student_email).lower() or None,
            student_name=_norm(req.student_name) or None,
        )
        return FolderResponse(message="Folder ready", folder=ExamFolder.from_record(folder))
    except Exception as e:
        return classify_error(e).to_response()


@exams_router.post("/teacher/{folder_id}/upsert-subject", response_model=FolderResponse)
def upsert_subject(folder_id: str, req: UpsertSubjectRequest, request: Request):
    repo: ExamFolderRepository = request.app.state.exam_repository
    try:
        subject_name = _norm(req.subject_name)
        if not subject_name or req.marks_obtained is None:
            raise ValidationError("subjectName and marksObtained are required")
        max_marks = req.max_marks if req.max_marks is not None else 100
        folder = repo.upsert_subject(folder_id, subject_name, req.marks_obtained, max_marks)
        if folder is None:
            raise NotFoundError("Exam folder not found")
        return FolderResponse(message="Subject saved", folder=ExamFolder.from_record(folder))
    except Exception as e:
        return classify_error(e).to_response()


@exams_router.post("/teacher/{folder_id}/{subject_id}/scripts", response_model=SubjectResponse)
def add_scripts(folder_id: str, subject_id: str, req: AddScriptsRequest, request: Request):
    repo: ExamFolderRepository = request.app.state.exam_repository
    try:
        scripts = [
            NewScript(
                url=s.url.strip(),
                file_name=s.file_name,
                original_name=s.original_name,
                mime_type=s.mime_type,
                size=s.size,
            )
            for s in req.scripts
            if s.url.strip()
        ]
        if not scripts:
            raise ValidationError("No scripts uploaded")
        if repo.get_folder(folder_id) is None:
            raise NotFoundError("Exam folder not found")
        subject = repo.add_scripts(folder_id, subject_id, scripts)
        if subject is None:
            raise NotFoundError("Subject not found")
        return SubjectResponse(message="Scripts added", subject=ExamSubject.from_record(subject))
    except Exception as e:
        return classify_error(e).to_response()


@exams_router.get("/student/folders", response_model=FoldersResponse)
def list_student_folders(request: Request, roll_no: Optional[str] = Query(default=None, alias="rollNo")):
    repo: ExamFolderRepository = request.app.state.exam_repository
    try:
        if not _norm(roll_no):
            raise ValidationError("rollNo is required")
        folders = repo.list_folders(_norm(roll_no))
        return FoldersResponse(folders=[ExamFolder.from_record(f) for f in folders])
    except Exception as e:
        return classify_error(e).to_response()


@exams_router.get("/student/folders/{folder_id}", response_model=FolderDetailResponse)
def get_student_folder(
    folder_id: str, request: Request, roll_no: Optional[str] = Query(default=None, alias="rollNo")
):
    repo: ExamFolderRepository = request.app.state.exam_repository
    try:
        if not _norm(roll_no):
            raise ValidationError("rollNo is required")
        folder = repo.get_folder(folder_id)
        if folder is None:
            raise NotFoundError("Folder not found")
        if folder.student_roll_no != _norm(roll_no):
            raise ForbiddenError("Not allowed")
        return FolderDetailResponse(folder=ExamFolder.from_record(folder))
    except Exception as e:
        return classify_error(e).to_response()


# --- application -----------------------------------------------------------


async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"message": "Invalid request body"})


def create_app(
    settings: Optional[Settings] = None,
    *,
    gateway: Optional[GenerationGateway] = None,
    fetcher: Optional[RecordFetcher] = None,
    repository: Optional[ExamFolderRepository] = None,
) -> FastAPI:
    """Build the API with its collaborators constructed once, up front."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if gateway is None:
        gateway = GenerationGateway(*build_providers(settings))
    if fetcher is None:
        fetcher = RecordFetcher(
            base_url=settings.exam_records_base_url,
            timeout=settings.exam_records_timeout,
        )
    if repository is None:
        repository = SQLiteExamFolderRepository(settings.exam_db_path)

    app = FastAPI(title="College Portal Chat API", version="1.0.0")
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.exam_repository = repository
    app.state.chat_service = ChatService(gateway, institution=settings.institution_name)
    app.state.exam_summary_service = ExamSummaryService(
        gateway, fetcher, institution=settings.institution_name
    )

    app.add_exception_handler(RequestValidationError, _invalid_body)
    if settings.allowed_hosts:
        # request_origin feeds the Host header into the collaborator URL
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts))
    elif not settings.exam_records_base_url:
        logger.warning(
            "Exam records are read from the client-supplied Host; "
            "set EXAM_RECORDS_BASE_URL or ALLOWED_HOSTS in production"
        )

    @app.get("/healthz")
    async def healthz() -> dict:
        return {
            "status": "ok",
            "providers": {
                "primary": gateway.primary.model if gateway.primary else None,
                "secondary": gateway.secondary.model if gateway.secondary else None,
            },
        }

    app.include_router(chat_router)
    app.include_router(exams_router)
    return app
