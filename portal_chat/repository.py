from __future__ import annotations

import os
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple, Union


Number = Union[int, float]


@dataclass(frozen=True)
class Script:
    id: str
    url: Optional[str]
    file_name: Optional[str]
    original_name: Optional[str]
    mime_type: Optional[str]
    size: Optional[int]
    uploaded_at: datetime


@dataclass(frozen=True)
class Subject:
    id: str
    subject_name: str
    marks_obtained: Number
    max_marks: Number
    scripts: Tuple[Script, ...] = ()


@dataclass(frozen=True)
class Folder:
    id: str
    student_roll_no: str
    mentor_teacher_email: str
    exam_name: str
    student_email: Optional[str]
    student_name: Optional[str]
    published: bool
    created_at: datetime
    updated_at: datetime
    subjects: Tuple[Subject, ...] = ()


@dataclass(frozen=True)
class NewScript:
    url: str
    file_name: Optional[str] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExamFolderRepository:
    def get_or_create_folder(
        self,
        student_roll_no: str,
        mentor_teacher_email: str,
        exam_name: str,
        student_email: Optional[str] = None,
        student_name: Optional[str] = None,
    ) -> Folder:
        raise NotImplementedError

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        raise NotImplementedError

    def list_folders(self, student_roll_no: str) -> List[Folder]:
        raise NotImplementedError

    def upsert_subject(
        self, folder_id: str, subject_name: str, marks_obtained: Number, max_marks: Number
    ) -> Optional[Folder]:
        raise NotImplementedError

    def add_scripts(
        self, folder_id: str, subject_id: str, scripts: Sequence[NewScript]
    ) -> Optional[Subject]:
        raise NotImplementedError


class SQLiteExamFolderRepository(ExamFolderRepository):
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS exam_folders (
                    id TEXT PRIMARY KEY,
                    student_roll_no TEXT NOT NULL,
                    mentor_teacher_email TEXT NOT NULL,
                    exam_name TEXT NOT NULL,
                    student_email TEXT,
                    student_name TEXT,
                    published INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS exam_subjects (
                    id TEXT PRIMARY KEY,
                    folder_id TEXT NOT NULL,
                    subject_name TEXT NOT NULL,
                    marks_obtained NUMERIC NOT NULL,
                    max_marks NUMERIC NOT NULL,
                    FOREIGN KEY(folder_id) REFERENCES exam_folders(id) ON DELETE CASCADE
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS exam_scripts (
                    id TEXT PRIMARY KEY,
                    subject_id TEXT NOT NULL,
                    url TEXT,
                    file_name TEXT,
                    original_name TEXT,
                    mime_type TEXT,
                    size INTEGER,
                    uploaded_at TEXT NOT NULL,
                    FOREIGN KEY(subject_id) REFERENCES exam_subjects(id) ON DELETE CASCADE
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_folders_roll_created ON exam_folders(student_roll_no, created_at)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_subjects_folder ON exam_subjects(folder_id)"
            )
            conn.commit()

    # --- reads ---------------------------------------------------------------

    def _load_subjects(self, conn: sqlite3.Connection, folder_id: str) -> Tuple[Subject, ...]:
        rows = conn.execute(
            "SELECT id, subject_name, marks_obtained, max_marks FROM exam_subjects "
            "WHERE folder_id=? ORDER BY rowid",
            (folder_id,),
        ).fetchall()
        return tuple(self._subject_from_row(conn, row) for row in rows)

    def _subject_from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Subject:
        scripts = conn.execute(
            "SELECT id, url, file_name, original_name, mime_type, size, uploaded_at "
            "FROM exam_scripts WHERE subject_id=? ORDER BY rowid",
            (row["id"],),
        ).fetchall()
        return Subject(
            id=row["id"],
            subject_name=row["subject_name"],
            marks_obtained=row["marks_obtained"],
            max_marks=row["max_marks"],
            scripts=tuple(
                Script(
                    id=s["id"],
                    url=s["url"],
                    file_name=s["file_name"],
                    original_name=s["original_name"],
                    mime_type=s["mime_type"],
                    size=s["size"],
                    uploaded_at=datetime.fromisoformat(s["uploaded_at"]),
                )
                for s in scripts
            ),
        )

    def _folder_from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Folder:
        return Folder(
            id=row["id"],
            student_roll_no=row["student_roll_no"],
            mentor_teacher_email=row["mentor_teacher_email"],
            exam_name=row["exam_name"],
            student_email=row["student_email"],
            student_name=row["student_name"],
            published=bool(row["published"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            subjects=self._load_subjects(conn, row["id"]),
        )

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM exam_folders WHERE id=?", (folder_id,)).fetchone()
            return self._folder_from_row(conn, row) if row is not None else None

    def list_folders(self, student_roll_no: str) -> List[Folder]:
        with self._connect() as conn:
            # Most recent first; rowid breaks ties between folders created in the same instant
            rows = conn.execute(
                "SELECT * FROM exam_folders WHERE student_roll_no=? ORDER BY created_at DESC, rowid DESC",
                (student_roll_no,),
            ).fetchall()
            return [self._folder_from_row(conn, row) for row in rows]

    # --- writes --------------------------------------------------------------

    def get_or_create_folder(
        self,
        student_roll_no: str,
        mentor_teacher_email: str,
        exam_name: str,
        student_email: Optional[str] = None,
        student_name: Optional[str] = None,
    ) -> Folder:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM exam_folders WHERE student_roll_no=? AND mentor_teacher_email=? AND exam_name=?",
                (student_roll_no, mentor_teacher_email, exam_name),
            ).fetchone()
            if row is not None:
                return self._folder_from_row(conn, row)

            folder_id = str(uuid.uuid4())
            now = _now()
            conn.execute(
                "INSERT INTO exam_folders (id, student_roll_no, mentor_teacher_email, exam_name, "
                "student_email, student_name, published, created_at, updated_at) VALUES (?,?,?,?,?,?,1,?,?)",
                (
                    folder_id,
                    student_roll_no,
                    mentor_teacher_email,
                    exam_name,
                    student_email,
                    student_name,
                    now,
                    now,
                ),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM exam_folders WHERE id=?", (folder_id,)).fetchone()
            return self._folder_from_row(conn, row)

    def upsert_subject(
        self, folder_id: str, subject_name: str, marks_obtained: Number, max_marks: Number
    ) -> Optional[Folder]:
        with self._connect() as conn:
            if conn.execute("SELECT 1 FROM exam_folders WHERE id=?", (folder_id,)).fetchone() is None:
                return None
            existing = conn.execute(
                "SELECT id FROM exam_subjects WHERE folder_id=? AND lower(subject_name)=lower(?)",
                (folder_id, subject_name),
            ).fetchone()
            if existing is None:
                conn.execute(
                    "INSERT INTO exam_subjects (id, folder_id, subject_name, marks_obtained, max_marks) "
                    "VALUES (?,?,?,?,?)",
                    (str(uuid.uuid4()), folder_id, subject_name, marks_obtained, max_marks),
                )
            else:
                conn.execute(
                    "UPDATE exam_subjects SET marks_obtained=?, max_marks=? WHERE id=?",
                    (marks_obtained, max_marks, existing["id"]),
                )
            conn.execute("UPDATE exam_folders SET updated_at=? WHERE id=?", (_now(), folder_id))
            conn.commit()
            row = conn.execute("SELECT * FROM exam_folders WHERE id=?", (folder_id,)).fetchone()
            return self._folder_from_row(conn, row)

    def add_scripts(
        self, folder_id: str, subject_id: str, scripts: Sequence[NewScript]
    ) -> Optional[Subject]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, subject_name, marks_obtained, max_marks FROM exam_subjects "
                "WHERE id=? AND folder_id=?",
                (subject_id, folder_id),
            ).fetchone()
            if row is None:
                return None
            now = _now()
            conn.executemany(
                "INSERT INTO exam_scripts (id, subject_id, url, file_name, original_name, mime_type, size, uploaded_at) "
                "VALUES (?,?,?,?,?,?,?,?)",
                [
                    (
                        str(uuid.uuid4()),
                        subject_id,
                        s.url,
                        s.file_name,
                        s.original_name,
                        s.mime_type,
                        s.size,
                        now,
                    )
                    for s in scripts
                ],
            )
            conn.execute("UPDATE exam_folders SET updated_at=? WHERE id=?", (now, folder_id))
            conn.commit()
            return self._subject_from_row(conn, row)
