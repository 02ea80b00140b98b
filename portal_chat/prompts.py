from __future__ import annotations

from typing import List, Optional

from .models import ExamFolder, ExamSubject


MAX_SCRIPT_LINKS = 5


def build_chat_prompt(message: str, student_email: Optional[str] = None, institution: str = "CMRIT") -> str:
    return (
        f"You are {institution} Assistant. Student: {student_email or 'anonymous'}. "
        f"Query: {message}. Answer briefly."
    )


def script_links(subject: ExamSubject, limit: int = MAX_SCRIPT_LINKS) -> List[str]:
    """First ``limit`` non-empty script URLs, in upload order."""
    return [s.url for s in subject.scripts if s.url][:limit]


def build_exam_summary_prompt(
    roll_no: str,
    folder: ExamFolder,
    subject: ExamSubject,
    institution: str = "CMRIT",
) -> str:
    links = script_links(subject)
    links_text = ", ".join(links) if links else "No script files uploaded."
    return f"""
You are an exam feedback assistant for {institution}.
Given: student roll number, subject, marks, and answer-script file links (teacher-uploaded scans/PDFs).

Task:
- Write a short summary of performance (3-5 lines).
- List 3 strengths (bullets).
- List 3 scope-of-improvement points (bullets).
- If the script links are provided, infer likely reasons for losing marks, but do NOT claim exact question-wise marks unless clearly visible.
- Keep it concise and student-friendly.

Input:
Roll No: {roll_no.strip()}
Exam: {folder.exam_name}
Subject: {subject.subject_name}
Marks: {subject.marks_obtained}/{subject.max_marks}
Answer script links: {links_text}
"""
