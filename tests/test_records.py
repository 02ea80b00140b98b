import asyncio

import httpx
import pytest

from conftest import make_folder
from portal_chat.errors import ErrorKind, PortalError, UpstreamError
from portal_chat.records import RecordFetcher, find_subject, select_folder


FOLDERS = {
    "folders": [
        {"_id": "f2", "studentRollNo": "21CMR001", "examName": "Mid-2", "subjects": []},
        {"_id": "f1", "studentRollNo": "21CMR001", "examName": "Mid-1", "subjects": [], "extraField": 1},
    ]
}


def fetch(handler, roll_no="21CMR001", origin="http://portal.local", **kwargs):
    fetcher = RecordFetcher(transport=httpx.MockTransport(handler), **kwargs)
    return asyncio.run(fetcher.fetch_folders(roll_no, origin))


def test_fetches_folders_from_request_origin():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json=FOLDERS)

    folders = fetch(handler, roll_no=" 21CMR001 ")
    assert [f.exam_name for f in folders] == ["Mid-2", "Mid-1"]
    assert folders[0].id == "f2"
    assert seen[0].host == "portal.local"
    assert seen[0].path == "/api/exams/student/folders"
    assert seen[0].params["rollNo"] == "21CMR001"


def test_configured_base_url_wins_over_origin():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={"folders": []})

    assert fetch(handler, base_url="https://records.internal/") == []
    assert str(seen[0]).startswith("https://records.internal/api/exams/student/folders")


def test_collaborator_error_keeps_status_and_message():
    def handler(request):
        return httpx.Response(400, json={"message": "rollNo is required"})

    with pytest.raises(UpstreamError) as exc_info:
        fetch(handler)
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "rollNo is required"


def test_collaborator_error_without_json_body():
    def handler(request):
        return httpx.Response(502, text="<html>Bad gateway</html>")

    with pytest.raises(UpstreamError) as exc_info:
        fetch(handler)
    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Failed to load exam folders"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"items": []}),
        httpx.Response(200, json={"folders": "nope"}),
        httpx.Response(200, json={"folders": [{"studentRollNo": "21CMR001"}]}),
    ],
)
def test_malformed_payload_is_server_error(response):
    with pytest.raises(PortalError) as exc_info:
        fetch(lambda request: response)
    assert exc_info.value.kind is ErrorKind.SERVER_ERROR
    assert exc_info.value.status_code == 500


def test_network_failure_is_server_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PortalError) as exc_info:
        fetch(handler)
    assert exc_info.value.status_code == 500


def test_select_folder_defaults_to_most_recent():
    folders = [make_folder("Mid-2"), make_folder("Mid-1")]
    assert select_folder(folders).exam_name == "Mid-2"
    assert select_folder(folders, "  ").exam_name == "Mid-2"
    assert select_folder([]) is None


def test_select_folder_by_name_is_case_insensitive():
    folders = [make_folder("Mid-2"), make_folder("Mid-1"), make_folder("mid-1")]
    assert select_folder(folders, " MID-1 ") is folders[1]
    assert select_folder(folders, "End-Sem") is None


def test_find_subject_is_case_insensitive():
    folder = make_folder("Mid-1")
    assert find_subject(folder, "dsa").subject_name == "DSA"
    assert find_subject(folder, "DBMS") is None
    assert find_subject(folder, "") is None


def test_subjects_without_a_name_are_skipped():
    payload = {
        "folders": [
            {
                "_id": "f1",
                "examName": "Mid-1",
                "subjects": [
                    {"_id": "s0", "marksObtained": 4},
                    {"_id": "s1", "subjectName": "DSA", "marksObtained": 18, "maxMarks": 25},
                ],
            }
        ]
    }
    folders = fetch(lambda request: httpx.Response(200, json=payload))
    assert folders[0].subjects[0].subject_name is None
    assert find_subject(folders[0], "dsa").id == "s1"
    assert find_subject(folders[0], "None") is None
