"""Tests for the file library endpoints and storage service."""
import pytest

from aailar.config import FileSettings
from aailar.files.schemas import FileKind, get_file_kind
from aailar.files.service import (
    FileStorageService,
    FileTooLargeError,
    UnknownCategoryError,
    UnsupportedFileTypeError,
)
from conftest import DELETE_PASSWORD, UPLOAD_PASSWORD

PDF = ("algebra-notes.pdf", b"%PDF-1.4 algebra", "application/pdf")
PNG = ("cover.png", b"\x89PNG fake", "image/png")


def upload(client, *files, category="academic", password=UPLOAD_PASSWORD):
    return client.post(
        "/api/files/upload",
        data={"category": category, "password": password},
        files=[("files", f) for f in files],
    )


@pytest.fixture
def service(tmp_path):
    svc = FileStorageService(FileSettings(
        upload_dir=str(tmp_path / "store"),
        db_path=str(tmp_path / "store.duckdb"),
        max_file_size_bytes=100,
    ))
    yield svc
    svc.close()


class TestFileService:
    def test_save_and_get(self, service):
        metadata = service.save_file("a.pdf", b"data", "application/pdf", "academic", "alice")

        fetched = service.get_file(metadata.id)
        assert fetched.original_name == "a.pdf"
        assert fetched.kind == FileKind.PDF
        assert fetched.uploader_name == "alice"
        assert fetched.filename.endswith(".pdf")
        assert service.get_file_path(metadata.id).read_bytes() == b"data"

    def test_rejects_oversized(self, service):
        with pytest.raises(FileTooLargeError):
            service.save_file("big.pdf", b"x" * 101, "application/pdf", "academic")

    def test_rejects_unsupported_type(self, service):
        with pytest.raises(UnsupportedFileTypeError):
            service.save_file("run.sh", b"echo", "text/x-shellscript", "academic")

    def test_rejects_unknown_category(self, service):
        with pytest.raises(UnknownCategoryError):
            service.save_file("a.pdf", b"data", "application/pdf", "gossip")

    def test_search_filters(self, service):
        service.save_file("Linear Algebra.pdf", b"1", "application/pdf", "academic")
        service.save_file("beach.png", b"2", "image/png", "relaxing")
        service.save_file("algebra-cheatsheet.png", b"3", "image/png", "academic")

        names = lambda files: sorted(f.original_name for f in files)

        assert names(service.search_files("ALGEBRA")) == ["Linear Algebra.pdf", "algebra-cheatsheet.png"]
        assert names(service.search_files("algebra", category="academic", file_type="image")) == [
            "algebra-cheatsheet.png"
        ]
        assert names(service.search_files(file_type="application/pdf")) == ["Linear Algebra.pdf"]
        assert names(service.search_files("", category="all", file_type="all")) == [
            "Linear Algebra.pdf", "algebra-cheatsheet.png", "beach.png"
        ]
        assert names(service.files_by_category("relaxing")) == ["beach.png"]

    def test_search_treats_wildcards_literally(self, service):
        service.save_file("100%.pdf", b"1", "application/pdf", "academic")
        service.save_file("other.pdf", b"2", "application/pdf", "academic")

        assert [f.original_name for f in service.search_files("%")] == ["100%.pdf"]

    def test_delete_removes_bytes_and_row(self, service):
        metadata = service.save_file("a.pdf", b"data", "application/pdf", "academic")
        path = service.get_file_path(metadata.id)

        deleted = service.delete_file(metadata.id)

        assert deleted.id == metadata.id
        assert not path.exists()
        assert service.get_file(metadata.id) is None
        assert service.delete_file(metadata.id) is None


def test_get_file_kind():
    assert get_file_kind("image/jpeg") == FileKind.IMAGE
    assert get_file_kind("application/vnd.ms-excel") == FileKind.SPREADSHEET
    assert get_file_kind("text/plain") == FileKind.OTHER


class TestFileEndpoints:
    def test_upload_requires_password(self, api_client):
        response = upload(api_client, PDF, password="wrong")
        assert response.status_code == 403
        assert api_client.get("/api/files").json() == []

    def test_upload_requires_known_category(self, api_client):
        assert upload(api_client, PDF, category="").status_code == 400
        assert upload(api_client, PDF, category="gossip").status_code == 400

    def test_upload_rejects_type_and_size(self, api_client):
        assert upload(api_client, ("x.txt", b"hi", "text/plain")).status_code == 415
        assert upload(api_client, ("big.pdf", b"x" * 2048, "application/pdf")).status_code == 413

    def test_batch_with_one_bad_file_stores_nothing(self, api_client):
        from conftest import join

        with api_client.websocket_connect("/ws/chat") as ws:
            join(ws, "alice")

            response = upload(api_client, PDF, ("x.txt", b"hi", "text/plain"))
            assert response.status_code == 415
            assert api_client.get("/api/files").json() == []

            # The next frame is the message, not a stray file-uploaded event
            ws.send_json({"type": "send-message", "body": "ping"})
            assert ws.receive_json()["type"] == "message-created"

    def test_upload_list_and_search(self, api_client):
        response = upload(api_client, PDF, PNG)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Files uploaded successfully"
        assert len(body["files"]) == 2

        listed = api_client.get("/api/files").json()
        assert {f["original_name"] for f in listed} == {"algebra-notes.pdf", "cover.png"}

        by_category = api_client.get("/api/files/category/academic").json()
        assert len(by_category) == 2
        assert api_client.get("/api/files/category/sessions").json() == []

        found = api_client.get("/api/files/search", params={"q": "ALGEBRA"}).json()
        assert [f["original_name"] for f in found] == ["algebra-notes.pdf"]

        images = api_client.get("/api/files/search", params={"type": "image", "category": "all"}).json()
        assert [f["original_name"] for f in images] == ["cover.png"]

    def test_download_and_preview(self, api_client):
        file_id = upload(api_client, PDF).json()["files"][0]["id"]

        download = api_client.get(f"/api/files/{file_id}/download")
        assert download.status_code == 200
        assert download.content == PDF[1]
        assert download.headers["content-disposition"].startswith("attachment")

        preview = api_client.get(f"/api/files/{file_id}/preview")
        assert preview.status_code == 200
        assert preview.headers["content-type"].startswith("application/pdf")
        assert preview.headers["content-disposition"].startswith("inline")

    def test_missing_file_404(self, api_client):
        assert api_client.get("/api/files/nope/download").status_code == 404
        assert api_client.get("/api/files/nope/preview").status_code == 404

    def test_delete_requires_password(self, api_client):
        file_id = upload(api_client, PDF).json()["files"][0]["id"]

        response = api_client.request("DELETE", f"/api/files/{file_id}", json={"password": "bad"})
        assert response.status_code == 403

        response = api_client.request("DELETE", f"/api/files/{file_id}", json={"password": DELETE_PASSWORD})
        assert response.status_code == 200
        assert api_client.get(f"/api/files/{file_id}/download").status_code == 404

        response = api_client.request("DELETE", f"/api/files/{file_id}", json={"password": DELETE_PASSWORD})
        assert response.status_code == 404

    def test_delete_is_announced_in_chat(self, api_client):
        from conftest import join

        file_id = upload(api_client, PDF).json()["files"][0]["id"]

        with api_client.websocket_connect("/ws/chat") as ws:
            join(ws, "alice")
            api_client.request("DELETE", f"/api/files/{file_id}", json={"password": DELETE_PASSWORD})

            event = ws.receive_json()
            assert event == {"type": "file-deleted", "fileId": file_id, "fileName": "algebra-notes.pdf"}
