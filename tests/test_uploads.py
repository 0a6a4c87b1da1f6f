"""Tests for screenshot uploads."""

import pytest
from starlette.datastructures import UploadFile

from qa_tracker.core.errors import ValidationError
from qa_tracker.uploads.storage import ScreenshotStorage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestScreenshotStorage:
    @pytest.fixture
    def storage(self, tmp_path):
        return ScreenshotStorage(str(tmp_path), max_files=2, max_file_size=64)

    def test_save_writes_files(self, storage):
        urls = storage.save([("shot.PNG", "image/png", PNG_BYTES), ("photo", "image/jpeg", b"jpg")])

        assert len(urls) == 2
        assert urls[0].startswith("/uploads/screenshots/") and urls[0].endswith(".png")
        assert urls[1].endswith(".jpg")
        stored = sorted(path.name for path in storage.directory.iterdir())
        assert len(stored) == 2
        assert (storage.directory / urls[0].rsplit("/", 1)[1]).read_bytes() == PNG_BYTES

    def test_rejects_empty_upload(self, storage):
        with pytest.raises(ValidationError):
            storage.save([])

    def test_rejects_too_many_files(self, storage):
        files = [("a.png", "image/png", PNG_BYTES)] * 3
        with pytest.raises(ValidationError):
            storage.save(files)

    def test_rejects_wrong_type(self, storage):
        with pytest.raises(ValidationError) as exc_info:
            storage.save([("notes.pdf", "application/pdf", b"%PDF")])
        assert "notes.pdf" in exc_info.value.message

    def test_rejects_oversized_file(self, storage):
        with pytest.raises(ValidationError):
            storage.save([("big.png", "image/png", b"x" * 65)])
        assert not storage.directory.exists()


class TestUploadEndpoint:
    def test_upload_and_serve(self, client, auth_headers, qa):
        response = client.post(
            "/api/upload/screenshots",
            files=[("files", ("login.png", PNG_BYTES, "image/png"))],
            headers=auth_headers(qa),
        )
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["message"] == "Files uploaded successfully"
        (url,) = body["files"]

        served = client.get(url)
        assert served.status_code == 200
        assert served.content == PNG_BYTES

    def test_rejects_non_image(self, client, auth_headers, qa):
        response = client.post(
            "/api/upload/screenshots",
            files=[("files", ("script.js", b"alert(1)", "text/javascript"))],
            headers=auth_headers(qa),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_requires_authentication(self, client):
        response = client.post(
            "/api/upload/screenshots", files=[("files", ("a.png", PNG_BYTES, "image/png"))]
        )
        assert response.status_code == 401

    def test_too_many_files_rejected_before_reading(
        self, client, app, auth_headers, qa, monkeypatch
    ):
        app.state.screenshot_storage.max_files = 2
        reads = []

        async def tracking_read(self, size=-1):
            reads.append(self.filename)
            return b""

        monkeypatch.setattr(UploadFile, "read", tracking_read)
        response = client.post(
            "/api/upload/screenshots",
            files=[("files", (f"{n}.png", PNG_BYTES, "image/png")) for n in range(3)],
            headers=auth_headers(qa),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Too many files, the limit is 2 images"
        assert reads == []
