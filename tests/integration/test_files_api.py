import io

import pytest


@pytest.fixture
def populated(library, sample_bytes):
    (library / "Music").mkdir()
    (library / "Music" / "song.mp3").write_bytes(b"m" * 10)
    (library / "clip.mp4").write_bytes(sample_bytes)
    return library


def test_list_files(client, populated):
    resp = client.get("/api/files")

    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"
    data = resp.get_json()
    assert data["totalCount"] == 2
    assert data["currentPage"] == 1
    assert [item["name"] for item in data["files"]] == ["Music", "clip.mp4"]


def test_list_files_subdir_and_search(client, populated):
    data = client.get("/api/files?subdir=Music&search=SONG").get_json()
    assert [item["path"] for item in data["files"]] == ["Music/song.mp3"]


def test_list_files_traversal_denied(client, populated):
    resp = client.get("/api/files?subdir=../")
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Access denied"}


def test_list_missing_directory(client, populated):
    assert client.get("/api/files?subdir=nope").status_code == 404


def test_download_whole_file(client, populated, sample_bytes):
    resp = client.get("/api/files/download?file=clip.mp4")

    assert resp.status_code == 200
    assert resp.data == sample_bytes
    assert resp.headers["Content-Type"] == "video/mp4"
    assert resp.headers["Accept-Ranges"] == "bytes"
    assert resp.headers["Content-Disposition"] == 'attachment; filename="clip.mp4"'
    assert resp.headers["Cache-Control"] == "public, max-age=3600"


def test_download_range(client, populated, sample_bytes):
    resp = client.get("/api/files/download?file=clip.mp4", headers={"Range": "bytes=100-199"})

    assert resp.status_code == 206
    assert resp.headers["Content-Range"] == "bytes 100-199/1000"
    assert resp.headers["Content-Length"] == "100"
    assert resp.data == sample_bytes[100:200]


def test_download_open_ended_range(client, populated, sample_bytes):
    resp = client.get("/api/files/download?file=clip.mp4", headers={"Range": "bytes=900-"})
    assert resp.status_code == 206
    assert resp.headers["Content-Range"] == "bytes 900-999/1000"
    assert resp.data == sample_bytes[900:]


def test_download_unsatisfiable_range(client, populated):
    resp = client.get("/api/files/download?file=clip.mp4", headers={"Range": "bytes=1000-1001"})
    assert resp.status_code == 416
    assert resp.headers["Content-Range"] == "bytes */1000"


def test_download_errors(client, populated):
    assert client.get("/api/files/download").get_json() == {"error": "No file specified"}
    assert client.get("/api/files/download?file=../../etc/passwd").status_code == 403
    assert client.get("/api/files/download?file=missing.mp4").status_code == 404
    assert client.get("/api/files/download?file=Music").status_code == 404


def test_create_folder(client, populated, services):
    resp = client.post("/api/create-folder", json={"path": "Music", "folderName": "Live"})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["message"] == "Folder created successfully"
    assert data["path"] == "Music/Live"
    assert data["folderId"]
    assert (populated / "Music" / "Live").is_dir()
    assert services.user_content.directory_is_user_content("Music/Live")


def test_create_folder_requires_name(client, populated):
    assert client.post("/api/create-folder", json={"path": ""}).status_code == 400


def test_upload_keeps_existing_files(client, populated):
    resp = client.post(
        "/api/upload",
        data={
            "path": "Music",
            "files": [(io.BytesIO(b"replacement"), "song.mp3"), (io.BytesIO(b"new"), "new.mp3")],
        },
        content_type="multipart/form-data",
    )

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["success"] is True
    assert data["message"] == "2 file(s) uploaded successfully"
    assert data["files"] == ["song (1).mp3", "new.mp3"]
    assert (populated / "Music" / "song.mp3").read_bytes() == b"m" * 10
    assert (populated / "Music" / "song (1).mp3").read_bytes() == b"replacement"


def test_upload_without_files(client, populated):
    resp = client.post("/api/upload", data={"path": ""}, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_upload_outside_root_denied(client, populated):
    resp = client.post(
        "/api/upload",
        data={"path": "../elsewhere", "files": [(io.BytesIO(b"x"), "x.txt")]},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 403
    assert not (populated.parent / "elsewhere").exists()


def test_delete_library_file_refused(client, populated):
    resp = client.post("/api/delete-file", json={"filePath": "clip.mp4", "currentDirectory": ""})

    assert resp.status_code == 403
    assert "user-added" in resp.get_json()["error"]
    assert (populated / "clip.mp4").exists()


def test_delete_current_directory_refused(client, populated):
    client.post("/api/create-folder", json={"path": "", "folderName": "Mine"})
    resp = client.post("/api/delete-file", json={"filePath": "Mine", "currentDirectory": "Mine"})
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Cannot delete current directory."}


def test_delete_user_folder(client, populated):
    client.post("/api/create-folder", json={"path": "", "folderName": "Mine"})
    client.post(
        "/api/upload",
        data={"path": "Mine", "files": [(io.BytesIO(b"x"), "x.txt")]},
        content_type="multipart/form-data",
    )

    resp = client.post("/api/delete-file", json={"filePath": "Mine", "currentDirectory": ""})

    assert resp.status_code == 200
    assert resp.get_json() == {"message": "File or directory deleted successfully"}
    assert not (populated / "Mine").exists()


def test_delete_uploaded_file(client, populated):
    client.post(
        "/api/upload",
        data={"path": "Music", "files": [(io.BytesIO(b"x"), "extra.mp3")]},
        content_type="multipart/form-data",
    )
    resp = client.post("/api/delete-file", json={"filePath": "Music/extra.mp3", "currentDirectory": "Music"})
    assert resp.status_code == 200
    assert not (populated / "Music" / "extra.mp3").exists()


def test_delete_missing(client, populated):
    resp = client.post("/api/delete-file", json={"filePath": "ghost.txt", "currentDirectory": ""})
    assert resp.status_code == 404


def test_create_folder_over_library_folder(client, populated):
    resp = client.post("/api/create-folder", json={"path": "", "folderName": "Music"})
    assert resp.status_code == 409

    resp = client.post("/api/delete-file", json={"filePath": "Music", "currentDirectory": ""})
    assert resp.status_code == 403
    assert (populated / "Music" / "song.mp3").exists()
