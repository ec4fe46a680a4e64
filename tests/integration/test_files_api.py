"""
Integration Tests: File API

End-to-end tests of the /v1/files endpoints against a real local adapter
rooted in a temporary directory.
"""

import os
import stat

import pytest

from api.middleware import REQUEST_ID_HEADER


async def write(client, path, body=b"test content", mode=None):
    headers = {"X-File-Mode": mode} if mode else {}
    return await client.post(f"/v1/files/write/{path}", content=body, headers=headers)


# =============================================================================
# Directory Endpoint Tests
# =============================================================================

@pytest.mark.integration
class TestDirectoryEndpoints:
    """Test mkdir, rmdir and readdir."""

    @pytest.mark.asyncio
    async def test_mkdir_and_stat(self, client):
        """Test creating a directory with the default mode."""
        response = await client.post("/v1/files/mkdir", json={"path": "docs"})

        assert response.status_code == 201
        assert response.json() == {"status": "ok", "path": "docs"}

        info = (await client.get("/v1/files/stat/docs")).json()
        assert info["is_dir"] is True
        assert info["mode"] == 0o755

    @pytest.mark.asyncio
    async def test_mkdir_octal_mode(self, client, temp_storage_dir):
        """Test that an octal-string mode is applied."""
        response = await client.post("/v1/files/mkdir", json={"path": "private", "mode": "0700"})

        assert response.status_code == 201
        assert stat.S_IMODE(os.stat(temp_storage_dir / "private").st_mode) == 0o700

    @pytest.mark.asyncio
    async def test_mkdir_invalid_mode(self, client):
        response = await client.post("/v1/files/mkdir", json={"path": "x", "mode": "rwx"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rmdir(self, client, temp_storage_dir):
        await client.post("/v1/files/mkdir", json={"path": "gone"})

        response = await client.post("/v1/files/rmdir", json={"path": "gone"})

        assert response.status_code == 200
        assert not (temp_storage_dir / "gone").exists()

    @pytest.mark.asyncio
    async def test_rmdir_non_empty(self, client):
        """Test that removing a non-empty directory is a storage failure."""
        await write(client, "full/a.txt")

        response = await client.post("/v1/files/rmdir", json={"path": "full"})

        assert response.status_code == 500
        assert response.json()["error"]["type"] == "DirectoryNotEmptyError"

    @pytest.mark.asyncio
    async def test_readdir(self, client):
        await client.post("/v1/files/mkdir", json={"path": "dir/sub"})
        await write(client, "dir/file.txt")

        response = await client.get("/v1/files/readdir/dir")

        assert response.status_code == 200
        entries = sorted(response.json(), key=lambda e: e["name"])
        assert entries == [
            {"name": "file.txt", "is_dir": False},
            {"name": "sub", "is_dir": True},
        ]

    @pytest.mark.asyncio
    async def test_readdir_root(self, client):
        """Test that an empty path lists the storage root."""
        await write(client, "top.txt")

        response = await client.get("/v1/files/readdir/")

        assert response.status_code == 200
        assert response.json() == [{"name": "top.txt", "is_dir": False}]

    @pytest.mark.asyncio
    async def test_readdir_missing(self, client):
        response = await client.get("/v1/files/readdir/nowhere")

        assert response.status_code == 404


# =============================================================================
# File Endpoint Tests
# =============================================================================

@pytest.mark.integration
class TestFileEndpoints:
    """Test write, read, stat, unlink, rename and chmod."""

    @pytest.mark.asyncio
    async def test_write_then_read(self, client):
        """Test that uploaded bytes stream back unchanged."""
        payload = os.urandom(300 * 1024)

        response = await write(client, "blobs/data.bin", payload)
        assert response.status_code == 201
        assert response.json()["path"] == "blobs/data.bin"

        response = await client.get("/v1/files/read/blobs/data.bin")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.content == payload

    @pytest.mark.asyncio
    async def test_write_default_mode(self, client):
        await write(client, "test.txt")

        info = (await client.get("/v1/files/stat/test.txt")).json()

        assert info["mode"] == 0o644
        assert info["size"] == 12
        assert info["name"] == "test.txt"
        assert info["is_dir"] is False

    @pytest.mark.asyncio
    async def test_write_mode_header(self, client):
        await write(client, "secret.txt", mode="0600")

        info = (await client.get("/v1/files/stat/secret.txt")).json()

        assert info["mode"] == 0o600

    @pytest.mark.asyncio
    async def test_write_invalid_mode_header(self, client, temp_storage_dir):
        response = await write(client, "x.txt", mode="rw-r--r--")

        assert response.status_code == 400
        assert not (temp_storage_dir / "x.txt").exists()

    @pytest.mark.asyncio
    async def test_write_empty_body(self, client):
        response = await write(client, "empty.txt", b"")

        assert response.status_code == 201
        assert (await client.get("/v1/files/stat/empty.txt")).json()["size"] == 0

    @pytest.mark.asyncio
    async def test_overwrite_truncates(self, client):
        await write(client, "test.txt", b"a much longer original body")
        await write(client, "test.txt", b"short")

        response = await client.get("/v1/files/read/test.txt")

        assert response.content == b"short"

    @pytest.mark.asyncio
    async def test_read_range(self, client):
        """Test that a closed Range returns exactly that window."""
        await write(client, "test.txt")

        response = await client.get("/v1/files/read/test.txt", headers={"Range": "bytes=5-8"})

        assert response.status_code == 200
        assert response.content == b"cont"

    @pytest.mark.asyncio
    async def test_read_open_range(self, client):
        await write(client, "test.txt")

        response = await client.get("/v1/files/read/test.txt", headers={"Range": "bytes=5-"})

        assert response.content == b"content"

    @pytest.mark.asyncio
    async def test_read_range_past_end(self, client):
        """Test that a range starting past end of file yields an empty body."""
        await write(client, "test.txt")

        response = await client.get(
            "/v1/files/read/test.txt",
            headers={"Range": f"bytes={2 ** 64}-"}
        )

        assert response.status_code == 200
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_read_invalid_range(self, client):
        await write(client, "test.txt")

        response = await client.get("/v1/files/read/test.txt", headers={"Range": "bytes=9-2"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_read_missing(self, client):
        response = await client.get("/v1/files/read/missing.txt")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == 404
        assert error["type"] == "PathNotFoundError"
        assert "missing.txt" in error["message"]

    @pytest.mark.asyncio
    async def test_unlink(self, client, temp_storage_dir):
        await write(client, "test.txt")

        response = await client.post("/v1/files/unlink", json={"path": "test.txt"})

        assert response.status_code == 200
        assert not (temp_storage_dir / "test.txt").exists()

    @pytest.mark.asyncio
    async def test_unlink_directory(self, client):
        """Test that unlinking a directory is a storage failure."""
        await client.post("/v1/files/mkdir", json={"path": "folder"})

        response = await client.post("/v1/files/unlink", json={"path": "folder"})

        assert response.status_code == 500
        assert response.json()["error"]["type"] == "IsDirectoryError"

    @pytest.mark.asyncio
    async def test_rename(self, client):
        await write(client, "old.txt", b"payload")

        response = await client.post(
            "/v1/files/rename",
            json={"old_path": "old.txt", "new_path": "archive/new.txt"}
        )

        assert response.status_code == 200
        assert response.json()["path"] == "archive/new.txt"
        assert (await client.get("/v1/files/stat/old.txt")).status_code == 404
        assert (await client.get("/v1/files/read/archive/new.txt")).content == b"payload"

    @pytest.mark.asyncio
    async def test_chmod(self, client):
        await write(client, "test.txt")

        response = await client.post("/v1/files/chmod", json={"path": "test.txt", "mode": "0640"})

        assert response.status_code == 200
        assert (await client.get("/v1/files/stat/test.txt")).json()["mode"] == 0o640

    @pytest.mark.asyncio
    async def test_chmod_integer_mode(self, client):
        await write(client, "test.txt")

        await client.post("/v1/files/chmod", json={"path": "test.txt", "mode": 0o600})

        assert (await client.get("/v1/files/stat/test.txt")).json()["mode"] == 0o600

    @pytest.mark.asyncio
    async def test_missing_body_field(self, client):
        response = await client.post("/v1/files/unlink", json={})

        assert response.status_code == 422


# =============================================================================
# Containment Tests
# =============================================================================

@pytest.mark.integration
class TestContainment:
    """Escaping paths are answered with 400 and never touch the filesystem."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"path": "../outside"},
        {"path": "/etc"},
        {"path": ""},
        {"path": "a/../../b"},
    ])
    async def test_mkdir_rejected(self, client, temp_dir, body):
        response = await client.post("/v1/files/mkdir", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "InvalidPathError"
        assert not (temp_dir / "outside").exists()

    @pytest.mark.asyncio
    async def test_read_traversal_rejected(self, client, outside_dir):
        """Test an encoded traversal in the URL path."""
        response = await client.get("/v1/files/read/..%2Fstorage-private%2Fsecret.txt")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rename_out_of_base_rejected(self, client, temp_dir):
        await write(client, "inside.txt")

        response = await client.post(
            "/v1/files/rename",
            json={"old_path": "inside.txt", "new_path": "../stolen.txt"}
        )

        assert response.status_code == 400
        assert not (temp_dir / "stolen.txt").exists()

    @pytest.mark.asyncio
    async def test_remove_root_rejected(self, client, temp_storage_dir):
        response = await client.post("/v1/files/rmdir", json={"path": "."})

        assert response.status_code == 400
        assert temp_storage_dir.is_dir()


# =============================================================================
# Request Handling Tests
# =============================================================================

@pytest.mark.integration
class TestRequestHandling:
    """Test request IDs and the root endpoint."""

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/health")

        assert response.headers.get(REQUEST_ID_HEADER)

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={REQUEST_ID_HEADER: "trace-42"})

        assert response.headers[REQUEST_ID_HEADER] == "trace-42"

    @pytest.mark.asyncio
    async def test_request_id_on_errors(self, client):
        response = await client.get("/v1/files/stat/missing", headers={REQUEST_ID_HEADER: "trace-43"})

        assert response.status_code == 404
        assert response.headers[REQUEST_ID_HEADER] == "trace-43"

    @pytest.mark.asyncio
    async def test_root(self, client, test_settings):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == test_settings.app_version
