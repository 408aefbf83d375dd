"""
Tests for hcinstall.io.download module.

Tests HTTP access including:
- Basic downloads and redirects
- Checksum validation and atomic writes
- Error translation (404, 5xx, transport failures)
- User-Agent handling
- Cancellation
"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import requests
import requests_mock

from hcinstall.context import Context
from hcinstall.exceptions import (
    CancelledError,
    ChecksumMismatchError,
    NetworkError,
    NotFoundError,
)
from hcinstall.io.download import (
    USER_AGENT,
    download_file,
    ensure_user_agent,
    fetch_bytes,
    fetch_json,
    make_session,
)

pytestmark = pytest.mark.unit


def _sha256(data: bytes) -> str:
    """Helper to compute SHA-256 hash."""
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def session():
    with make_session() as s:
        yield s


class TestDownloadFile:
    """Tests for download_file."""

    def test_download_success(self, tmp_test_dir: Path, session, ctx) -> None:
        """Test basic successful download."""
        url = "https://example.com/file.bin"
        data = b"hello world"

        with requests_mock.Mocker() as m:
            m.get(url, content=data)
            path, digest = download_file(session, url, tmp_test_dir, ctx)

        assert path.exists()
        assert path.read_bytes() == data
        assert digest == _sha256(data)

    def test_follows_redirect_and_uses_final_url_name(
        self, tmp_test_dir: Path, session, ctx
    ) -> None:
        """Test that redirects are followed and final URL name is used."""
        start = "https://example.com/start"
        final = "https://cdn.example.com/payload.zip"

        with requests_mock.Mocker() as m:
            m.get(start, status_code=302, headers={"Location": final})
            m.get(final, content=b"abc")
            path, _ = download_file(session, start, tmp_test_dir, ctx)

        assert path.name == "payload.zip"
        assert path.read_bytes() == b"abc"

    def test_explicit_filename(self, tmp_test_dir: Path, session, ctx) -> None:
        """Test that filename overrides the URL name."""
        url = "https://example.com/download?id=1"
        with requests_mock.Mocker() as m:
            m.get(url, content=b"x")
            path, _ = download_file(session, url, tmp_test_dir, ctx, filename="tf.zip")
        assert path == tmp_test_dir / "tf.zip"

    def test_checksum_match(self, tmp_test_dir: Path, session, ctx) -> None:
        """Test that a matching checksum keeps the file."""
        url = "https://example.com/file.zip"
        data = b"payload"
        with requests_mock.Mocker() as m:
            m.get(url, content=data)
            path, digest = download_file(
                session, url, tmp_test_dir, ctx, expected_sha256=_sha256(data).upper()
            )
        assert path.read_bytes() == data
        assert digest == _sha256(data)

    def test_checksum_mismatch_deletes_file(
        self, tmp_test_dir: Path, session, ctx
    ) -> None:
        """Test that a checksum mismatch raises and leaves nothing behind."""
        url = "https://example.com/file.zip"
        with requests_mock.Mocker() as m:
            m.get(url, content=b"tampered")
            with pytest.raises(ChecksumMismatchError, match="sha256 mismatch"):
                download_file(
                    session, url, tmp_test_dir, ctx, expected_sha256=_sha256(b"original")
                )

        assert list(tmp_test_dir.iterdir()) == []

    def test_404_is_not_found(self, tmp_test_dir: Path, session, ctx) -> None:
        """Test that HTTP 404 maps to NotFoundError."""
        url = "https://example.com/missing.zip"
        with requests_mock.Mocker() as m:
            m.get(url, status_code=404)
            with pytest.raises(NotFoundError):
                download_file(session, url, tmp_test_dir, ctx)

    def test_server_error_is_network_error(
        self, tmp_test_dir: Path, session, ctx
    ) -> None:
        """Test that HTTP 5xx maps to NetworkError, without retries."""
        url = "https://example.com/file.zip"
        with requests_mock.Mocker() as m:
            m.get(url, status_code=503)
            with pytest.raises(NetworkError):
                download_file(session, url, tmp_test_dir, ctx)
            assert m.call_count == 1

    def test_transport_error_is_network_error(
        self, tmp_test_dir: Path, session, ctx
    ) -> None:
        """Test that connection failures map to NetworkError."""
        url = "https://example.com/file.zip"
        with requests_mock.Mocker() as m:
            m.get(url, exc=requests.ConnectionError("connection refused"))
            with pytest.raises(NetworkError, match="connection refused"):
                download_file(session, url, tmp_test_dir, ctx)

    def test_cancelled_context(self, tmp_test_dir: Path, session) -> None:
        """Test that a cancelled context stops before any request."""
        ctx = Context.background()
        ctx.cancel()
        with requests_mock.Mocker() as m:
            m.get("https://example.com/f.zip", content=b"x")
            with pytest.raises(CancelledError):
                download_file(session, "https://example.com/f.zip", tmp_test_dir, ctx)
            assert m.call_count == 0


class TestFetch:
    """Tests for fetch_bytes and fetch_json."""

    def test_fetch_json(self, session, ctx) -> None:
        """Test decoding a JSON document."""
        with requests_mock.Mocker() as m:
            m.get("https://example.com/index.json", json={"versions": {}})
            assert fetch_json(session, "https://example.com/index.json", ctx) == {
                "versions": {}
            }

    def test_malformed_json_is_network_error(self, session, ctx) -> None:
        """Test that a body that is not JSON raises NetworkError."""
        with requests_mock.Mocker() as m:
            m.get("https://example.com/index.json", text="<html>")
            with pytest.raises(NetworkError, match="malformed JSON"):
                fetch_json(session, "https://example.com/index.json", ctx)

    def test_fetch_bytes(self, session, ctx) -> None:
        """Test fetching a small document."""
        with requests_mock.Mocker() as m:
            m.get("https://example.com/SHA256SUMS", content=b"abc")
            assert fetch_bytes(session, "https://example.com/SHA256SUMS", ctx) == b"abc"


class TestUserAgent:
    """Tests for User-Agent handling."""

    def test_make_session_sets_user_agent(self, ctx) -> None:
        """Test that hcinstall identifies itself."""
        with make_session() as s, requests_mock.Mocker() as m:
            m.get("https://example.com/x", content=b"")
            fetch_bytes(s, "https://example.com/x", ctx)
            assert m.last_request.headers["User-Agent"] == USER_AGENT
        assert USER_AGENT.startswith("hcinstall/")

    def test_caller_user_agent_not_overridden(self) -> None:
        """Test that a caller-chosen User-Agent is preserved."""
        s = requests.Session()
        s.headers["User-Agent"] = "my-tool/2.0"
        ensure_user_agent(s)
        assert s.headers["User-Agent"] == "my-tool/2.0"

    def test_requests_default_replaced(self) -> None:
        """Test that the python-requests default is replaced."""
        s = requests.Session()
        ensure_user_agent(s)
        assert s.headers["User-Agent"] == USER_AGENT
