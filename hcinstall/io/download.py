"""
HTTP(S) access to the release service for hcinstall.

This module owns every byte hcinstall pulls over the network: small JSON
and text documents (release index, checksum manifest, signature, public
key) and streamed archive downloads.

Key Features:

- **Explicit sessions** - Components receive a requests.Session from their
  caller or create one with make_session(); there is no process-wide client.
- **Identifying User-Agent** - make_session() and ensure_user_agent() set
  "hcinstall/<version>" once per session, and never replace a User-Agent
  the caller already chose.
- **No hidden retries** - Transport failures surface as NetworkError so the
  caller decides whether to retry. Retries can be opted into per session.
- **Atomic Writes** - Downloads go to a .part file renamed on success.
- **Integrity Verification** - SHA-256 is computed while streaming; a
  mismatch deletes the file and raises ChecksumMismatchError.
- **Cancellation** - The Context is checked between chunks and bounds every
  request timeout.

Example:
    Download with checksum validation:

        >>> from pathlib import Path
        >>> from hcinstall.context import Context
        >>> from hcinstall.io import download_file, make_session
        >>> with make_session() as session:
        ...     path, sha256 = download_file(
        ...         session,
        ...         "https://releases.hashicorp.com/terraform/1.3.7/terraform_1.3.7_linux_amd64.zip",
        ...         Path("./downloads"),
        ...         Context.background(),
        ...         expected_sha256="b8cf184d...",
        ...     )

Notes:
- Timeouts are per-request, not total download time; the Context deadline
  bounds the total.
- HTTP 404 maps to NotFoundError (the thing asked for does not exist); all
  other HTTP and transport failures map to NetworkError.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from hcinstall import __version__
from hcinstall.context import Context
from hcinstall.exceptions import ChecksumMismatchError, NetworkError, NotFoundError
from hcinstall.logging import Logger, get_global_logger

# Stream size per chunk (1 MiB).
DEFAULT_CHUNK = 1024 * 1024

DEFAULT_TIMEOUT = 60

USER_AGENT = f"hcinstall/{__version__}"


def _filename_from_url(url: str) -> str:
    """
    Derive a filename from the URL path. Fallback to a generic name if empty.
    """
    name = Path(urlparse(url).path).name
    return name or "download.bin"


def ensure_user_agent(session: requests.Session, user_agent: str = USER_AGENT) -> None:
    """Set the identifying User-Agent unless the caller already chose one.

    A fresh requests.Session carries "python-requests/<x>"; that default is
    replaced, anything else is left alone.
    """
    current = session.headers.get("User-Agent")
    if not current or current == requests.utils.default_user_agent():
        session.headers["User-Agent"] = user_agent


def make_session(user_agent: str = USER_AGENT, retries: int = 0) -> requests.Session:
    """
    Create a requests.Session for talking to the release service.

    - Sets the identifying User-Agent.
    - Retries are off by default: failures reach the caller as NetworkError.
      Pass retries > 0 to retry transient status codes with backoff.
    """
    s = requests.Session()
    ensure_user_agent(s, user_agent)
    if retries > 0:
        policy = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET", "HEAD"),
            raise_on_status=False,
        )
        s.mount("http://", HTTPAdapter(max_retries=policy))
        s.mount("https://", HTTPAdapter(max_retries=policy))
    return s


def _get(
    session: requests.Session,
    url: str,
    ctx: Context,
    timeout: float | None,
    stream: bool = False,
) -> requests.Response:
    """GET with error translation; caller closes streamed responses."""
    ctx.raise_if_done()
    try:
        resp = session.get(
            url, stream=stream, allow_redirects=True, timeout=ctx.timeout(timeout)
        )
    except requests.RequestException as err:
        # A deadline that ran out mid-request is a deadline, not a network fault.
        ctx.raise_if_done()
        raise NetworkError(f"request failed for {url}: {err}") from err

    if resp.status_code == 404:
        resp.close()
        raise NotFoundError(f"not found: {url}")
    try:
        resp.raise_for_status()
    except requests.HTTPError as err:
        resp.close()
        raise NetworkError(f"request failed for {url}: {err}") from err
    return resp


def fetch_bytes(
    session: requests.Session,
    url: str,
    ctx: Context,
    *,
    timeout: float | None = DEFAULT_TIMEOUT,
    logger: Logger | None = None,
) -> bytes:
    """Fetch a small document into memory.

    Raises:
        NotFoundError: On HTTP 404.
        NetworkError: On other HTTP errors or transport failures.
        CancelledError: If the context is done.
    """
    logger = logger or get_global_logger()
    logger.debug("HTTP", f"GET {url}")
    resp = _get(session, url, ctx, timeout)
    logger.debug("HTTP", f"Response: {resp.status_code} ({len(resp.content)} bytes)")
    return resp.content


def fetch_json(
    session: requests.Session,
    url: str,
    ctx: Context,
    *,
    timeout: float | None = DEFAULT_TIMEOUT,
    logger: Logger | None = None,
) -> Any:
    """Fetch and decode a JSON document.

    Raises:
        NotFoundError: On HTTP 404.
        NetworkError: On transport failures or a body that is not JSON.
    """
    content = fetch_bytes(session, url, ctx, timeout=timeout, logger=logger)
    try:
        return json.loads(content)
    except ValueError as err:
        raise NetworkError(f"malformed JSON from {url}: {err}") from err


def download_file(
    session: requests.Session,
    url: str,
    destination_folder: Path,
    ctx: Context,
    *,
    filename: str | None = None,
    expected_sha256: str | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
    logger: Logger | None = None,
) -> tuple[Path, str]:
    """Stream a URL into destination_folder, hashing while writing.

    Writes to <filename>.part then renames to <filename> on success. If
    expected_sha256 is set and the digest differs, the file is deleted.

    Args:
        session: Session to issue the request with.
        url: Source URL.
        destination_folder: Folder to save into (created if missing).
        ctx: Context checked between chunks.
        filename: Target file name. Defaults to the last URL path segment.
        expected_sha256: Known SHA-256 (hex) the content must match.
        timeout: Per-request timeout (seconds).
        logger: Logger for progress messages.

    Returns:
        A tuple (file_path, sha256_hex).

    Raises:
        NotFoundError: On HTTP 404.
        NetworkError: For other HTTP or transport failures.
        ChecksumMismatchError: If the digest differs from expected_sha256.
        CancelledError: If the context is done mid-download.
    """
    logger = logger or get_global_logger()
    destination_folder = Path(destination_folder)
    destination_folder.mkdir(parents=True, exist_ok=True)

    logger.verbose("HTTP", f"GET {url}")
    resp = _get(session, url, ctx, timeout, stream=True)

    target = destination_folder / (filename or _filename_from_url(resp.url or url))
    tmp = target.with_suffix(target.suffix + ".part")
    logger.debug("FILE", f"Downloading to: {tmp}")

    sha = hashlib.sha256()
    downloaded = 0
    try:
        with resp, tmp.open("wb") as f:
            for chunk in resp.iter_content(chunk_size=DEFAULT_CHUNK):
                ctx.raise_if_done()
                if not chunk:
                    continue
                f.write(chunk)
                sha.update(chunk)
                downloaded += len(chunk)
    except requests.RequestException as err:
        tmp.unlink(missing_ok=True)
        raise NetworkError(f"download interrupted for {url}: {err}") from err
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    digest = sha.hexdigest()
    logger.debug("FILE", f"SHA-256: {digest} ({downloaded} bytes)")

    if expected_sha256 and digest.lower() != expected_sha256.lower():
        logger.verbose(
            "FILE", f"Checksum mismatch! Expected: {expected_sha256}, Got: {digest}"
        )
        tmp.unlink(missing_ok=True)
        raise ChecksumMismatchError(
            f"sha256 mismatch for {target.name}: got {digest}, expected {expected_sha256}"
        )

    tmp.replace(target)
    logger.verbose("FILE", f"Download complete: {target}")
    return target, digest
