"""Input/Output operations for hcinstall.

This package holds the two kinds of blocking I/O the installer performs on
behalf of its sources: HTTP requests to the release service and external
processes (version probes, git, build toolchains).

Modules:

download : module
    Session factory, small document fetches and checksummed downloads.
paths : module
    Directory creation that reports what it created.
process : module
    Cancellable subprocess runner with combined output capture.

Public API:

make_session : function
    Create a requests.Session carrying the hcinstall User-Agent.
download_file : function
    Stream a URL to disk, verifying SHA-256.
fetch_bytes, fetch_json : function
    Fetch small documents.
run_command : function
    Run a subprocess bounded by a Context.
make_dirs : function
    Create a directory, returning the topmost one created.

Example:
    from pathlib import Path
    from hcinstall.context import Context
    from hcinstall.io import download_file, make_session

    with make_session() as session:
        path, sha256 = download_file(
            session, url, Path("./downloads"), Context.background()
        )

"""

from .download import (
    USER_AGENT,
    download_file,
    ensure_user_agent,
    fetch_bytes,
    fetch_json,
    make_session,
)
from .paths import make_dirs
from .process import CommandResult, run_command

__all__ = [
    "USER_AGENT",
    "CommandResult",
    "download_file",
    "ensure_user_agent",
    "fetch_bytes",
    "fetch_json",
    "make_dirs",
    "make_session",
    "run_command",
]
