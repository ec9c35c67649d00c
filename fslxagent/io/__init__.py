"""Input/Output operations for fslxagent.

Modules:

download : module
    HTTP(S) file download with retries and atomic writes.
archive : module
    Exact-path extraction of a single entry from a ZIP archive.

Public API:

download_file : function
    Download a file from a URL with retries.
make_session : function
    Build a requests.Session with retry/backoff defaults.
extract_entry : function
    Extract one named entry from a ZIP archive.

Example:
    from pathlib import Path
    from fslxagent.io import download_file, extract_entry

    archive = download_file(url, Path("./downloads"))
    exe = extract_entry(archive, "x64/Release/FSLogixAppsSetup.exe", Path("./installer"))

"""

from .archive import extract_entry
from .download import download_file, make_session

__all__ = ["download_file", "extract_entry", "make_session"]
