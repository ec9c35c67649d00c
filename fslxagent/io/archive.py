# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Single-entry extraction from the distribution archive.

Only the installer executable is needed from the ZIP, so instead of
extracting everything this module looks up one entry by its exact path and
copies it out.

Guarantees:
    - The archive handle is closed on every exit path.
    - The entry is written to ``<name>.part`` first and renamed over the
      destination only once fully written, so a failure never leaves a
      truncated installer behind.
    - An existing installer at the destination is overwritten.

Example:
    ```python
    from pathlib import Path
    from fslxagent.io.archive import extract_entry

    exe = extract_entry(
        Path("downloads/FSLogix_Apps_2.9.8440.42104.zip"),
        "x64/Release/FSLogixAppsSetup.exe",
        Path("installer"),
    )
    ```
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
import shutil
import zipfile

from fslxagent.exceptions import ArchiveCorruptError, ArchiveEntryNotFound
from fslxagent.logging import Logger, get_global_logger


def _normalize_entry(entry_name: str) -> str:
    return entry_name.replace("\\", "/").lstrip("/")


def extract_entry(
    archive_path: Path,
    entry_name: str,
    destination_dir: Path,
    logger: Logger | None = None,
) -> Path:
    """Extract one named entry from a ZIP archive.

    Args:
        archive_path: Path to the downloaded ZIP.
        entry_name: Exact entry path inside the archive (``/`` or ``\\``
            separators).
        destination_dir: Directory to place the file in (created if missing).
        logger: Logger; the global logger is used when omitted.

    Returns:
        Path to the extracted file (``destination_dir / <entry basename>``).

    Raises:
        ArchiveCorruptError: If the archive is missing, unreadable, or the
            entry fails its CRC check.
        ArchiveEntryNotFound: If no entry matches entry_name exactly.
    """
    if logger is None:
        logger = get_global_logger()

    entry = _normalize_entry(entry_name)
    logger.verbose("ARCHIVE", f"Opening {archive_path}")

    try:
        zf = zipfile.ZipFile(archive_path, "r")
    except FileNotFoundError as err:
        raise ArchiveCorruptError(f"archive not found: {archive_path}") from err
    except (zipfile.BadZipFile, OSError) as err:
        raise ArchiveCorruptError(f"cannot open archive {archive_path}: {err}") from err

    with zf:
        try:
            info = zf.getinfo(entry)
        except KeyError as err:
            logger.debug("ARCHIVE", f"Entries: {zf.namelist()}")
            raise ArchiveEntryNotFound(entry, archive_path) from err

        destination_dir = Path(destination_dir)
        destination_dir.mkdir(parents=True, exist_ok=True)
        target = destination_dir / PurePosixPath(entry).name
        tmp = target.with_suffix(target.suffix + ".part")

        try:
            with zf.open(info, "r") as src, tmp.open("wb") as dst:
                shutil.copyfileobj(src, dst)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as err:
            tmp.unlink(missing_ok=True)
            raise ArchiveCorruptError(
                f"cannot read {entry!r} from {archive_path}: {err}"
            ) from err
        except (RuntimeError, NotImplementedError) as err:
            # Encrypted entries and unsupported compression methods
            tmp.unlink(missing_ok=True)
            raise ArchiveCorruptError(
                f"cannot decode {entry!r} from {archive_path}: {err}"
            ) from err
        except OSError as err:
            tmp.unlink(missing_ok=True)
            raise ArchiveCorruptError(f"could not write {tmp}: {err}") from err
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    try:
        tmp.replace(target)
    except OSError as err:
        tmp.unlink(missing_ok=True)
        raise ArchiveCorruptError(f"could not replace {target}: {err}") from err
    logger.verbose("ARCHIVE", f"Extracted {entry} -> {target}")
    return target
