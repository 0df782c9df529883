# matlab_provisioner/common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system and download helpers used by the provisioning steps.
"""

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Iterable, Optional, Union

import requests

from matlab_provisioner.config.config_models import AppSettings

from .command_utils import get_symbols, log_provision, run_elevated_command

module_logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 300
DOWNLOAD_CHUNK_SIZE = 8192


def download_file(
    url: str,
    download_to_path: Union[str, Path],
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
    timeout: int = DOWNLOAD_TIMEOUT_SECONDS,
) -> bool:
    """
    Download a URL to a local file, streaming the body to disk.

    Args:
        url: The URL to fetch.
        download_to_path: Destination file path. Parent directories are created.
        app_settings: Settings providing log symbols.
        current_logger: Logger to use.
        timeout: Request timeout in seconds.

    Returns:
        True if the download was successful, False otherwise.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    download_path = Path(download_to_path)
    response: Optional[requests.Response] = None

    log_provision(
        f"{symbols.get('package', '📦')} Downloading {url} to {download_path}",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        download_path.parent.mkdir(parents=True, exist_ok=True)
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()

        with open(download_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
        log_provision(
            f"{symbols.get('success', '✅')} Downloaded {download_path}",
            "success",
            logger_to_use,
            app_settings,
        )
        return True
    except requests.exceptions.HTTPError as http_err:
        status_code = (
            response.status_code if response is not None else "Unknown"
        )
        log_provision(
            f"{symbols.get('error', '❌')} HTTP error downloading {url}: {http_err} - Status code: {status_code}",
            "error",
            logger_to_use,
            app_settings,
        )
    except requests.exceptions.Timeout as timeout_err:
        log_provision(
            f"{symbols.get('error', '❌')} Timed out downloading {url}: {timeout_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    except requests.exceptions.RequestException as req_err:
        log_provision(
            f"{symbols.get('error', '❌')} Could not download {url}: {req_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    except IOError as io_err:
        log_provision(
            f"{symbols.get('error', '❌')} File I/O error writing {download_path}: {io_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    return False


def extract_tarball(
    archive_path: Union[str, Path],
    target_dir: Union[str, Path],
    archive_dir_name: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Extract a gzip'd tarball whose contents live under a single top-level
    directory, and move that directory to `target_dir`.

    Args:
        archive_path: The .tar.gz file.
        target_dir: Final location of the archive's top-level directory.
            Must not exist yet.
        archive_dir_name: Name of the top-level directory inside the archive.

    Returns:
        The target directory.

    Raises:
        FileExistsError: `target_dir` already exists.
        FileNotFoundError: The archive did not contain `archive_dir_name`.
        tarfile.TarError: The archive is unreadable.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    archive = Path(archive_path)
    target = Path(target_dir)

    if target.exists():
        raise FileExistsError(f"Extraction target {target} already exists")

    staging_dir = archive.parent
    log_provision(
        f"{symbols.get('gear', '⚙️')} Extracting {archive} into {staging_dir}",
        "info",
        logger_to_use,
        app_settings,
    )
    with tarfile.open(archive, "r:*") as tar:
        tar.extractall(staging_dir, filter="data")

    extracted = staging_dir / archive_dir_name
    if not extracted.is_dir():
        raise FileNotFoundError(
            f"Archive {archive} did not contain a top-level '{archive_dir_name}' directory"
        )

    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(extracted), str(target))
    log_provision(
        f"{symbols.get('success', '✅')} Extracted {archive.name} to {target}",
        "success",
        logger_to_use,
        app_settings,
    )
    return target


def remove_paths(
    paths: Iterable[Union[str, Path]],
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Remove files or directories with root privileges (`rm -rf`)."""
    path_list = [str(p) for p in paths]
    if not path_list:
        return
    run_elevated_command(
        ["rm", "-rf"] + path_list,
        app_settings,
        current_logger=current_logger,
    )


def create_symlink(
    target: str,
    link_path: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Create or replace the symbolic link `link_path` -> `target` as root."""
    run_elevated_command(
        ["ln", "-sfn", target, link_path],
        app_settings,
        current_logger=current_logger,
    )


def write_file_elevated(
    file_path: str,
    content: str,
    app_settings: Optional[AppSettings],
    mode: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Write `content` to `file_path` as root via `tee`, optionally setting
    its octal mode (e.g. "0440").
    """
    run_elevated_command(
        ["tee", file_path],
        app_settings,
        cmd_input=content,
        capture_output=True,
        current_logger=current_logger,
    )
    if mode:
        run_elevated_command(
            ["chmod", mode, file_path],
            app_settings,
            current_logger=current_logger,
        )
