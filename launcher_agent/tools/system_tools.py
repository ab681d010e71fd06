import logging
import os
import stat
import subprocess
import sys
from pathlib import Path
from typing import Dict, List

import psutil
from langchain_core.tools import tool

logger = logging.getLogger(__name__)

APPLICATION_DIRS = ["/Applications", os.path.expanduser("~/Applications")]
APP_SUFFIX = ".app"
INDEX_COMMAND = "mdfind"
APP_BUNDLE_QUERY = "kMDItemContentType == 'com.apple.application-bundle'"
SEARCH_RESULT_LIMIT = 20
MAX_CONTENT_LENGTH = 5000
TRUNCATION_MARKER = "... [truncated]"
COMMAND_TIMEOUT_SECONDS = 10


def _running_process_names():
    names = set()
    for proc in psutil.process_iter(["name"]):
        try:
            name = proc.info.get("name")
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if name:
            names.add(name.lower())
    return names


def _apps_from_index(app_dirs):
    paths = []
    for app_dir in app_dirs:
        if not os.path.isdir(app_dir):
            continue
        result = subprocess.run(
            [INDEX_COMMAND, "-onlyin", app_dir, APP_BUNDLE_QUERY],
            capture_output=True, text=True, timeout=COMMAND_TIMEOUT_SECONDS, encoding="utf-8", errors="ignore",
        )
        if result.returncode != 0:
            raise RuntimeError(f"{INDEX_COMMAND} exited with status {result.returncode}: {result.stderr.strip()}")
        paths.extend(line.strip() for line in result.stdout.splitlines() if line.strip())
    return paths


def _apps_from_directories(app_dirs):
    paths = []
    for app_dir in app_dirs:
        if not os.path.isdir(app_dir):
            continue
        with os.scandir(app_dir) as entries:
            for entry in entries:
                if entry.name.endswith(APP_SUFFIX):
                    paths.append(entry.path)
    return paths


def _get_installed_applications() -> List[Dict[str, object]]:
    try:
        app_paths = _apps_from_index(APPLICATION_DIRS)
    except (OSError, RuntimeError, subprocess.SubprocessError) as e:
        logger.warning(f"Index lookup of applications failed, scanning directories instead: {e}")
        try:
            app_paths = _apps_from_directories(APPLICATION_DIRS)
        except OSError as fs_error:
            logger.error(f"Directory scan of applications failed: {fs_error}")
            return []

    try:
        running = _running_process_names()
    except psutil.Error as e:
        logger.warning(f"Could not read the process table: {e}")
        running = set()

    apps = {}
    for app_path in app_paths:
        name = Path(app_path).name
        if name.endswith(APP_SUFFIX):
            name = name[: -len(APP_SUFFIX)]
        apps[app_path] = {"name": name, "path": app_path, "running": name.lower() in running}

    return sorted(apps.values(), key=lambda app: (app["name"].lower(), app["path"]))


@tool
def list_applications():
    """List all installed applications found in the standard Applications folders. Takes no arguments. Each entry has name, path and whether it is currently running."""
    apps = _get_installed_applications()
    logger.info(f"list_applications found {len(apps)} applications.")
    return apps


def _opener_command(path):
    if sys.platform == "darwin":
        return ["open", path]
    if sys.platform.startswith("win"):
        return ["explorer", path]
    return ["xdg-open", path]


@tool
def open_path(path: str) -> dict:
    """
    Open a file, folder, or application with its default handler.

    Args:
        path (str): The absolute path to the file, folder, or application to open.
    """
    target = os.path.expanduser(path)
    if not os.path.exists(target):
        logger.warning(f"open_path: path does not exist: {path}")
        return {"success": False, "error": f"Path does not exist: {path}"}

    try:
        result = subprocess.run(
            _opener_command(target), capture_output=True, text=True, timeout=COMMAND_TIMEOUT_SECONDS,
            encoding="utf-8", errors="replace",
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"open_path failed for {path}: {e}")
        return {"success": False, "error": str(e)}

    if result.returncode != 0:
        error = result.stderr.strip() or f"Opener exited with status {result.returncode}."
        logger.error(f"open_path failed for {path}: {error}")
        return {"success": False, "error": error}

    logger.info(f"open_path opened {path}")
    return {"success": True}


@tool
def search_files(query: str) -> list:
    """
    Search for files, applications, or folders with the system search index (Spotlight).
    Returns at most 20 results, each with name and path.

    Args:
        query (str): The search query, e.g. keywords or a file name.
    """
    if not query.strip():
        return []
    try:
        result = subprocess.run(
            [INDEX_COMMAND, query], capture_output=True, text=True, timeout=COMMAND_TIMEOUT_SECONDS,
            encoding="utf-8", errors="ignore",
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"search_files failed for query \"{query}\": {e}")
        return []

    if result.returncode != 0:
        logger.error(f"search_files: {INDEX_COMMAND} exited with status {result.returncode} for query \"{query}\"")
        return []

    hits = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    files = [{"name": os.path.basename(hit), "path": hit} for hit in hits[:SEARCH_RESULT_LIMIT]]
    logger.info(f"search_files found {len(hits)} items for \"{query}\", returning {len(files)}.")
    return files


def _read_text(path):
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


@tool
def read_file_content(path: str) -> dict:
    """
    Read the text content of a file. Long files are truncated.

    Args:
        path (str): The absolute path of the file to read.
    """
    try:
        if not stat.S_ISREG(os.stat(path).st_mode):
            logger.warning(f"read_file_content: path is not a file: {path}")
            return {"success": False, "error": f"Path is not a file: {path}"}
        content = _read_text(path)
    except FileNotFoundError:
        return {"success": False, "error": f"File not found at path: {path}"}
    except PermissionError:
        return {"success": False, "error": f"Permission denied to read file: {path}"}
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"read_file_content failed for {path}: {e}")
        return {"success": False, "error": f"Failed to read file: {e}"}

    if len(content) > MAX_CONTENT_LENGTH:
        logger.warning(f"read_file_content truncating {path} from {len(content)} to {MAX_CONTENT_LENGTH} chars.")
        return {"success": True, "content": content[:MAX_CONTENT_LENGTH] + TRUNCATION_MARKER}

    logger.info(f"read_file_content read {path} ({len(content)} chars).")
    return {"success": True, "content": content}
