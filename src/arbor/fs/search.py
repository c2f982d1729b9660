"""External file-finder process used for search mode."""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field

from arbor.config.models import FilterSettings
from arbor.runtime_logging import get_runtime_logger

FIND_COMMANDS = ("fd", "fdfind", "find", "where")


@dataclass(slots=True)
class SearchRequest:
    root_path: str
    term: str
    filters: FilterSettings = field(default_factory=FilterSettings)
    find_command: str | None = None
    limit: int = 50


@dataclass(slots=True)
class SearchResult:
    error: str | None
    path: str | None


Searcher = Callable[[SearchRequest], AsyncIterator[SearchResult]]


def resolve_find_command(preferred: str | None = None) -> str | None:
    if preferred:
        return preferred
    for command in FIND_COMMANDS:
        if shutil.which(command) is not None:
            return command
    return None


def glob_term(term: str) -> str:
    if "*" in term:
        return term
    return f"*{term}*"


def build_find_args(command: str, request: SearchRequest) -> list[str] | None:
    term = glob_term(request.term)
    name = os.path.basename(command)
    args: list[str] = []
    if name in {"fd", "fdfind"}:
        if request.filters.show_hidden:
            args.append("--hidden")
        if not request.filters.respect_gitignore:
            args.append("--no-ignore")
        args.extend(["--glob", term, request.root_path])
    elif name == "find":
        args.append(request.root_path)
        if not request.filters.show_hidden:
            args.extend(["-not", "-path", "*/.*"])
        args.extend(["-iname", term])
    elif name == "where":
        args.extend(["/r", request.root_path, term])
    else:
        return None
    return args


def normalize_result_path(line: str, root_path: str) -> str:
    path = line.rstrip("\r\n")
    if len(path) > 1:
        path = path.rstrip("/" + os.sep) or path
    if not os.path.isabs(path):
        path = os.path.join(root_path, path)
    return path


async def find_files(request: SearchRequest) -> AsyncIterator[SearchResult]:
    """Stream matches for ``request.term`` below ``request.root_path``.

    Errors are reported in-band as results with ``error`` set; the stream
    always ends, which is the completion signal.
    """
    logger = get_runtime_logger()
    command = resolve_find_command(request.find_command)
    if command is None:
        logger.warning("search.command.missing", root=request.root_path)
        yield SearchResult(error="No search command found", path=None)
        return

    args = build_find_args(command, request)
    if args is None:
        logger.warning("search.command.unsupported", command=command)
        yield SearchResult(error=f"Unsupported search command: {command}", path=None)
        return

    logger.debug("search.start", command=command, args=args, limit=request.limit)
    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        logger.warning("search.spawn.failed", command=command, error=str(exc))
        yield SearchResult(error=f"{command}: {exc}", path=None)
        return

    assert process.stdout is not None
    assert process.stderr is not None
    # stderr is read concurrently; a full stderr pipe would stall stdout.
    stderr_task = asyncio.create_task(process.stderr.read())
    count = 0
    truncated = False
    exhausted = False
    try:
        while True:
            raw = await process.stdout.readline()
            if not raw:
                exhausted = True
                break
            line = raw.decode("utf-8", errors="replace").strip("\r\n")
            if not line:
                continue
            yield SearchResult(error=None, path=normalize_result_path(line, request.root_path))
            count += 1
            if count >= request.limit:
                truncated = True
                break
    finally:
        if process.returncode is None and not exhausted:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
        stderr = await stderr_task
        returncode = await process.wait()

    logger.debug("search.exit", command=command, returncode=returncode, results=count)
    message = stderr.decode("utf-8", errors="replace").strip()
    if not truncated and returncode != 0 and message:
        yield SearchResult(error=message, path=None)
