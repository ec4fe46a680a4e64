"""
File Operation Endpoints

Thin HTTP mapping of the storage adapter operations.

@.architecture
Incoming: api/v1/router.py, HTTP clients (GET/POST /v1/files/*) --- {JSON bodies, path parameters, Range and X-File-Mode headers, raw request bodies}
Processing: mkdir(), rmdir(), readdir(), stat(), read_file(), write_file(), unlink(), rename(), chmod(), parse_range_header(), _run_blocking() --- {6 jobs: request_parsing, range_parsing, body_spooling, executor_dispatch, deadline_enforcement, response_streaming}
Outgoing: data/storage (StorageAdapter), HTTP clients --- {adapter calls, OperationResponse/FileInfoResponse/DirEntryResponse JSON, streamed application/octet-stream bodies}

Adapter calls are blocking and run in the default executor. Each call is
bounded by the server read/write timeout; when the deadline passes the
client gets a 504 while the filesystem call itself runs to completion;
the upload spool and any stream it returns are released once it does.
"""

import asyncio
import re
import tempfile
from functools import partial
from typing import BinaryIO, Callable, Iterator, List, Optional, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from api.dependencies import get_app_logger, get_settings, get_storage_adapter
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.files import (
    ChmodRequest,
    DirEntryResponse,
    FileInfoResponse,
    MkdirRequest,
    OperationResponse,
    PathRequest,
    RenameRequest,
    parse_mode,
)
from config.settings import Settings
from data.storage import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    ReadOptions,
    StorageAdapter,
    WriteOptions,
)
from monitoring import StructuredLogger

router = APIRouter(
    prefix="/files",
    tags=["files"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid path"},
        404: {"model": ErrorResponse, "description": "Path not found"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    },
)

T = TypeVar("T")

_RANGE_PATTERN = re.compile(r"^bytes=(\d+)-(\d*)$")


# =============================================================================
# Helpers
# =============================================================================

def _finish_late(
    release: Optional[Callable[[T], None]],
    future: "asyncio.Future[T]"
) -> None:
    # Runs once a call that already answered 504 returns
    if future.cancelled() or future.exception() is not None:
        return
    if release is not None:
        release(future.result())


async def _run_blocking(
    func: Callable[..., T],
    *args,
    timeout: Optional[float] = None,
    cleanup: Optional[Callable[[], None]] = None,
    release_late: Optional[Callable[[T], None]] = None
) -> T:
    """
    Run a blocking adapter call in the executor, bounded by `timeout`.

    `cleanup` runs when the call itself finishes, which may be after the
    deadline; resources the call reads from must stay open until then.
    `release_late` receives the result of a call that finished after its
    deadline, whose caller is gone.

    Raises:
        HTTPException: 504 when the deadline passes first
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, partial(func, *args))
    if cleanup is not None:
        future.add_done_callback(lambda _: cleanup())
    try:
        # Shielded so a timeout leaves the executor future pending until the thread returns
        return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
    except asyncio.CancelledError:
        future.add_done_callback(partial(_finish_late, release_late))
        raise
    except asyncio.TimeoutError:
        future.add_done_callback(partial(_finish_late, release_late))
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Storage operation timed out"
        )


def parse_range_header(value: Optional[str]) -> ReadOptions:
    """
    Translate a `Range: bytes=start-end` header into ReadOptions.

    `bytes=start-` reads from start to end of file. No header reads everything.

    Raises:
        HTTPException: 400 if the header is malformed
    """
    if not value:
        return ReadOptions()

    match = _RANGE_PATTERN.match(value.strip())
    if not match:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid Range header: {value}"
        )

    start = int(match.group(1))
    if not match.group(2):
        return ReadOptions(offset=start)

    end = int(match.group(2))
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid Range header: end before start in {value}"
        )
    return ReadOptions(offset=start, length=end - start + 1)


def _parse_mode_header(value: Optional[str]) -> int:
    try:
        mode = parse_mode(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid X-File-Mode header: {e}"
        )
    return mode or DEFAULT_FILE_MODE


def _iter_stream(stream: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


# =============================================================================
# Directory Operations
# =============================================================================

@router.post(
    "/mkdir",
    status_code=status.HTTP_201_CREATED,
    response_model=OperationResponse,
    summary="Create directory",
    description="Create a directory and any missing parents (idempotent)"
)
async def mkdir(
    request: MkdirRequest,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_app_logger)
) -> OperationResponse:
    mode = DEFAULT_DIR_MODE if request.mode is None else request.mode
    await _run_blocking(
        adapter.mkdir, request.path, mode,
        timeout=settings.server.write_timeout
    )
    logger.for_operation("mkdir", request.path).info("Created directory", mode=oct(mode))
    return OperationResponse(path=request.path)


@router.post(
    "/rmdir",
    response_model=OperationResponse,
    summary="Remove directory",
    description="Remove an empty directory"
)
async def rmdir(
    request: PathRequest,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_app_logger)
) -> OperationResponse:
    await _run_blocking(adapter.rmdir, request.path, timeout=settings.server.write_timeout)
    logger.for_operation("rmdir", request.path).info("Removed directory")
    return OperationResponse(path=request.path)


@router.get(
    "/readdir/{path:path}",
    response_model=List[DirEntryResponse],
    summary="List directory",
    description="List the direct children of a directory (empty path lists the root)"
)
async def readdir(
    path: str,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings)
) -> List[DirEntryResponse]:
    entries = await _run_blocking(
        adapter.readdir, path or ".",
        timeout=settings.server.read_timeout
    )
    return [DirEntryResponse(**entry.to_dict()) for entry in entries]


# =============================================================================
# File Operations
# =============================================================================

@router.get(
    "/stat/{path:path}",
    response_model=FileInfoResponse,
    summary="Stat path",
    description="Return size, permission bits, modification time and type of a path"
)
async def stat(
    path: str,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings)
) -> FileInfoResponse:
    info = await _run_blocking(adapter.stat, path or ".", timeout=settings.server.read_timeout)
    return FileInfoResponse(
        name=info.name,
        size=info.size,
        mode=info.permissions,
        mod_time=info.mod_time,
        is_dir=info.is_dir
    )


@router.get(
    "/read/{path:path}",
    response_class=StreamingResponse,
    summary="Read file",
    description="Stream file content; honours `Range: bytes=start-end`"
)
async def read_file(
    path: str,
    range_header: Optional[str] = Header(None, alias="Range"),
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings)
) -> StreamingResponse:
    opts = parse_range_header(range_header)
    stream = await _run_blocking(
        adapter.read_file, path, opts,
        timeout=settings.server.read_timeout,
        release_late=lambda late_stream: late_stream.close()
    )
    return StreamingResponse(
        _iter_stream(stream, settings.storage.chunk_size),
        media_type="application/octet-stream",
        headers={"Accept-Ranges": "bytes"},
        # Closing twice is harmless; this covers responses that never start streaming
        background=BackgroundTask(stream.close)
    )


@router.post(
    "/write/{path:path}",
    status_code=status.HTTP_201_CREATED,
    response_model=OperationResponse,
    summary="Write file",
    description="Replace file content with the request body; mode from `X-File-Mode` (octal, default 0644)"
)
async def write_file(
    path: str,
    http_request: Request,
    x_file_mode: Optional[str] = Header(None),
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_app_logger)
) -> OperationResponse:
    opts = WriteOptions(mode=_parse_mode_header(x_file_mode))

    spool = tempfile.SpooledTemporaryFile(max_size=settings.storage.spool_max_bytes)
    size = 0
    try:
        async for chunk in http_request.stream():
            spool.write(chunk)
            size += len(chunk)
        spool.seek(0)
    except BaseException:
        spool.close()
        raise

    # The spool is closed by the worker's completion, not by this request
    await _run_blocking(
        adapter.write_file, path, spool, opts,
        timeout=settings.server.write_timeout,
        cleanup=spool.close
    )

    logger.for_operation("write", path).info("Wrote file", size_bytes=size, mode=oct(opts.mode))
    return OperationResponse(path=path)


@router.post(
    "/unlink",
    response_model=OperationResponse,
    summary="Delete file",
    description="Delete a file (directories must use rmdir)"
)
async def unlink(
    request: PathRequest,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_app_logger)
) -> OperationResponse:
    await _run_blocking(adapter.unlink, request.path, timeout=settings.server.write_timeout)
    logger.for_operation("unlink", request.path).info("Deleted file")
    return OperationResponse(path=request.path)


@router.post(
    "/rename",
    response_model=OperationResponse,
    summary="Rename path",
    description="Move a file or directory, creating missing parents of the target"
)
async def rename(
    request: RenameRequest,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_app_logger)
) -> OperationResponse:
    await _run_blocking(
        adapter.rename, request.old_path, request.new_path,
        timeout=settings.server.write_timeout
    )
    logger.for_operation("rename", request.old_path).info("Renamed path", new_path=request.new_path)
    return OperationResponse(path=request.new_path)


@router.post(
    "/chmod",
    response_model=OperationResponse,
    summary="Change permissions",
    description="Set the permission bits of a path"
)
async def chmod(
    request: ChmodRequest,
    adapter: StorageAdapter = Depends(get_storage_adapter),
    settings: Settings = Depends(get_settings),
    logger: StructuredLogger = Depends(get_app_logger)
) -> OperationResponse:
    await _run_blocking(
        adapter.chmod, request.path, request.mode,
        timeout=settings.server.write_timeout
    )
    logger.for_operation("chmod", request.path).info("Changed mode", mode=oct(request.mode))
    return OperationResponse(path=request.path)
