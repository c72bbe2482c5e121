"""Size-rotating file sink.

All writes and forced rotations go through one FIFO buffer drained by a
single task, so a rotation (close -> rename -> reopen -> rescan -> trim)
looks atomic to producers: anything submitted while it runs is written to
the new file, in submission order, once the new handle is open.
"""
import asyncio
import collections
import enum
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, Optional, Tuple, Union

import pendulum

from .compress import compress_backup
from .config import RetentionMode, SinkConfig, TriggerMode
from .errors import RotationError, ScanError, SinkError, StreamError
from .log import get_logger, log_error_observer
from .naming import compute_backup_path
from .policies import CountRetention, SizeTrigger, TrimResult
from .scanner import scan

logger = get_logger("rollfile.sink")

ErrorObserver = Callable[[SinkError], None]
Clock = Callable[[], datetime]


class SinkStatus(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    ROTATING = "rotating"


@dataclass(frozen=True)
class RotationOutcome:
    rotated: bool
    backup_path: Optional[str] = None
    trimmed: Tuple[str, ...] = ()
    error: Optional[SinkError] = None


@dataclass
class _Request:
    # data is None for a forced rotation
    data: Optional[bytes]
    future: asyncio.Future = field(repr=False)


def _utc_now() -> pendulum.DateTime:
    return pendulum.now("UTC")


class RotatingSink:
    """Append-only log file that rotates by size and keeps N backups.

    Use :meth:`write` from any number of producer tasks on one event loop.
    I/O failures never raise out of :meth:`write`; they are passed to
    ``observer`` and the write returns False.
    """

    def __init__(
        self,
        config: Union[SinkConfig, str, os.PathLike],
        observer: Optional[ErrorObserver] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = SinkConfig.coerce(config)
        self.path = self.config.path
        self.observer = observer if observer is not None else log_error_observer
        self.clock = clock if clock is not None else _utc_now

        size_limit = (
            self.config.max_size_bytes
            if self.config.trigger is TriggerMode.SIZE
            else 0
        )
        self.trigger = SizeTrigger(self.path, size_limit)
        self.retention = CountRetention(
            self.config.retain_count
            if self.config.retention is RetentionMode.COUNT
            else None
        )

        self.status = SinkStatus.CLOSED
        self.last_rotation: Optional[datetime] = None
        self.rotations = 0
        self._handle = None
        self._pending: Deque[_Request] = collections.deque()
        self._drainer: Optional[asyncio.Task] = None
        self._open_task: Optional[asyncio.Future] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<RotatingSink {self.path!r} {self.status.value}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current_size(self) -> int:
        return self.trigger.current_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Open the live file; idempotent.

        With both a size limit and a retain count configured, backups left
        by a previous run are trimmed before the first write.
        """
        if self._open_task is None:
            self._open_task = asyncio.ensure_future(self._open())
        await asyncio.shield(self._open_task)

    async def write(self, data: Union[bytes, bytearray, str], encoding: str = "utf-8") -> bool:
        """Append ``data``; True once the file handle accepted the bytes."""
        if isinstance(data, str):
            data = data.encode(encoding)
        if self._closed:
            self._report(StreamError(f"write to closed sink {self.path}", path=self.path))
            return False
        return await self._submit(bytes(data))

    async def rotate(self) -> RotationOutcome:
        """Rotate now, ordered after every write already submitted."""
        if self._closed:
            error = StreamError(f"rotate on closed sink {self.path}", path=self.path)
            self._report(error)
            return RotationOutcome(rotated=False, error=error)
        return await self._submit(None)

    async def close(self) -> None:
        """Flush pending writes and close the handle; further writes fail."""
        if self._closed:
            return
        self._closed = True
        if self._open_task is not None:
            await asyncio.shield(self._open_task)
        if self._drainer is not None:
            await self._drainer
        await self._close_handle()
        self.status = SinkStatus.CLOSED
        logger.info("sink_closed", path=self.path, rotations=self.rotations)

    async def __aenter__(self) -> "RotatingSink":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Buffer
    # ------------------------------------------------------------------

    async def _submit(self, data: Optional[bytes]):
        future = asyncio.get_running_loop().create_future()
        self._pending.append(_Request(data, future))
        if self._drainer is None or self._drainer.done():
            self._drainer = asyncio.ensure_future(self._drain())
        return await future

    async def _drain(self) -> None:
        await self.open()
        while self._pending:
            request = self._pending.popleft()
            try:
                if request.data is None:
                    result = await self._rotate()
                else:
                    result = await self._apply(request.data)
            except Exception as e:
                if not request.future.done():
                    request.future.set_exception(e)
                continue
            if not request.future.done():
                request.future.set_result(result)

    async def _apply(self, data: bytes) -> bool:
        if self.trigger.needs_stat:
            await asyncio.to_thread(self.trigger.resolve_size)
        if self.trigger.must_rotate():
            await self._rotate()
        if self._handle is None and not await self._open_handle(StreamError):
            return False
        return self._write_through(data)

    def _write_through(self, data: bytes) -> bool:
        try:
            self._handle.write(data)
            self._handle.flush()
        except (OSError, ValueError) as e:
            self._report(StreamError(f"cannot write to {self.path}", path=self.path, cause=e))
            return False
        self.trigger.record(len(data))
        return True

    # ------------------------------------------------------------------
    # Lifecycle steps
    # ------------------------------------------------------------------

    async def _open(self) -> None:
        await self._open_handle(StreamError)
        self.trigger.invalidate()
        self.status = SinkStatus.OPEN
        logger.info(
            "sink_opened",
            path=self.path,
            max_size_bytes=self.config.max_size_bytes,
            retain_count=self.config.retain_count,
        )
        if (
            self.config.trigger is TriggerMode.SIZE
            and self.config.retention is RetentionMode.COUNT
        ):
            await self._reconcile()

    async def _rotate(self) -> RotationOutcome:
        self.status = SinkStatus.ROTATING
        now = self.clock()
        try:
            await self._close_handle()
            backup = compute_backup_path(self.path, now, self.last_rotation)
            try:
                backup = await asyncio.to_thread(self._move_live_file, backup, now)
            except RotationError as e:
                return await self._abort_rotation(e)
            except OSError as e:
                return await self._abort_rotation(
                    RotationError(
                        f"cannot rename {self.path} to {backup}", path=self.path, cause=e
                    )
                )

            await self._open_handle(RotationError)
            self.trigger.reset(0)
            self.last_rotation = now
            self.rotations += 1
            logger.info("sink_rotated", path=self.path, backup=backup)

            if self.config.compress:
                backup = await self._compress(backup)
            result = await self._reconcile()
            return RotationOutcome(
                rotated=True, backup_path=backup, trimmed=tuple(result.removed)
            )
        finally:
            self.status = SinkStatus.OPEN

    async def _abort_rotation(self, error: RotationError) -> RotationOutcome:
        self._report(error)
        # keep logging into the original file
        await self._open_handle(RotationError)
        self.trigger.invalidate()
        return RotationOutcome(rotated=False, error=error)

    def _move_live_file(self, backup: str, now: datetime) -> str:
        if self._backup_exists(backup):
            # clock went backwards or an outside file took the name
            backup = compute_backup_path(self.path, now, now)
            if self._backup_exists(backup):
                raise RotationError(
                    f"backup name {backup} already taken", path=backup
                )
        os.rename(self.path, backup)
        return backup

    def _backup_exists(self, backup: str) -> bool:
        return os.path.exists(backup) or os.path.exists(backup + ".gz")

    async def _compress(self, backup: str) -> str:
        try:
            compressed = await asyncio.to_thread(compress_backup, backup)
        except RotationError as e:
            self._report(e)
            return backup
        logger.debug("backup_compressed", path=compressed)
        return compressed

    async def _reconcile(self) -> TrimResult:
        try:
            backups = await asyncio.to_thread(
                scan, self.config.directory, self.config.basename
            )
        except ScanError as e:
            self._report(e)
            backups = []
        result = await asyncio.to_thread(self.retention.trim, backups)
        for error in result.errors:
            self._report(error)
        if result.last_timestamp is not None:
            self.last_rotation = result.last_timestamp
        return result

    async def _open_handle(self, error_cls) -> bool:
        try:
            self._handle = await asyncio.to_thread(self._open_file)
        except OSError as e:
            self._handle = None
            self._report(error_cls(f"cannot open {self.path}", path=self.path, cause=e))
            return False
        return True

    def _open_file(self):
        os.makedirs(self.config.directory, exist_ok=True)
        return open(self.path, "ab")

    async def _close_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await asyncio.to_thread(handle.close)
        except OSError as e:
            self._report(StreamError(f"cannot close {self.path}", path=self.path, cause=e))

    def _report(self, error: SinkError) -> None:
        try:
            self.observer(error)
        except Exception:
            logger.exception("error_observer_failed", path=self.path)

