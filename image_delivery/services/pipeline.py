"""Streaming transform pipeline.

fetch (S3 GetObject) -> decode -> resize -> encode -> forward

블로킹 작업(boto3 읽기, Pillow 디코드/인코드)은 전용 ThreadPoolExecutor 에서
실행되고 (``asyncio.to_thread`` 와 스레드를 공유하지 않음), 인코딩된 청크는
크기가 제한된 ``asyncio.Queue`` 로 응답에 전달됩니다. 큐가 가득 차면 워커 스레드가 대기하므로 소켓의 backpressure 가 인코더와
스토리지 읽기까지 전달됩니다.
워커가 시작되지 않으면 ``start_timeout`` 후 503, 소비자가 ``idle_timeout`` 동안
읽지 않으면 스트림을 중단하고 워커 스레드를 반환합니다.

Failure handling depends on ``TransformStream.output_started``: before the
first chunk is handed to the response, failures surface as structured
``ImageServiceError`` subclasses; afterwards the stream is aborted with
``TransformAbortedError`` and the failure is only visible in logs.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
import time
import weakref
from concurrent.futures import Executor
from typing import TYPE_CHECKING, AsyncIterator, Callable, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from image_delivery.core.exceptions import (
    ConsumerStalledError,
    ImageServiceError,
    ObjectNotFoundError,
    PipelineCancelledError,
    StorageFetchError,
    TransformAbortedError,
    TransformBusyError,
    TransformInternalError,
)
from image_delivery.metrics import TRANSFORMS
from image_delivery.schemas.image import ImageFormat, TransformRequest
from image_delivery.services import imaging

if TYPE_CHECKING:
    from botocore.client import BaseClient

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})

# 워커가 큐 공간을 기다리는 동안 취소 여부를 확인하는 주기 (초)
_PUT_POLL_SECONDS = 0.5

_DONE = object()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class _Channel:
    """Bounded hand-off between the worker thread and the event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        maxsize: int,
        idle_timeout: Optional[float] = None,
    ) -> None:
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.cancelled = threading.Event()
        self.content_type: Optional[str] = None
        self._idle_timeout = idle_timeout

    def put(self, item: object) -> None:
        """Called from the worker; blocks while the queue is full.

        큐에 빈 자리가 ``idle_timeout`` 동안 생기지 않으면 소비자에게
        ``ConsumerStalledError`` 를 전달하고 워커를 종료시킵니다.
        """
        if self.cancelled.is_set():
            raise PipelineCancelledError
        future = asyncio.run_coroutine_threadsafe(self.queue.put(item), self.loop)
        started = time.monotonic()
        while True:
            try:
                future.result(timeout=_PUT_POLL_SECONDS)
                return
            except concurrent.futures.TimeoutError:
                if self.cancelled.is_set():
                    future.cancel()
                    raise PipelineCancelledError from None
                waited = time.monotonic() - started
                if self._idle_timeout is not None and waited >= self._idle_timeout:
                    future.cancel()
                    self._stall(waited)
                    raise PipelineCancelledError("consumer stalled") from None

    def _stall(self, waited: float) -> None:
        self.cancelled.set()
        error = ConsumerStalledError(f"No chunk consumed for {waited:.1f}s")
        try:
            self.loop.call_soon_threadsafe(self._abandon, error)
        except RuntimeError:
            # 루프가 이미 닫힘 - 알릴 소비자가 없음
            logger.debug("Event loop closed before stall notification")

    def _abandon(self, error: ConsumerStalledError) -> None:
        # 루프에서 실행: 남은 청크를 버리고 소비자가 다음 get 에서 실패를 받도록
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(_Failure(error))

    def check_cancelled(self) -> None:
        if self.cancelled.is_set():
            raise PipelineCancelledError

    def cancel(self) -> None:
        """Called on the loop; unblocks a worker waiting on a full queue."""
        self.cancelled.set()
        while not self.queue.empty():
            self.queue.get_nowait()


class _ChunkWriter:
    """File-like sink for ``Image.save`` that forwards fixed-size chunks."""

    def __init__(self, emit: Callable[[bytes], None], chunk_size: int) -> None:
        self._emit = emit
        self._chunk_size = chunk_size
        self._buffer = bytearray()
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self._buffer += data
        while len(self._buffer) >= self._chunk_size:
            self._emit(bytes(self._buffer[: self._chunk_size]))
            del self._buffer[: self._chunk_size]
        self.bytes_written += len(data)
        return len(data)

    def flush(self) -> None:
        if self._buffer:
            self._emit(bytes(self._buffer))
            self._buffer.clear()


class TransformStream:
    """Response-side handle of one running pipeline.

    ``start()`` waits for the first chunk (or the first failure);
    ``iter_bytes()`` then forwards the remaining chunks as they are encoded.
    """

    def __init__(self, channel: _Channel, object_key: str) -> None:
        self._channel = channel
        self._object_key = object_key
        self._head: object = _DONE
        self._finished = False
        self.output_started = False
        # 응답 객체가 소비되지 않고 버려져도 워커가 멈추도록
        weakref.finalize(self, channel.cancelled.set)

    @property
    def content_type(self) -> str:
        return self._channel.content_type or DEFAULT_CONTENT_TYPE

    async def start(self) -> None:
        try:
            item = await self._channel.queue.get()
        except BaseException:
            self.close()
            raise
        if isinstance(item, _Failure):
            self._finished = True
            TRANSFORMS.labels(outcome="failed").inc()
            self._channel.cancel()
            raise self._structured(item.error)
        self._head = item

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        # start() 가 선두의 실패를 처리하므로 여기서의 실패는 항상 출력 시작 이후
        try:
            item = self._head
            while item is not _DONE:
                self.output_started = True
                yield item
                item = await self._channel.queue.get()
                if isinstance(item, _Failure):
                    self._abort(item.error)
            self._finished = True
            TRANSFORMS.labels(outcome="ok").inc()
        finally:
            self.close()

    def close(self) -> None:
        if not self._finished:
            self._finished = True
            TRANSFORMS.labels(outcome="cancelled").inc()
            logger.info(
                "Transform stream closed before completion",
                extra={"object_key": self._object_key},
            )
        self._channel.cancel()

    def _abort(self, error: BaseException) -> None:
        # 헤더와 상태 코드가 이미 전송됨 - 구조화된 에러 응답 불가
        self._finished = True
        TRANSFORMS.labels(outcome="aborted").inc()
        logger.error(
            "Transform failed after output started; aborting response",
            exc_info=error,
            extra={"object_key": self._object_key},
        )
        raise TransformAbortedError(str(error)) from error

    @staticmethod
    def _structured(error: BaseException) -> ImageServiceError:
        if isinstance(error, ImageServiceError):
            return error
        wrapped = TransformInternalError()
        wrapped.__cause__ = error
        return wrapped


class TransformPipeline:
    """Runs fetch/decode/resize/encode for one request per call.

    Args:
        s3_client: boto3 S3 클라이언트
        bucket: 원본 이미지 버킷
        chunk_size: 스토리지 읽기 및 응답 청크 크기 (bytes)
        queue_size: 인코더와 응답 사이에 버퍼링되는 최대 청크 수
        executor: 워커 스레드 풀 (None 이면 루프 기본 executor)
        start_timeout: 첫 청크까지 기다리는 최대 시간 (초, None 이면 무제한)
        idle_timeout: 소비자가 읽지 않는 상태를 허용하는 최대 시간 (초)
    """

    def __init__(
        self,
        s3_client: "BaseClient",
        bucket: str,
        chunk_size: int = 64 * 1024,
        queue_size: int = 8,
        executor: Optional[Executor] = None,
        start_timeout: Optional[float] = None,
        idle_timeout: Optional[float] = None,
    ) -> None:
        self._s3 = s3_client
        self._bucket = bucket
        self._chunk_size = chunk_size
        self._queue_size = queue_size
        self._executor = executor
        self._start_timeout = start_timeout
        self._idle_timeout = idle_timeout

    async def transform(
        self,
        request: TransformRequest,
        output_format: Optional[ImageFormat] = None,
    ) -> TransformStream:
        """Start the pipeline and wait until output is ready to flow.

        Raises:
            ObjectNotFoundError: 원본 없음 (404)
            StorageFetchError: 스토리지 접근 실패
            TransformInternalError: 출력 시작 전 디코드/인코드 실패
            TransformBusyError: start_timeout 안에 워커가 첫 청크를 만들지 못함 (503)
        """
        loop = asyncio.get_running_loop()
        channel = _Channel(loop, self._queue_size, self._idle_timeout)
        stream = TransformStream(channel, request.object_key)
        logger.info(
            "Transform started",
            extra={
                "object_key": request.object_key,
                "width": request.width,
                "height": request.height,
                "fit": request.fit.value if request.fit else None,
                "output_format": output_format.value if output_format else None,
                "quality": request.quality,
            },
        )
        loop.run_in_executor(self._executor, self._run, request, output_format, channel)
        try:
            await asyncio.wait_for(stream.start(), timeout=self._start_timeout)
        except asyncio.TimeoutError:
            # start() 취소 시 close() 로 채널이 취소되어 대기 중인 작업은 즉시 종료
            logger.warning(
                "Transform did not start in time",
                extra={"object_key": request.object_key, "timeout": self._start_timeout},
            )
            raise TransformBusyError() from None
        return stream

    def _run(
        self,
        request: TransformRequest,
        output_format: Optional[ImageFormat],
        channel: _Channel,
    ) -> None:
        body = None
        try:
            channel.check_cancelled()
            body, source_type = self._fetch(request.object_key)
            chunks = self._read(body, channel)

            if output_format is None and not request.wants_reencode:
                channel.content_type = source_type or DEFAULT_CONTENT_TYPE
                for chunk in chunks:
                    channel.put(chunk)
            else:
                image = imaging.decode(chunks)
                target = output_format or imaging.source_output_format(image)
                if request.wants_resize:
                    image = imaging.resize(image, request.width, request.height, request.fit)
                channel.check_cancelled()
                channel.content_type = target.media_type
                writer = _ChunkWriter(channel.put, self._chunk_size)
                imaging.encode(image, target, request.quality, writer)
                writer.flush()
                logger.debug(
                    "Transform encoded",
                    extra={
                        "object_key": request.object_key,
                        "output_format": target.value,
                        "size_bytes": writer.bytes_written,
                    },
                )
            channel.put(_DONE)
        except PipelineCancelledError as exc:
            logger.info(
                "Transform cancelled",
                extra={"object_key": request.object_key, "reason": str(exc) or "consumer closed"},
            )
        except Exception as exc:
            logger.warning(
                "Transform stage failed",
                extra={"object_key": request.object_key, "error": str(exc)},
            )
            try:
                channel.put(_Failure(exc))
            except PipelineCancelledError:
                pass
        finally:
            if body is not None:
                body.close()

    def _fetch(self, key: str):
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in NOT_FOUND_CODES:
                raise ObjectNotFoundError(key) from exc
            raise StorageFetchError() from exc
        except BotoCoreError as exc:
            raise StorageFetchError() from exc
        return response["Body"], response.get("ContentType")

    def _read(self, body, channel: _Channel) -> Iterator[bytes]:
        chunks = body.iter_chunks(self._chunk_size)
        while True:
            channel.check_cancelled()
            try:
                chunk = next(chunks, None)
            except (BotoCoreError, OSError) as exc:
                raise StorageFetchError("Storage stream interrupted.") from exc
            if chunk is None:
                return
            if chunk:
                yield chunk
