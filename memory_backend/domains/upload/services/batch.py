"""
Batch Coordinator
Runs single-file uploads in consecutive chunks of ``max_concurrent``
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from domains.upload.models import (
    BatchFileError,
    BatchOptions,
    BatchResult,
    MemoryRecord,
    UploadCandidate,
    UploadOptions,
)
from shared.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

SingleUpload = Callable[[UploadCandidate, str, UploadOptions], MemoryRecord]


class BatchCoordinator:
    """
    Fans a list of files out over a bounded number of concurrent uploads.

    Chunks run one after another; every upload in a chunk runs in parallel
    and the whole chunk settles before the next one starts, so at most
    ``max_concurrent`` transfers are ever active. A failing file is
    recorded in ``BatchResult.errors`` and never affects its siblings.
    ``run`` does not raise for per-file failures.
    """

    def __init__(self, upload_one: SingleUpload):
        self.upload_one = upload_one

    def _file_options(
        self,
        base: UploadOptions,
        options: BatchOptions,
        global_index: int,
        total_files: int
    ) -> UploadOptions:
        caller_progress = base.on_progress

        def on_progress(fraction: float, sent: int, total: int) -> None:
            if caller_progress:
                caller_progress(fraction, sent, total)
            if options.on_batch_progress:
                options.on_batch_progress(global_index, fraction, total_files)

        handle = options.handles[global_index] if options.handles else None
        return replace(base, on_progress=on_progress, handle=handle, on_complete=None, on_error=None)

    def run(
        self,
        files: Sequence[UploadCandidate],
        user_id: str,
        options: Optional[BatchOptions] = None
    ) -> BatchResult:
        """Upload every file and report per-file outcomes.

        Raises:
            InvalidParameterError: If ``options.handles`` does not match ``files``
        """
        options = options or BatchOptions()
        files = list(files)
        total_files = len(files)
        if options.handles is not None and len(options.handles) != total_files:
            raise InvalidParameterError(
                'handles', len(options.handles), f'Expected one handle per file ({total_files})'
            )

        outcomes: List[Optional[object]] = [None] * total_files
        completed = 0
        lock = threading.Lock()

        def upload_at(global_index: int) -> None:
            nonlocal completed
            candidate = files[global_index]
            file_options = self._file_options(options.upload, options, global_index, total_files)
            try:
                record = self.upload_one(candidate, user_id, file_options)
            except Exception as e:
                logger.warning(f"Batch file {global_index + 1}/{total_files} ({candidate.name}) failed: {e}")
                outcomes[global_index] = BatchFileError(
                    file=candidate.name,
                    error=str(e),
                    error_code=getattr(e, 'error_code', None)
                )
                return

            outcomes[global_index] = record
            with lock:
                completed += 1
                completed_count = completed
            if options.on_file_complete:
                options.on_file_complete(record, completed_count, total_files)

        logger.info(
            f"Starting batch upload of {total_files} files for user {user_id} "
            f"(max_concurrent={options.max_concurrent})"
        )

        with ThreadPoolExecutor(max_workers=options.max_concurrent, thread_name_prefix="memory-upload") as executor:
            for chunk_start in range(0, total_files, options.max_concurrent):
                chunk_end = min(chunk_start + options.max_concurrent, total_files)
                futures = [executor.submit(upload_at, index) for index in range(chunk_start, chunk_end)]
                wait(futures)
                for future in futures:
                    # Only callback errors get here; the upload itself was already recorded
                    error = future.exception()
                    if error is not None:
                        logger.error(f"Batch callback failed: {error}")

        results = [outcome for outcome in outcomes if isinstance(outcome, MemoryRecord)]
        errors = [outcome for outcome in outcomes if isinstance(outcome, BatchFileError)]
        logger.info(f"Batch upload finished: {len(results)} uploaded, {len(errors)} failed")

        if options.on_batch_complete:
            options.on_batch_complete(results, errors)

        return BatchResult(results=results, errors=errors)
