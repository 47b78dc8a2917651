"""Registry of live transcoder processes and their claimed output paths.

A single ProcessSupervisor is shared by every in-flight job and by the
shutdown handler. Registration, removal and kill are serialized under one
asyncio.Lock; the lock is never held while a job reads its diagnostic
stream, so jobs do not block each other.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


async def remove_file(path: Path) -> bool:
    """Delete a file if it exists, best-effort.

    Returns:
        True if a file was deleted.
    """
    try:
        exists = await asyncio.to_thread(path.exists)
        if not exists:
            return False
        await asyncio.to_thread(path.unlink)
        return True
    except OSError as e:
        logger.warning("Failed to delete %s: %s", path, e)
        return False


def _terminate(job_id: str, process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        # Exited between the returncode check and the kill
        logger.debug("Process for job %s already gone", job_id)


class ProcessSupervisor:
    """Tracks subprocess handles and claimed output paths by job id.

    Usage:
        supervisor = ProcessSupervisor()
        await supervisor.register_output(job_id, output_path)
        await supervisor.register(job_id, process)
        ...
        await supervisor.kill(job_id)      # user cancellation
        await supervisor.kill_all()        # shutdown
    """

    def __init__(self) -> None:
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._outputs: dict[str, Path] = {}
        self._lock = asyncio.Lock()

    async def register(self, job_id: str, process: asyncio.subprocess.Process) -> None:
        async with self._lock:
            self._processes[job_id] = process

    async def register_output(self, job_id: str, path: Path) -> None:
        async with self._lock:
            self._outputs[job_id] = path

    async def remove(self, job_id: str) -> asyncio.subprocess.Process | None:
        async with self._lock:
            return self._processes.pop(job_id, None)

    async def remove_output(self, job_id: str) -> Path | None:
        async with self._lock:
            return self._outputs.pop(job_id, None)

    async def has_process(self, job_id: str) -> bool:
        async with self._lock:
            return job_id in self._processes

    async def has_output(self, job_id: str) -> bool:
        async with self._lock:
            return job_id in self._outputs

    async def active_jobs(self) -> list[str]:
        """Ids of every job holding a process or an output claim."""
        async with self._lock:
            return sorted(set(self._processes) | set(self._outputs))

    async def kill(self, job_id: str) -> None:
        """Cancel one job.

        Terminates the subprocess if one is tracked, drops both registry
        entries and deletes the claimed output path. Unknown ids are a
        no-op.
        """
        async with self._lock:
            process = self._processes.pop(job_id, None)
            output = self._outputs.pop(job_id, None)

        if process is not None:
            logger.info("Killing process for job %s (pid %s)", job_id, process.pid)
            _terminate(job_id, process)
        if output is not None and await remove_file(output):
            logger.info("Removed partial output %s", output)

    async def kill_all(self) -> None:
        """Terminate every tracked process and delete every claimed output.

        Used at shutdown. Best-effort: failures are logged, never raised.
        """
        async with self._lock:
            processes = list(self._processes.items())
            outputs = list(self._outputs.values())
            self._processes.clear()
            self._outputs.clear()

        if processes or outputs:
            logger.info(
                "Shutting down %d process(es), removing %d output(s)",
                len(processes),
                len(outputs),
            )

        for job_id, process in processes:
            try:
                _terminate(job_id, process)
            except OSError as e:
                logger.warning("Failed to kill process for job %s: %s", job_id, e)

        for output in outputs:
            await remove_file(output)

        if processes:
            # Reap so no zombies outlive the parent
            await asyncio.gather(
                *(process.wait() for _, process in processes),
                return_exceptions=True,
            )
