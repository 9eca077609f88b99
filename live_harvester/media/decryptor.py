"""
Runs the external decryption executable for a merged segment.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path

from live_harvester.models.segment import DecryptionJob

log = logging.getLogger(__name__)

# Any coroutine function taking a job and reporting success works as a decryptor.
Decryptor = Callable[[DecryptionJob], Awaitable[bool]]


class SubprocessDecryptor:
    """
    Invokes ``script keyId key inputPath outputPath workingRoot trackSubdir``.

    Success is an exit code of 0. The script is expected to write the
    decrypted segment to ``outputPath``.
    """

    def __init__(self, script: str, working_root: Path | str):
        self.script = script
        self.working_root = str(working_root)

    def build_command(self, job: DecryptionJob) -> list[str]:
        return [
            self.script,
            job.key_id,
            job.key,
            str(job.input_path),
            str(job.output_path),
            self.working_root,
            job.track,
        ]

    async def __call__(self, job: DecryptionJob) -> bool:
        command = self.build_command(job)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error(f"[red]Could not start decryption script[/] '{self.script}': {e}")
            return False

        stdout, stderr = await process.communicate()
        name = os.path.basename(str(job.input_path))
        if stdout:
            log.debug(f"decrypt {name}: {stdout.decode(errors='replace').strip()}")
        if process.returncode != 0:
            log.error(
                f"[red]Decrypting {job.track} segment '{name}' failed[/] "
                f"(exit code {process.returncode}): "
                f"{stderr.decode(errors='replace').strip()}"
            )
            return False
        return True
