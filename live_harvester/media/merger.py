"""
Joins a track's initialization payload with a media segment payload.
"""

import logging
import os

import aiofiles

log = logging.getLogger(__name__)

CHUNK_SIZE = 1048576  # 1 MB


async def concat_files(init_path: str, segment_path: str, output_path: str) -> bool:
    """
    Writes the bytes of ``init_path`` followed by ``segment_path`` to ``output_path``.

    Returns:
        True on success, False if any of the files could not be read or written.
    """
    try:
        async with aiofiles.open(output_path, "wb") as out:
            for source in (init_path, segment_path):
                async with aiofiles.open(source, "rb") as f:
                    while chunk := await f.read(CHUNK_SIZE):
                        await out.write(chunk)
    except OSError as e:
        log.debug(f"Concatenation into '{os.path.basename(output_path)}' failed: {e}")
        return False
    return True
