"""
Handles the low-level fetching of segment files over HTTP, streaming them to
the scratch download directory.
"""

import asyncio
import logging
import os

import aiofiles
import aiohttp

from live_harvester.exceptions import SegmentFetchError

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    timeout_seconds: float = 60.0, max_connections: int = 4
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for segment fetches.

    This function ensures that only one connection pool is created for the
    lifetime of the application run, so consecutive cycles reuse connections
    to the CDN.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections,
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(
            total=timeout_seconds or None, sock_connect=15
        )
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created fetch pool with limit={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared fetch connection pool closed.")


class SegmentFetcher:
    """
    Fetches a single segment to a local file.

    Failures are not retried: a failed fetch aborts the cycle and the driver
    decides whether to run the cycle again.
    """

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(self, timeout_seconds: float = 60.0):
        self.timeout_seconds = timeout_seconds

    async def fetch(
        self, url: str, destination_path: str, proxy: str | None = None
    ) -> int:
        """
        Streams ``url`` into ``destination_path``.

        Args:
            url: Segment URL.
            destination_path: File to write; its directory must already exist.
            proxy: Optional HTTP proxy URL.

        Returns:
            The number of bytes written.

        Raises:
            SegmentFetchError: If the arguments are invalid or the request fails.
        """
        if not url:
            raise SegmentFetchError("Cannot fetch a segment with an empty URL.")
        directory = os.path.dirname(destination_path) or "."
        if not os.path.isdir(directory):
            raise SegmentFetchError(
                f"Destination directory '{directory}' does not exist."
            )

        try:
            session = await get_connection_pool(self.timeout_seconds)
            async with session.get(url, proxy=proxy, allow_redirects=True) as response:
                response.raise_for_status()
                bytes_written = 0
                async with aiofiles.open(destination_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_written += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.error(f"[red]Failed to fetch[/] {url}: {e}")
            raise SegmentFetchError(f"Fetching '{url}' failed: {e}") from e
        except OSError as e:
            raise SegmentFetchError(
                f"Could not write '{os.path.basename(destination_path)}': {e}"
            ) from e

        log.debug(
            f"Fetched '{os.path.basename(destination_path)}' ({bytes_written} bytes)"
        )
        return bytes_written
