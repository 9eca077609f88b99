import shutil
from pathlib import Path

import pytest

from live_harvester.core.pacer import CyclePacer
from live_harvester.models.config import HarvestConfig
from live_harvester.models.segment import DecryptionJob, SegmentIndex, SegmentReference

BASE_URL = "https://cdn.example.com/live"


def segment_uri(track: str, number: int) -> str:
    return f"{BASE_URL}/{track}/{number:08x}.m4s"


def make_index(
    track: str, numbers, duration: float = 6.0, with_init: bool = True
) -> SegmentIndex:
    """Builds an index whose segment start times follow the hex counters."""
    references = []
    if with_init:
        references.append(
            SegmentReference(uri=f"{BASE_URL}/{track}/init.mp4", is_init=True)
        )
    for n in numbers:
        references.append(
            SegmentReference(
                uri=segment_uri(track, n),
                start_time=n * duration,
                end_time=(n + 1) * duration,
            )
        )
    return SegmentIndex(references=references)


class FakeFetcher:
    """Writes a small payload naming the URI instead of going to the network."""

    def __init__(self):
        self.fetched: list[str] = []

    async def fetch(self, url, destination_path, proxy=None):
        payload = f"<{url.rsplit('/', 1)[-1]}>".encode()
        Path(destination_path).write_bytes(payload)
        self.fetched.append(url)
        return len(payload)


class FakeDecryptor:
    """Copies the merged segment to the output path; fails for chosen inputs."""

    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.jobs: list[DecryptionJob] = []

    async def __call__(self, job: DecryptionJob) -> bool:
        self.jobs.append(job)
        if Path(job.input_path).name in self.fail_on:
            return False
        shutil.copyfile(job.input_path, job.output_path)
        return True


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def config(tmp_path) -> HarvestConfig:
    return HarvestConfig(
        result_path=tmp_path / "result",
        download_path=tmp_path / "download",
        merge_path=tmp_path / "merge",
        max_segment_num=3,
        decrypt_script="/usr/local/bin/decrypt",
        decrypt_workdir=tmp_path,
        key="00112233445566778899aabbccddeeff",
        key_id="ffeeddccbbaa99887766554433221100",
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def pacer(sleep) -> CyclePacer:
    return CyclePacer(clock=lambda: 0.0, sleep=sleep)
