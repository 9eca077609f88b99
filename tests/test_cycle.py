import pytest

from live_harvester.core.cycle import HarvestCycle
from live_harvester.core.pacer import CyclePacer
from live_harvester.core.playlist_window import PlaylistWindow
from live_harvester.exceptions import (
    Category,
    Code,
    PlaylistWriteError,
    SegmentFetchError,
    SegmentManipulationError,
    Severity,
)

from .conftest import FakeDecryptor, FakeFetcher, make_index, segment_uri


def seed_playlist(config, track, sequence, numbers):
    track_dir = config.result_path / track
    track_dir.mkdir(parents=True, exist_ok=True)
    lines = ["#EXTM3U", "#EXT-X-TARGETDURATION:6", f"#EXT-X-MEDIA-SEQUENCE:{sequence}"]
    for n in numbers:
        lines += ["#EXTINF:6,", f"{n:08x}.mp4"]
        (track_dir / f"{n:08x}.mp4").write_bytes(b"old")
    (track_dir / f"{track}.m3u8").write_text("\n".join(lines) + "\n", encoding="utf-8")


def committed_names(config, track):
    window = PlaylistWindow.load(
        config.result_path / track / f"{track}.m3u8", config.max_segment_num
    )
    return [name for _, name in window.entries], window.media_sequence


@pytest.fixture
def indexes():
    return {
        "audio": make_index("audio", range(1, 6)),
        "video": make_index("video", range(1, 6)),
    }


async def test_cycle_commits_new_segments_and_advances_window(
    config, fetcher, pacer, indexes
):
    seed_playlist(config, "audio", 10, [1, 2])
    seed_playlist(config, "video", 10, [1, 2])
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)
    token = {"audio": segment_uri("audio", 2), "video": segment_uri("video", 2)}

    result = await cycle.run(indexes, token)

    for track in ("audio", "video"):
        names, sequence = committed_names(config, track)
        assert names == ["00000003.mp4", "00000004.mp4", "00000005.mp4"]
        assert sequence == 12
        assert not (config.result_path / track / "00000001.mp4").exists()
        assert (config.result_path / track / "00000005.mp4").read_bytes() == (
            b"<init.mp4><00000005.m4s>"
        )
    assert result.audio == segment_uri("audio", 5)
    assert result.video == segment_uri("video", 5)
    assert result.stats.segments_committed == {"audio": 3, "video": 3}
    assert result.stats.segments_evicted == 4


async def test_segments_are_processed_in_lockstep(config, fetcher, pacer, indexes):
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)

    await cycle.run(indexes, {})

    names = [url.rsplit("/", 2)[-2] + "/" + url.rsplit("/", 1)[-1] for url in fetcher.fetched]
    assert names == [
        "audio/init.mp4",
        "video/init.mp4",
        "audio/00000003.m4s",
        "video/00000003.m4s",
        "audio/00000004.m4s",
        "video/00000004.m4s",
        "audio/00000005.m4s",
        "video/00000005.m4s",
    ]


async def test_scratch_directories_are_cleared(config, fetcher, pacer, indexes):
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)

    await cycle.run(indexes, {})

    for root in (config.download_path, config.merge_path):
        for track in ("audio", "video"):
            assert (root / track).is_dir()
            assert list((root / track).iterdir()) == []


async def test_decryption_failure_aborts_cycle_but_keeps_earlier_commits(
    config, fetcher, pacer, sleep
):
    config.max_segment_num = 5
    indexes = {
        "audio": make_index("audio", range(1, 6)),
        "video": make_index("video", range(1, 6)),
    }
    decryptor = FakeDecryptor(fail_on={"00000003.m4s"})
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=decryptor, pacer=pacer)

    with pytest.raises(SegmentManipulationError) as excinfo:
        await cycle.run(indexes, {})

    error = excinfo.value
    assert error.severity is Severity.CRITICAL
    assert error.category is Category.SEGMENT
    assert error.code is Code.SEGMENT_MANIPULATION_FAILED
    assert error.last_committed == {
        "audio": segment_uri("audio", 2),
        "video": segment_uri("video", 2),
    }
    for track in ("audio", "video"):
        names, _ = committed_names(config, track)
        assert names == ["00000001.mp4", "00000002.mp4"]
        assert not (config.result_path / track / "00000003.mp4").exists()
    assert list((config.download_path / "audio").iterdir()) == []
    assert sleep.calls == []


async def test_cycle_paces_against_last_segment_duration(config, fetcher, sleep, indexes):
    times = iter([50.0, 50.4])
    pacer = CyclePacer(clock=lambda: next(times), sleep=sleep)
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)

    result = await cycle.run(indexes, {}, update_duration=2.0)

    assert sleep.calls == [pytest.approx(7.6)]
    assert result.stats.slept_seconds == pytest.approx(7.6)


async def test_up_to_date_track_keeps_its_token(config, fetcher, pacer, indexes):
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)
    token = {"audio": segment_uri("audio", 5), "video": segment_uri("video", 2)}

    result = await cycle.run(indexes, token)

    # Audio has nothing new, so video is held back to stay aligned.
    assert result.to_token() == token
    assert result.stats.total_committed == 0


async def test_empty_index_skips_the_cycle(config, fetcher, pacer, sleep):
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)
    token = {"audio": segment_uri("audio", 1), "video": None}

    result = await cycle.run({"audio": make_index("audio", range(3))}, token)

    assert fetcher.fetched == []
    assert result.to_token() == token
    assert sleep.calls == []


async def test_consecutive_cycles_continue_from_token(config, fetcher, pacer):
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)
    first = await cycle.run(
        {"audio": make_index("audio", range(4)), "video": make_index("video", range(4))},
        {},
    )

    second = await cycle.run(
        {"audio": make_index("audio", range(2, 6)), "video": make_index("video", range(2, 6))},
        first.to_token(),
    )

    assert second.audio == segment_uri("audio", 5)
    assert second.stats.continuity_mismatches == 0
    names, sequence = committed_names(config, "audio")
    assert names == ["00000003.mp4", "00000004.mp4", "00000005.mp4"]
    assert sequence == 2


class FailingFetcher(FakeFetcher):
    """Raises for one audio segment after fetching everything before it."""

    def __init__(self, failing_name):
        super().__init__()
        self.failing_name = failing_name

    async def fetch(self, url, destination_path, proxy=None):
        if url.endswith("/audio/" + self.failing_name):
            raise SegmentFetchError(f"Failed to fetch {url}")
        return await super().fetch(url, destination_path, proxy)


class InitLosingFetcher(FakeFetcher):
    """Removes the audio init payload before the given segment is merged."""

    def __init__(self, config, failing_name):
        super().__init__()
        self.config = config
        self.failing_name = failing_name

    async def fetch(self, url, destination_path, proxy=None):
        if url.endswith("/audio/" + self.failing_name):
            (self.config.download_path / "audio" / "init.mp4").unlink()
        return await super().fetch(url, destination_path, proxy)


def assert_stopped_after_second_segment(config, error):
    assert error.last_committed == {
        "audio": segment_uri("audio", 2),
        "video": segment_uri("video", 2),
    }
    for track in ("audio", "video"):
        names, _ = committed_names(config, track)
        assert names == ["00000001.mp4", "00000002.mp4"]
        for root in (config.download_path, config.merge_path):
            assert list((root / track).iterdir()) == []


async def test_fetch_failure_aborts_cycle_but_keeps_earlier_commits(
    config, pacer, indexes
):
    config.max_segment_num = 5
    fetcher = FailingFetcher("00000003.m4s")
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)

    with pytest.raises(SegmentFetchError) as excinfo:
        await cycle.run(indexes, {})

    assert excinfo.value.category is Category.NETWORK
    assert excinfo.value.code is Code.SEGMENT_FETCH_FAILED
    assert_stopped_after_second_segment(config, excinfo.value)


async def test_merge_failure_aborts_cycle_but_keeps_earlier_commits(
    config, pacer, indexes
):
    config.max_segment_num = 5
    fetcher = InitLosingFetcher(config, "00000003.m4s")
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)

    with pytest.raises(SegmentManipulationError) as excinfo:
        await cycle.run(indexes, {})

    assert excinfo.value.category is Category.SEGMENT
    assert excinfo.value.code is Code.SEGMENT_MANIPULATION_FAILED
    assert_stopped_after_second_segment(config, excinfo.value)


async def test_segments_already_in_playlist_are_not_reprocessed(
    config, fetcher, pacer, indexes
):
    seed_playlist(config, "audio", 4, [3, 4, 5])
    seed_playlist(config, "video", 4, [3, 4, 5])
    decryptor = FakeDecryptor()
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=decryptor, pacer=pacer)

    result = await cycle.run(indexes, {})

    for track in ("audio", "video"):
        names, sequence = committed_names(config, track)
        assert names == ["00000003.mp4", "00000004.mp4", "00000005.mp4"]
        assert sequence == 4
        for n in (3, 4, 5):
            assert (config.result_path / track / f"{n:08x}.mp4").read_bytes() == b"old"
    assert decryptor.jobs == []
    assert result.to_token() == {
        "audio": segment_uri("audio", 5),
        "video": segment_uri("video", 5),
    }
    assert result.stats.segments_evicted == 0
    assert result.stats.segments_skipped == 6


async def test_playlist_storage_failure_reports_last_committed(
    config, fetcher, pacer, indexes
):
    seed_playlist(config, "audio", 0, [1, 2])
    seed_playlist(config, "video", 0, [1, 2])
    audio_oldest = config.result_path / "audio" / "00000001.mp4"
    audio_oldest.unlink()
    audio_oldest.mkdir()
    cycle = HarvestCycle(config, fetcher=fetcher, decryptor=FakeDecryptor(), pacer=pacer)
    token = {"audio": segment_uri("audio", 2), "video": segment_uri("video", 2)}

    with pytest.raises(PlaylistWriteError) as excinfo:
        await cycle.run(indexes, token)

    error = excinfo.value
    assert error.category is Category.STORAGE
    assert error.code is Code.PLAYLIST_WRITE_FAILED
    assert error.last_committed == {
        "audio": segment_uri("audio", 3),
        "video": segment_uri("video", 3),
    }
