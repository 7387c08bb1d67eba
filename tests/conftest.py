"""Shared fixtures: small audio files on disk and fake collaborators."""

from __future__ import annotations

from pathlib import Path

import pytest

from audio_player_server.tracks import Track


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    for name, size in [("a.mp3", 300), ("b.wav", 200), ("c.ogg", 100)]:
        (tmp_path / name).write_bytes(bytes(i % 256 for i in range(size)))
    return tmp_path


@pytest.fixture
def make_track(audio_dir: Path):
    def _make(track_id: str, name: str = "a.mp3", source: str | None = None) -> Track:
        return Track(
            id=track_id,
            file_path=str(audio_dir / name),
            title=f"Track {track_id}",
            source=source,
        )

    return _make


class CountingFetcher:
    """Source fetcher that counts calls and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.calls: list[str] = []
        self.fail = fail

    async def __call__(self, file_path: str) -> str:
        self.calls.append(file_path)
        if self.fail:
            raise FileNotFoundError(file_path)
        return f"data:audio/mpeg;base64,{len(self.calls)}"


@pytest.fixture
def fetcher() -> CountingFetcher:
    return CountingFetcher()


@pytest.fixture
def failing_fetcher() -> CountingFetcher:
    return CountingFetcher(fail=True)
