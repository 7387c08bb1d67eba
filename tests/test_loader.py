"""Tests for data URL reading and the lazy loader."""

import asyncio
import base64

import pytest
from mcp import types

from audio_player_server.errors import LoadError
from audio_player_server.loader import (
    LazyLoader,
    SizeWarningPolicy,
    local_data_url_fetcher,
    read_audio_as_data_url,
    stream_url_fetcher,
    tool_fetcher,
)
from audio_player_server.state import PlaybackState


class TestReadAudioAsDataUrl:
    def test_encodes_file_with_mime_type(self, audio_dir) -> None:
        result = read_audio_as_data_url(str(audio_dir / "b.wav"))
        prefix = "data:audio/wav;base64,"
        assert result.data_url.startswith(prefix)
        assert base64.b64decode(result.data_url[len(prefix):]) == (audio_dir / "b.wav").read_bytes()
        assert result.size_bytes == 200
        assert result.warning is None

    def test_unknown_extension_defaults_to_mpeg(self, tmp_path) -> None:
        path = tmp_path / "clip.flac"
        path.write_bytes(b"abc")
        assert read_audio_as_data_url(str(path)).data_url.startswith("data:audio/mpeg;base64,")

    def test_missing_file_raises_load_error(self, tmp_path) -> None:
        with pytest.raises(LoadError) as exc_info:
            read_audio_as_data_url(str(tmp_path / "gone.mp3"))
        assert exc_info.value.path == str(tmp_path / "gone.mp3")


class TestSizeWarningPolicy:
    def test_warns_above_threshold(self, audio_dir) -> None:
        policy = SizeWarningPolicy(enabled=True, threshold_bytes=100)
        result = read_audio_as_data_url(str(audio_dir / "a.mp3"), policy)
        assert result.warning is not None
        assert str(result.warning).startswith("Warning: a.mp3 is 0.0MB")

    def test_disabled_policy_never_warns(self, audio_dir) -> None:
        policy = SizeWarningPolicy(enabled=False, threshold_bytes=1)
        assert read_audio_as_data_url(str(audio_dir / "a.mp3"), policy).warning is None

    def test_threshold_is_exclusive(self) -> None:
        policy = SizeWarningPolicy(threshold_bytes=5 * 1024 * 1024)
        assert policy.check("/x.mp3", 5 * 1024 * 1024) is None
        warning = policy.check("/x.mp3", 6 * 1024 * 1024)
        assert str(warning) == "Warning: x.mp3 is 6.0MB - large files may load slowly"


class TestLazyLoader:
    def test_second_resolve_uses_cached_source(self, make_track, fetcher) -> None:
        state = PlaybackState()
        loader = LazyLoader(fetcher, state)
        track = make_track("1-0")

        first = asyncio.run(loader.resolve(track))
        second = asyncio.run(loader.resolve(track))

        assert first == second == track.source
        assert len(fetcher.calls) == 1
        assert state.loading_id is None

    def test_loading_id_set_during_fetch(self, make_track) -> None:
        state = PlaybackState()
        seen = []

        async def fetch(path: str) -> str:
            seen.append(state.loading_id)
            return "data:x"

        asyncio.run(LazyLoader(fetch, state).resolve(make_track("1-0")))
        assert seen == ["1-0"]
        assert state.loading_id is None

    def test_failure_clears_loading_id_and_keeps_source_null(self, make_track, failing_fetcher) -> None:
        state = PlaybackState()
        track = make_track("1-0")
        with pytest.raises(LoadError):
            asyncio.run(LazyLoader(failing_fetcher, state).resolve(track))
        assert state.loading_id is None
        assert track.source is None

    def test_rejects_second_load_while_busy(self, make_track, fetcher) -> None:
        state = PlaybackState(loading_id="other")
        with pytest.raises(LoadError):
            asyncio.run(LazyLoader(fetcher, state).resolve(make_track("1-0")))
        assert fetcher.calls == []
        assert state.loading_id == "other"

    def test_local_fetcher_reads_file_once(self, make_track, audio_dir, monkeypatch) -> None:
        import audio_player_server.loader as loader_module

        reads = []
        real_read = loader_module.read_audio_as_data_url

        def counting_read(path, policy=None):
            reads.append(path)
            return real_read(path, policy)

        monkeypatch.setattr(loader_module, "read_audio_as_data_url", counting_read)
        loader = LazyLoader(local_data_url_fetcher(), PlaybackState())
        track = make_track("1-0")

        async def load_twice():
            await loader.resolve(track)
            await loader.resolve(track)

        asyncio.run(load_twice())
        assert len(reads) == 1
        assert track.source.startswith("data:audio/mpeg;base64,")

    def test_local_fetcher_vanished_file(self, make_track, audio_dir) -> None:
        track = make_track("1-0")
        (audio_dir / "a.mp3").unlink()
        state = PlaybackState()
        with pytest.raises(LoadError):
            asyncio.run(LazyLoader(local_data_url_fetcher(), state).resolve(track))
        assert track.source is None
        assert state.loading_id is None


class TestToolFetcher:
    def test_reads_structured_data_url(self) -> None:
        calls = []

        async def call_tool(name, arguments):
            calls.append((name, arguments))
            return types.CallToolResult(
                content=[types.TextContent(type="text", text="Loaded a.mp3")],
                structuredContent={"dataUrl": "data:audio/mpeg;base64,AAAA"},
            )

        source = asyncio.run(tool_fetcher(call_tool)("/a.mp3"))
        assert source == "data:audio/mpeg;base64,AAAA"
        assert calls == [("load_audio", {"filePath": "/a.mp3"})]

    def test_error_result_raises_load_error(self) -> None:
        async def call_tool(name, arguments):
            return types.CallToolResult(
                isError=True,
                content=[types.TextContent(type="text", text="Failed to load audio: /a.mp3")],
            )

        with pytest.raises(LoadError) as exc_info:
            asyncio.run(tool_fetcher(call_tool)("/a.mp3"))
        assert "Failed to load audio" in str(exc_info.value)

    def test_transport_failure_raises_load_error(self) -> None:
        async def call_tool(name, arguments):
            raise ConnectionError("host went away")

        with pytest.raises(LoadError):
            asyncio.run(tool_fetcher(call_tool)("/a.mp3"))


class TestStreamUrlFetcher:
    def test_builds_audio_url(self) -> None:
        fetch = stream_url_fetcher("http://localhost:3001/")
        url = asyncio.run(fetch("/music/My Song.mp3"))
        assert url == "http://localhost:3001/audio?path=%2Fmusic%2FMy%20Song.mp3"
