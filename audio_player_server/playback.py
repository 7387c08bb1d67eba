"""Playback state machine for one player UI session."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Protocol

from .advance import AutoAdvanceController
from .errors import LoadError
from .loader import LazyLoader, SourceFetcher
from .logging import get_logger
from .state import PLAYBACK_RATES, Phase, PlaybackState, RepeatMode, next_rate
from .track_queue import error_text, find, merge, parse_tracks
from .tracks import Track

logger = get_logger("playback")

# Host errors raised while the app handshake is still settling
IGNORABLE_ERROR_MARKER = "unknown message ID"


class AudioOutput(Protocol):
    """The underlying playback primitive (e.g. an <audio> element)."""

    loop: bool
    rate: float

    def cue(self, source: str) -> None:
        """Load `source` without starting playback."""

    def play(self, source: str) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...


class HeadlessOutput:
    """AudioOutput that only records what it was asked to do."""

    def __init__(self) -> None:
        self.loop = False
        self.rate = 1.0
        self.source: str | None = None
        self.playing = False
        self.position = 0.0
        self.calls: list[tuple[str, Any]] = []

    def cue(self, source: str) -> None:
        self.calls.append(("cue", source))
        if source != self.source:
            self.source = source
            self.position = 0.0
        self.playing = False

    def play(self, source: str) -> None:
        self.calls.append(("play", source))
        if source != self.source:
            self.source = source
            self.position = 0.0
        self.playing = True

    def pause(self) -> None:
        self.calls.append(("pause", None))
        self.playing = False

    def seek(self, seconds: float) -> None:
        self.calls.append(("seek", seconds))
        self.position = max(0.0, seconds)


Listener = Callable[["PlayerSession"], None]


class PlayerSession:
    """Queue plus playback state for one UI session.

    The surrounding event loop feeds it host events through `handlers()`
    ("toolresult", "ended", "error", "teardown") and user actions through
    `play`, `pause`, `toggle`, `select`, `seek` and `cycle_repeat_mode`.
    Listeners registered with `subscribe` are called after every change.
    """

    def __init__(
        self,
        fetch: SourceFetcher,
        output: AudioOutput | None = None,
        advance: AutoAdvanceController | None = None,
    ):
        self.state = PlaybackState()
        self.queue: list[Track] = []
        self.output = output if output is not None else HeadlessOutput()
        self.output.loop = False
        self.output.rate = self.state.playback_rate
        self.loader = LazyLoader(fetch, self.state, on_start=lambda track: self._notify())
        self.advance = advance or AutoAdvanceController()
        self.closed = False
        self._listeners: list[Listener] = []

    # ------------------------------------------------------
    # Derived state
    # ------------------------------------------------------

    @property
    def active_track(self) -> Track | None:
        return find(self.queue, self.state.active_id)

    @property
    def current_track(self) -> Track | None:
        """Track the player controls act on: the active one, else the first queued."""
        track = self.active_track
        if track is None and self.queue:
            track = self.queue[0]
        return track

    @property
    def phase(self) -> Phase:
        if self.state.active_id is None:
            return Phase.IDLE
        if self.state.loading_id is not None and self.state.loading_id == self.state.active_id:
            return Phase.LOADING
        if self.state.is_playing:
            return Phase.PLAYING
        return Phase.READY

    def is_loading(self, track_id: str | None = None) -> bool:
        if track_id is None:
            return self.state.loading_id is not None
        return self.state.loading_id == track_id

    def snapshot(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "queue": [t.to_metadata() | {"loaded": t.is_loaded} for t in self.queue],
            **self.state.to_dict(),
        }

    # ------------------------------------------------------
    # Listeners
    # ------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-change listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------
    # Queue
    # ------------------------------------------------------

    def add_tracks(self, tracks: Iterable[Track]) -> list[Track]:
        """Merge tracks into the queue. Returns the ones actually appended.

        When nothing is active and the first appended track already has a
        source, it becomes active (selected, not played). Unloaded tracks stay
        unselected until played; `current_track` falls back to the first one.
        """
        before = len(self.queue)
        self.queue = merge(self.queue, tracks)
        added = self.queue[before:]
        if not added:
            return added

        logger.info(f"Queued {len(added)} tracks ({len(self.queue)} total)")
        first = added[0]
        if self.state.active_id is None and first.source is not None:
            self.state.active_id = first.id
            self.output.cue(first.source)
        self._notify()
        return added

    # ------------------------------------------------------
    # User actions
    # ------------------------------------------------------

    def _target(self, track_id: str | None) -> Track | None:
        if track_id is None:
            return self.current_track
        track = find(self.queue, track_id)
        if track is None:
            raise KeyError(f"Unknown track: {track_id}")
        return track

    def _switch_to(self, track: Track) -> str | None:
        """Make `track` active, pausing whatever was playing. Returns the previous active id."""
        previous = self.state.active_id
        if previous != track.id and self.state.is_playing:
            self.output.pause()
            self.state.is_playing = False
        self.state.active_id = track.id
        self.state.error = None
        return previous

    async def _load(self, track: Track, previous_id: str | None) -> bool:
        """Resolve the active track. On failure the previous active track is restored."""
        try:
            await self.loader.resolve(track)
        except LoadError as e:
            logger.error(str(e), extra={"track_id": track.id})
            self.state.error = str(e)
            self.state.is_playing = False
            self.state.active_id = previous_id
            self._notify()
            return False
        return True

    async def play(self, track_id: str | None = None) -> bool:
        """Play a track (default: the current one), loading it first if needed.

        Ignored while any load is in flight. Returns True once playing.
        """
        track = self._target(track_id)
        if track is None:
            return False
        if self.is_loading():
            logger.debug(f"Ignoring play of {track.id}: load in flight", extra={"track_id": track.id})
            return False
        if self.state.is_playing and self.state.active_id == track.id:
            return True

        previous_id = self._switch_to(track)
        if track.source is None and not await self._load(track, previous_id):
            return False
        if self.closed:
            return False

        # The source is stored on the track before the output sees it
        self.output.play(track.source)
        self.state.is_playing = True
        logger.debug(f"Playing {track.id}", extra={"track_id": track.id})
        self._notify()
        return True

    async def select(self, track_id: str) -> bool:
        """Make a track active without playing it (loads it if unresolved)."""
        track = self._target(track_id)
        if self.is_loading():
            return False
        if self.state.is_playing:
            self.output.pause()
            self.state.is_playing = False

        previous_id = self._switch_to(track)
        if track.source is None and not await self._load(track, previous_id):
            return False
        if self.closed:
            return False

        self.output.cue(track.source)
        self._notify()
        return True

    def pause(self) -> bool:
        if not self.state.is_playing:
            return False
        self.output.pause()
        self.state.is_playing = False
        self._notify()
        return True

    async def toggle(self) -> bool:
        """Play/pause button: pause if playing, else play the current track."""
        if self.is_loading():
            return False
        if self.state.is_playing:
            return self.pause()
        return await self.play()

    def seek(self, seconds: float) -> bool:
        track = self.active_track
        if track is None or track.source is None:
            return False
        self.output.seek(seconds)
        self._notify()
        return True

    def set_repeat_mode(self, mode: RepeatMode | str) -> RepeatMode:
        self.state.repeat_mode = RepeatMode(mode)
        self.output.loop = self.state.repeat_mode is RepeatMode.TRACK
        self._notify()
        return self.state.repeat_mode

    def cycle_repeat_mode(self) -> RepeatMode:
        return self.set_repeat_mode(self.state.repeat_mode.next())

    def set_speed(self, rate: float) -> float:
        if rate not in PLAYBACK_RATES:
            raise ValueError(f"Unsupported playback rate: {rate} (choose from {PLAYBACK_RATES})")
        self.state.playback_rate = rate
        self.output.rate = rate
        self._notify()
        return rate

    def cycle_speed(self) -> float:
        """Speed button: 1x -> 1.25x -> 1.5x -> 2x -> 0.5x -> 0.75x -> 1x."""
        return self.set_speed(next_rate(self.state.playback_rate))

    def mark_stopped(self) -> None:
        """The output stopped on its own (end of track)."""
        if self.state.is_playing:
            self.state.is_playing = False
            self._notify()

    # ------------------------------------------------------
    # Host / output events
    # ------------------------------------------------------

    def handle_tool_result(self, result: Any) -> list[Track]:
        """A `play_audio` result arrived: queue its tracks.

        An error result is recorded on the state and leaves the queue as is.
        """
        message = error_text(result)
        if message is not None:
            self.state.error = message
            logger.warning(f"Tool error result: {message}")
            self._notify()
            return []

        return self.add_tracks(parse_tracks(result))

    async def handle_ended(self) -> Track | None:
        return await self.advance.on_ended(self)

    def handle_error(self, error: BaseException | str | None) -> None:
        message = str(error) if error is not None else "Unknown error"
        if IGNORABLE_ERROR_MARKER in message:
            logger.warning(f"Ignoring initialization timing error: {message}")
            return
        logger.error(f"App error: {message}")
        self.state.error = message
        self._notify()

    def handle_teardown(self) -> dict:
        logger.info("Session is being torn down")
        if self.state.is_playing:
            self.output.pause()
        self.queue = []
        self.state.active_id = None
        self.state.is_playing = False
        self.state.loading_id = None
        self.closed = True
        self._notify()
        self._listeners.clear()
        return {}

    def handlers(self) -> dict[str, Callable[..., Any | Awaitable[Any]]]:
        """Event name -> handler, for wiring into a host event loop."""
        return {
            "toolresult": self.handle_tool_result,
            "ended": self.handle_ended,
            "error": self.handle_error,
            "teardown": self.handle_teardown,
        }
