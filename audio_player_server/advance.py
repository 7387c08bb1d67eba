"""Auto-advance: what plays after a track ends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .logging import get_logger
from .state import RepeatMode
from .track_queue import index_of
from .tracks import Track

if TYPE_CHECKING:
    from .playback import PlayerSession

logger = get_logger("advance")


def next_track(
    queue: Sequence[Track],
    active_id: str | None,
    repeat_mode: RepeatMode,
) -> Track | None:
    """Track to play after `active_id` ends, or None to stop.

    Repeat-track returns None: looping is left to the output's native loop
    flag. With repeat-playlist the last track wraps to the first; an active
    id missing from the queue also restarts from the first.
    """
    if repeat_mode is RepeatMode.TRACK or not queue:
        return None

    i = index_of(queue, active_id)
    if 0 <= i < len(queue) - 1:
        return queue[i + 1]
    if repeat_mode is RepeatMode.PLAYLIST:
        return queue[0]
    return None


class AutoAdvanceController:
    """Handles the output's "ended" signal for a session.

    Reads the session's queue and active id at the moment the signal
    arrives, so tracks added while the previous one was playing count.
    """

    async def on_ended(self, session: PlayerSession) -> Track | None:
        state = session.state
        if state.repeat_mode is RepeatMode.TRACK:
            return None

        ended_id = state.active_id
        session.mark_stopped()

        upcoming = next_track(session.queue, ended_id, state.repeat_mode)
        if upcoming is None:
            logger.debug(f"Track {ended_id} ended, nothing to advance to", extra={"track_id": ended_id})
            return None

        logger.debug(f"Advancing {ended_id} -> {upcoming.id}", extra={"track_id": upcoming.id})
        if not await session.play(upcoming.id):
            return None
        return upcoming
