"""
Maps video playback time to positions on the review timeline track and
track interaction back to seek commands.

Everything here is derived from the comments and the revision duration; the
track keeps no state of its own and never drives the player directly. Seeks
go out through the caller's callback (comments -> track -> callback -> player).
"""
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Union

from app.models.comment import Comment, CommentStatus

OPEN_COLOR = "primary"
RESOLVED_COLOR = "emerald"


@dataclass(frozen=True)
class TimelineMarker:
    comment_id: str
    timestamp: float
    position: float   # fraction of the track, 0.0 - 1.0
    color: str
    title: str

    @property
    def left_percent(self) -> float:
        return self.position * 100


def _usable(duration: Optional[float]) -> bool:
    return duration is not None and math.isfinite(duration) and duration > 0


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def marker_position(timestamp: float, duration: Optional[float]) -> Optional[float]:
    """Fraction of the track for a comment at `timestamp`; None when there is no usable duration."""
    if not _usable(duration):
        return None
    return _clamp(timestamp / duration)


def seek_time(fraction: float, duration: Optional[float]) -> Optional[float]:
    """Playback time for a click at `fraction` of the track width."""
    if not _usable(duration):
        return None
    return _clamp(fraction) * duration


def marker_color(status: Union[CommentStatus, str]) -> str:
    return RESOLVED_COLOR if status == CommentStatus.RESOLVED else OPEN_COLOR


def build_markers(comments: Iterable[Comment], duration: Optional[float]) -> List[TimelineMarker]:
    if not _usable(duration):
        return []

    markers = [
        TimelineMarker(
            comment_id=c.id,
            timestamp=c.timestamp,
            position=marker_position(c.timestamp, duration),
            color=marker_color(c.status),
            title=f"{c.user_name}: {c.content}",
        )
        for c in comments
    ]
    return sorted(markers, key=lambda m: m.timestamp)


class TimelineTrack:
    """A horizontal track for one revision. Renders nothing while the duration is unknown."""

    def __init__(self, duration: Optional[float], comments: Iterable[Comment], on_seek: Callable[[float], None]):
        self.duration = duration
        self.comments = list(comments)
        self.on_seek = on_seek

    @property
    def visible(self) -> bool:
        return _usable(self.duration)

    @property
    def markers(self) -> List[TimelineMarker]:
        return build_markers(self.comments, self.duration)

    def click(self, fraction: float) -> Optional[float]:
        """Click on the bare track at `fraction` of its width."""
        target = seek_time(fraction, self.duration)
        if target is not None:
            self.on_seek(target)
        return target

    def click_at(self, x: float, width: float) -> Optional[float]:
        """Click at pixel offset `x` of a track `width` pixels wide."""
        if width <= 0:
            return None
        return self.click(x / width)

    def select(self, comment_id: str) -> Optional[float]:
        """Selecting a marker seeks straight to its comment's timestamp."""
        if not self.visible:
            return None
        for c in self.comments:
            if c.id == comment_id:
                self.on_seek(c.timestamp)
                return c.timestamp
        return None
