"""Domain value objects."""

from dwdedupe.domain.value_objects.track_diff import TRACK_URI_PREFIX, TrackDiff, track_uri

__all__ = ["TRACK_URI_PREFIX", "TrackDiff", "track_uri"]
