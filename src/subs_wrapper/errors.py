from __future__ import annotations


class UpstreamUnavailable(RuntimeError):
    """The primary subtitles add-on could not be reached or returned garbage."""


class TranscodeError(RuntimeError):
    """Base class for failures while serving a deferred subtitle link."""


class FetchFailed(TranscodeError):
    """The archive URL answered with a non-success status or not at all."""


class NoSubtitleEntry(TranscodeError):
    """A downloaded archive does not contain a usable subtitle file."""


class DecodeFailed(TranscodeError):
    """Subtitle bytes could not be decoded with the requested charset."""
