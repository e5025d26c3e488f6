"""Exceptions raised inside hoststream."""


class HoststreamError(Exception):
    """Base class for hoststream errors."""


class ConsumerGone(HoststreamError):
    """The consumer side of a stream is closed; nothing more can be sent."""


class SourceUnavailable(HoststreamError):
    """A metric source cannot provide data on this host."""
