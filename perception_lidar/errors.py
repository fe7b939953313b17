"""Exceptions raised by the scan-to-cloud pipeline."""


class LidarCloudError(Exception):
    """Base class for all perception_lidar errors."""


class UnsupportedChannel(LidarCloudError):
    """A channel family has no mapping to a concrete channel.

    Only reachable through a programming error (e.g. passing a raw string
    instead of a ``ChanField``).
    """


class DimensionMismatch(LidarCloudError, ValueError):
    """Grid, lookup table, shift table or channel image sizes disagree.

    Always raised before any output grid is touched.
    """


class UnsupportedRingWidth(LidarCloudError, ValueError):
    """Ring storage width other than 8 or 16 bits was requested.

    A configuration error, caught before any cloud is touched.
    """
