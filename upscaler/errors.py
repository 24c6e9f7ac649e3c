class UpscaleError(Exception):
    """Base class for every failure the upscale run reports back on the issue."""


class ConfigError(UpscaleError):
    pass


class IssueTrackerError(UpscaleError):
    pass


class DownloadError(UpscaleError):
    pass


class MetadataError(UpscaleError):
    pass


class PublishError(UpscaleError):
    pass
