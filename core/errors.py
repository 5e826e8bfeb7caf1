class PipelineError(Exception):
    """Base class for failures that end (or degrade) a job run."""


class DownloadError(PipelineError):
    """Remote source unreachable, non-success status, or malformed URL."""


class TransformError(PipelineError):
    """The media engine failed to overlay, normalize or concatenate."""


class UploadError(PipelineError):
    """The object store rejected or never received the final asset."""


class ConfigurationError(PipelineError):
    """Required destination settings are missing."""
