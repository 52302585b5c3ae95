class ConfigurationError(ValueError):
    """Raised when a controller group cannot be built from its configuration."""


class FeedParseError(ValueError):
    """Malformed adaptive feed input. Handled inside the feed reader."""
