"""Error taxonomy for the crawler."""


class CrawlerError(Exception):
    """Base class for every error raised by deltacrawl."""


class ConfigurationError(CrawlerError):
    """A mandatory setting is missing or invalid. Fatal before any crawl starts."""


class FilesystemAccessError(CrawlerError):
    """An entry could not be listed, stat'ed or opened."""


class DeltaLogIOError(CrawlerError):
    """The persisted delta log could not be written."""


class SinkError(CrawlerError):
    """Pushing a file to the indexing backend failed."""
