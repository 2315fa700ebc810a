"""Exceptions raised by Wayside components."""


class WaysideError(Exception):
    """Base class for all Wayside errors"""


class ConfigError(WaysideError):
    """Invalid configuration value"""


class ProviderError(WaysideError):
    """A geodata provider could not answer a query"""


class TransientProviderError(ProviderError):
    """Network, HTTP or decoding failure that is worth retrying"""


class SearchCancelled(WaysideError):
    """The owning content cycle was abandoned while a search was waiting"""


class SummarizerError(WaysideError):
    """Hard summarizer failure (auth, malformed response, exhausted rate limit)"""
