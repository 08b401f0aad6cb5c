"""
Error taxonomy for the Q&A pipeline.

- ProviderError: an embedding or chat-completion call failed
  (network, authentication, rate limit, malformed response)
- ConfigurationError: invalid parameters, missing corpus or index file
- DataIntegrityError: stored data is inconsistent, e.g. a query vector
  and an indexed vector with different dimensionality

Single-query paths let these propagate. The evaluator catches DocQAError
per test question and records a failed result instead.
"""


class DocQAError(Exception):
    """Base class for all errors raised by the docqa package."""


class ConfigurationError(DocQAError):
    """Invalid settings or missing inputs."""


class DataIntegrityError(DocQAError):
    """Persisted or computed data violates an invariant."""


class ProviderError(DocQAError):
    """
    A call to the remote model provider failed.

    transient=True marks failures worth retrying later (timeouts,
    connection drops, rate limits, 5xx). The openai client has already
    retried those before this error is raised.
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient
