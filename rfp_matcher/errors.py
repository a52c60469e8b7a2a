"""
Exceptions shared by the store adapter, the matchers and the HTTP layer.
"""


class InvalidArgumentError(ValueError):
    """A required text input or list was missing or empty."""


class UpstreamCallError(RuntimeError):
    """The knowledge base or an LLM backend call failed."""


class MalformedResponseError(ValueError):
    """LLM output could not be decoded into a JSON object."""


class MatchError(RuntimeError):
    pass


class FitAnalysisError(RuntimeError):
    pass
