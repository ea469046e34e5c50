class IssueGraphError(Exception):
    """Base class for errors raised by issue_graph."""


class LLMError(IssueGraphError):
    """The completion endpoint could not be reached or returned garbage."""


class GraphStoreError(IssueGraphError):
    """A graph transaction failed and was rolled back."""


class QueryExecutionError(GraphStoreError):
    """A read request against the graph failed.

    ``message`` is safe to show to a caller, ``detail`` carries the
    underlying driver error for diagnostics.
    """

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.message = message
        self.detail = detail
