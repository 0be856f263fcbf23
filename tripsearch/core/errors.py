class SearchError(Exception):
    """Base class for search errors."""


class InvalidQueryError(SearchError):
    """The query text is empty or structurally invalid.

    This is the only search error that reaches the caller.
    """

    def __init__(self, message: str = "Query parameter 'q' is required"):
        super().__init__(message)
        self.message = message


class BackendUnavailableError(SearchError):
    """The search backend could not serve a request.

    Raised by the backend client and caught by the search service, which
    answers from the fallback path instead.
    """
