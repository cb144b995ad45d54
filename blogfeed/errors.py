"""Exceptions raised by blogfeed."""


class BlogfeedError(Exception):
    """Base class for every error the build or the newsletter handler raises."""

    status_code = 500


class ContentNotFoundError(BlogfeedError):
    """A requested page, slug or tag does not resolve to any article."""

    status_code = 404

    def __init__(self, message: str = "No articles found!") -> None:
        super().__init__(message)
        self.message = message


class MalformedContentError(BlogfeedError):
    """A content file or article record is missing a required field or cannot be parsed."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class UpstreamError(BlogfeedError):
    """The newsletter provider could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.upstream_status = status_code


class InvalidSignupError(BlogfeedError):
    """A newsletter signup request is missing a field or is not valid JSON."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
