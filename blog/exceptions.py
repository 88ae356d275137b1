class BlogError(Exception):
    """Base class for errors raised by the blog core."""


class NotFoundError(BlogError):
    """An id, slug or tag does not resolve to a stored record."""


class ValidationError(BlogError):
    """Attributes violate a length, shape or uniqueness constraint."""


class AuthorizationError(BlogError):
    """The acting user does not own the resource being changed."""
