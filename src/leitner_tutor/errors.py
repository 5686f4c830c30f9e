"""Exception types raised inside the tutor."""


class TutorError(Exception):
    """Base class for tutor errors."""


class MalformedStateError(TutorError):
    """Persisted progress data does not have the expected shape."""


class MaterialError(TutorError):
    """Chapter material could not be fetched or parsed."""
