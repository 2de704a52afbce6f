"""Error taxonomy for the collaboration relay."""


class RelayError(Exception):
    """Base error reported back to the acting connection."""

    category = "Collaboration error"


class AccessDeniedError(RelayError):
    """The caller lacks access for the requested action."""

    category = "Insufficient permissions"


class MalformedMessageError(RelayError):
    """An inbound message failed validation."""

    category = "Malformed message"


class SessionNotFoundError(RelayError):
    """The connection has not joined the referenced project."""

    category = "Not joined to project"


class ProjectStoreError(RelayError):
    """The project store rejected an operation."""

    category = "File operation failed"


class FileAlreadyExistsError(ProjectStoreError):
    """A file already exists at the target path."""

    category = "File already exists"


class FileNotFoundInProjectError(ProjectStoreError):
    """No file exists at the referenced path."""

    category = "File not found"
