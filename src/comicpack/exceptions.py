#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the comicpack library.

This module defines specialized exception classes for the error conditions
that can occur while reading comic containers, transcoding pages and
packaging output. Per-source errors are caught by the batch orchestrator and
counted; workspace errors abort the whole job.

Exception Hierarchy
-------------------
- ComicPackError (base exception)

  - ValidationError (parameter/option validation)

  - WorkspaceError (scratch directory create/remove failures, fatal to a job)

  - ExtractionError (unreadable, corrupt or locked source container)
    - PasswordProtectedError (encrypted input without password support)
    - ArchiveSecurityError (archive bombs, path traversal)

  - EmptySourceError (no recognized raster pages in a source)

  - TranscodeError (resize/encode failure for one page)

  - PackagingError (output container assembly failure)

  - WorkerFailure (isolated page export failed or crashed)

  - JobAlreadyRunningError (a second job started while one is running)

"""

from typing import Any


class ComicPackError(Exception):
    """Base exception class for all comicpack-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(ComicPackError):
    """Exception raised for invalid input parameters or options.

    Parameters
    ----------
    message : str
        Description of the validation error
    parameter_name : str, optional
        Name of the invalid parameter
    parameter_value : any, optional
        The invalid value that was provided
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the validation error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class WorkspaceError(ComicPackError):
    """Exception raised when the temporary workspace cannot be created or removed.

    Also raised when a cleanup request targets a path outside the directory
    the workspace was allocated under. This error is fatal to a running job.

    Parameters
    ----------
    message : str
        Description of the workspace failure
    path : str, optional
        The path that was being created or removed
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, path: str | None = None, original_error: Exception | None = None):
        """Initialize the workspace error with the offending path."""
        super().__init__(message, original_error=original_error)
        self.path = path


class ExtractionError(ComicPackError):
    """Exception raised when a source container cannot be read.

    Parameters
    ----------
    message : str
        Description of the extraction failure
    source_path : str, optional
        Path of the source that failed
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, source_path: str | None = None, original_error: Exception | None = None):
        """Initialize the extraction error with the source path."""
        super().__init__(message, original_error=original_error)
        self.source_path = source_path


class PasswordProtectedError(ExtractionError):
    """Exception raised when a source container is encrypted.

    Input decryption is not supported, so encrypted containers are rejected.
    """

    def __init__(self, source_path: str | None = None, message: str | None = None):
        """Initialize the error with a default message."""
        if message is None:
            message = "Source is password-protected and cannot be read"
            if source_path:
                message += f": {source_path}"
        super().__init__(message, source_path=source_path)


class ArchiveSecurityError(ExtractionError):
    """Exception raised when an archive fails security validation.

    Covers path traversal entries, absolute paths, too many entries and
    suspicious compression ratios.
    """

    pass


class EmptySourceError(ComicPackError):
    """Exception raised when a source contains no recognized raster pages."""

    def __init__(self, source_path: str | None = None, message: str | None = None):
        """Initialize the error with a default message."""
        if message is None:
            message = "No image pages found"
            if source_path:
                message += f" in {source_path}"
        super().__init__(message)
        self.source_path = source_path


class TranscodeError(ComicPackError):
    """Exception raised when resizing or encoding a page image fails.

    Parameters
    ----------
    message : str
        Description of the failure
    image_path : str, optional
        Path of the image that failed to transcode
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, image_path: str | None = None, original_error: Exception | None = None):
        """Initialize the transcode error with the image path."""
        super().__init__(message, original_error=original_error)
        self.image_path = image_path


class PackagingError(ComicPackError):
    """Exception raised when an output container cannot be assembled.

    Parameters
    ----------
    message : str
        Description of the failure
    output_format : str, optional
        The container format being written
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, output_format: str | None = None, original_error: Exception | None = None):
        """Initialize the packaging error with the output format."""
        super().__init__(message, original_error=original_error)
        self.output_format = output_format


class WorkerFailure(ComicPackError):
    """Exception raised when the isolated page export worker fails.

    The exporter itself never raises this; it reports ``ok=False``.
    Convenience wrappers raise it so callers get an exception to handle.
    """

    pass


class JobAlreadyRunningError(ComicPackError):
    """Exception raised when a job is started while another one is running."""

    pass
