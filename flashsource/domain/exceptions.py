"""Exception hierarchy with context and actionable suggestions.

Every error raised or reported by the resolution pipeline derives from
FlashSourceError. Errors carry a human-readable message, an optional root
cause, a context mapping (paths, backend messages) and a list of suggestions
so that any presentation layer can render them without string parsing.
"""

from __future__ import annotations

import errno
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from rich.panel import Panel

__all__ = [
    "ConfigurationError",
    "DependencyError",
    "FlashSourceError",
    "MetadataError",
    "PersistenceError",
    "SourceOpenError",
    "UnsupportedProtocolError",
]


class FlashSourceError(Exception):
    """Base error for flashsource.

    Attributes:
        message: Human-readable error message
        cause: Original exception that triggered this error, if any
        context: Extra details (source path, backend message, codes)
        suggestions: Actionable hints for the user
    """

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
        suggestions: Sequence[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context or {})
        self.suggestions: list[str] = list(suggestions or [])

    def format_error(self) -> str:
        """Render the error as plain text for terminals and logs."""
        lines = [f"✗ Error: {self.message}"]
        if self.context:
            lines.append("")
            lines.append("Details:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")
        if self.suggestions:
            lines.append("")
            lines.append("Possible solutions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")
        if self.cause is not None:
            lines.append("")
            lines.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")
        return "\n".join(lines)

    def format_rich(self) -> Panel:
        """Render the error as a Rich panel."""
        from rich.panel import Panel
        from rich.text import Text

        body = Text()
        body.append(self.message, style="bold")
        if self.context:
            body.append("\n\nDetails:\n", style="dim")
            for key, value in self.context.items():
                body.append(f"  {key}: ", style="cyan")
                body.append(f"{value}\n")
        if self.suggestions:
            body.append("\nPossible solutions:\n", style="dim")
            for suggestion in self.suggestions:
                body.append(f"  • {suggestion}\n", style="green")
        if self.cause is not None:
            body.append(f"\nCaused by: {type(self.cause).__name__}: {self.cause}", style="red")
        return Panel(body, title=f"[red]{type(self).__name__}[/red]", border_style="red")


class SourceOpenError(FlashSourceError):
    """The backend handle for a source could not be constructed or opened.

    Covers missing files, permission problems and malformed URLs.
    """

    @classmethod
    def from_exception(cls, source_path: str, exc: BaseException) -> SourceOpenError:
        """Wrap a backend exception, deriving suggestions from its kind."""
        suggestions: list[str] = []
        code = getattr(exc, "errno", None)
        if isinstance(exc, FileNotFoundError) or code == errno.ENOENT:
            suggestions.append("Check that the file exists and the path is spelled correctly")
        elif isinstance(exc, PermissionError) or code in (errno.EACCES, errno.EPERM):
            suggestions.append("Check the permissions on the source (devices usually need elevated privileges)")
        elif isinstance(exc, IsADirectoryError):
            suggestions.append("Select an image file rather than a folder")
        elif code == errno.EBUSY:
            suggestions.append("Unmount the drive or close programs using it, then try again")
        return cls(
            f"Could not open {source_path}",
            cause=exc,
            context={"source_path": source_path, "backend_message": str(exc)},
            suggestions=suggestions,
        )


class MetadataError(FlashSourceError):
    """Metadata or partition-table reading failed after the handle opened."""

    @classmethod
    def from_exception(cls, source_path: str, exc: BaseException) -> MetadataError:
        return cls(
            f"Could not read metadata from {source_path}",
            cause=exc,
            context={"source_path": source_path, "backend_message": str(exc)},
            suggestions=["Make sure the image is not truncated or still downloading"],
        )


class UnsupportedProtocolError(FlashSourceError):
    """A URL selection uses a scheme other than http:// or https://.

    Never raised by the pipeline; it is the error object attached to a failed
    outcome when the classifier reports a fatal UnsupportedProtocol anomaly.
    """

    @classmethod
    def for_url(cls, url: str) -> UnsupportedProtocolError:
        return cls(
            "Only http:// and https:// URLs are supported.",
            context={"source_path": url},
            suggestions=["Download the image first and select it as a file"],
        )


class PersistenceError(FlashSourceError):
    """Recent-URL list could not be loaded or saved.

    Always recovered locally; never surfaced to the user.
    """


class ConfigurationError(FlashSourceError):
    """Configuration file is missing required values or is invalid."""

    @classmethod
    def from_validation_error(cls, path: str, exc: Exception) -> ConfigurationError:
        fields: list[str] = []
        errors = getattr(exc, "errors", None)
        if callable(errors):
            fields = [".".join(str(loc) for loc in item["loc"]) for item in errors()]
        return cls(
            f"Invalid configuration in {path}",
            cause=exc,
            context={"config_path": path, "invalid_fields": ", ".join(fields) or "-"},
            suggestions=["Fix the listed fields or delete the file to restore defaults"],
        )


class DependencyError(FlashSourceError):
    """An optional system tool required by a backend is unavailable."""
