"""
Error taxonomy for Waybar Manager.

Fatal conditions are raised as WaybarManagerError subclasses and abort the
run. Per-file filesystem failures are not raised: the reconciler records them
in its report so sibling files are still processed.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for Waybar Manager.

    - 1000-1099: Window manager detection errors
    - 1100-1199: Monitor enumeration errors
    - 1200-1299: Template errors
    - 1300-1399: Synthesis errors
    - 1500-1599: Settings errors
    """

    # Detection errors (1000-1099)
    WM_NOT_DETECTED = 1000

    # Enumeration errors (1100-1199)
    ENUMERATION_FAILED = 1100
    NO_MONITORS = 1101

    # Template errors (1200-1299)
    TEMPLATE_NOT_FOUND = 1200
    MALFORMED_SYNTAX = 1201
    MISSING_VARIANT = 1202
    DUPLICATE_VARIANT = 1203
    MISSING_SENTINEL = 1204

    # Synthesis errors (1300-1399)
    SUBSTITUTION_FAILED = 1300

    # Settings errors (1500-1599)
    SETTINGS_LOAD_FAILED = 1500
    SETTINGS_SAVE_FAILED = 1501


class WaybarManagerError(Exception):
    """Base exception for fatal Waybar Manager errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for JSON output.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class DetectionError(WaybarManagerError):
    """No supported window manager is running."""

    def __init__(self, reason: str = "No compatible window manager was detected (Hyprland, Mango, Niri)"):
        super().__init__(
            code=ErrorCode.WM_NOT_DETECTED,
            message=reason,
            suggestion="Run waybar-manager from inside a Hyprland, Niri or Mango session",
        )


class EnumerationError(WaybarManagerError):
    """Monitor enumeration failed or returned nothing."""

    def __init__(self, window_manager: str, reason: str, code: ErrorCode = ErrorCode.ENUMERATION_FAILED):
        """
        Initialize enumeration error.

        Args:
            window_manager: Window manager whose introspection channel was queried
            reason: Reason for failure
            code: Specific error code
        """
        super().__init__(
            code=code,
            message=f"Monitor enumeration via {window_manager} failed: {reason}",
            suggestion="Ensure the compositor is running and its IPC tool is on PATH",
            context={"window_manager": window_manager, "reason": reason}
        )


class EmptyMonitorSetError(EnumerationError):
    """Raised when an operation needs at least one monitor."""

    def __init__(self, window_manager: str = "unknown"):
        super().__init__(window_manager, "No monitors were detected", code=ErrorCode.NO_MONITORS)


class TemplateNotFoundError(WaybarManagerError):
    """Template file for the detected window manager does not exist."""

    def __init__(self, path: str):
        super().__init__(
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            message=f"No template file was found in: {path}",
            suggestion="Create the template with 'TPL:FULL' and 'TPL:SIMPLE' markers",
            context={"file_path": path}
        )


class ParseErrorKind(str, Enum):
    """Ways a template document can be structurally invalid."""
    MALFORMED_SYNTAX = "malformed_syntax"
    MISSING_VARIANT = "missing_variant"
    DUPLICATE_VARIANT = "duplicate_variant"
    MISSING_SENTINEL = "missing_sentinel"


_PARSE_CODES = {
    ParseErrorKind.MALFORMED_SYNTAX: ErrorCode.MALFORMED_SYNTAX,
    ParseErrorKind.MISSING_VARIANT: ErrorCode.MISSING_VARIANT,
    ParseErrorKind.DUPLICATE_VARIANT: ErrorCode.DUPLICATE_VARIANT,
    ParseErrorKind.MISSING_SENTINEL: ErrorCode.MISSING_SENTINEL,
}


class ParseError(WaybarManagerError):
    """Template document could not be parsed into its two variants."""

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        variant: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        """
        Initialize parse error.

        Args:
            kind: Category of the failure
            message: Error message
            variant: Variant name involved, if any ("full" or "simple")
            line_number: Line of the template where the problem was found
        """
        context: Dict[str, Any] = {"kind": kind.value}
        if variant:
            context["variant"] = variant
        if line_number:
            context["line_number"] = line_number

        self.kind = kind
        self.variant = variant
        self.line_number = line_number

        super().__init__(
            code=_PARSE_CODES[kind],
            message=message,
            suggestion="Check the template syntax and its TPL:FULL / TPL:SIMPLE markers",
            context=context
        )

    @classmethod
    def malformed(cls, reason: str, line_number: Optional[int] = None) -> "ParseError":
        return cls(ParseErrorKind.MALFORMED_SYNTAX, f"Malformed template: {reason}", line_number=line_number)

    @classmethod
    def missing_variant(cls, variant: str) -> "ParseError":
        return cls(
            ParseErrorKind.MISSING_VARIANT,
            f"Template has no 'TPL:{variant.upper()}' marker",
            variant=variant,
        )

    @classmethod
    def duplicate_variant(cls, variant: str, line_number: Optional[int] = None) -> "ParseError":
        return cls(
            ParseErrorKind.DUPLICATE_VARIANT,
            f"Template marker 'TPL:{variant.upper()}' appears more than once",
            variant=variant,
            line_number=line_number,
        )

    @classmethod
    def missing_sentinel(cls, variant: str, reason: str) -> "ParseError":
        return cls(
            ParseErrorKind.MISSING_SENTINEL,
            f"Variant '{variant}' {reason}",
            variant=variant,
        )


class SubstitutionError(WaybarManagerError):
    """Sentinel vanished between parsing and synthesis."""

    def __init__(self, variant: str, monitor: str):
        super().__init__(
            code=ErrorCode.SUBSTITUTION_FAILED,
            message=f"Output placeholder missing from variant '{variant}' while generating for {monitor}",
            suggestion="This is an internal error; please report it",
            context={"variant": variant, "monitor": monitor}
        )


class SettingsError(WaybarManagerError):
    """Settings file could not be read or written."""

    def __init__(self, file_path: str, reason: str, code: ErrorCode = ErrorCode.SETTINGS_LOAD_FAILED):
        super().__init__(
            code=code,
            message=f"Failed to access settings at {file_path}: {reason}",
            suggestion="Fix or remove the file and run 'waybar-manager init'",
            context={"file_path": file_path, "reason": reason}
        )
