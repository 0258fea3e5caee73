"""
Exception taxonomy for the form engine.

Validation problems are NEVER raised: they are returned as data in a
ValidationResult. Conflicts are NEVER raised either: they are recorded
in the winning snapshot's autosave metadata.

Only I/O-facing operations (load, save, migrate) and template parsing
raise, and callers are expected to treat these as recoverable.
"""


class FormEngineError(Exception):
    """Base class for all engine errors."""
    pass


class TemplateParseError(FormEngineError, ValueError):
    """Raised when a template document is malformed."""
    pass


class UnknownFieldError(FormEngineError, KeyError):
    """Raised when a session mutation targets a field the template does not declare."""

    def __init__(self, field_id: str, template_id: str = ""):
        self.field_id = field_id
        self.template_id = template_id
        super().__init__(field_id)

    def __str__(self) -> str:
        return f"Unknown field '{self.field_id}' in template '{self.template_id}'"


class VersionNotFoundError(FormEngineError, LookupError):
    """Raised when a requested template version is not in the history."""

    def __init__(self, template_id: str, version: str):
        self.template_id = template_id
        self.version = version
        super().__init__(f"Version '{version}' of template '{template_id}' not found")


class MigrationError(FormEngineError):
    """
    Raised when answer data cannot be migrated between template versions.

    Fatal to the migration call only; the source FormData is left untouched.
    """

    def __init__(self, template_id: str, from_version: str, to_version: str, reason: str = ""):
        self.template_id = template_id
        self.from_version = from_version
        self.to_version = to_version
        message = f"Cannot migrate '{template_id}' from {from_version} to {to_version}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PersistenceError(FormEngineError):
    """
    Raised (or reported via callback) when the persistence port fails.

    The in-memory snapshot is never discarded because of this error.
    """

    def __init__(self, key: str, cause: BaseException | None = None):
        self.key = key
        self.cause = cause
        message = f"Persistence failed for key '{key}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
