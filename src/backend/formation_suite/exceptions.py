"""
Exception hierarchy for the formation suite.

Resolvers never raise; these cover invalid form events, missing drafts,
gateway failures and broken reference data.
"""


class FormationSuiteError(Exception):
    """Base class for all formation suite errors."""


class FormFieldError(FormationSuiteError):
    """Raised when a form event names an unknown field or an invalid member index."""

    def __init__(self, message: str, field_name: str = None):
        super().__init__(message)
        self.field_name = field_name


class SessionNotFoundError(FormationSuiteError):
    """Raised when a draft session does not exist or belongs to another form."""

    def __init__(self, session_id: str):
        super().__init__(f"Form session not found: {session_id}")
        self.session_id = session_id


class PersistenceError(FormationSuiteError):
    """Raised by an application gateway when a save cannot be completed."""


class ProviderError(FormationSuiteError):
    """Raised by a search provider that could not produce a result."""

    def __init__(self, provider_name: str, message: str):
        super().__init__(f"{provider_name}: {message}")
        self.provider_name = provider_name


class ReferenceDataError(FormationSuiteError):
    """Raised when a reference table cannot be loaded into its typed shape."""
