"""
Incidentist Exceptions

Fatal errors abort the run; publish errors only abort the publish step.
"""

from typing import Optional


class IncidentistError(Exception):
    """Base exception for report generation errors"""
    pass


class ConfigurationError(IncidentistError):
    """Invalid or missing configuration, raised before any fetch"""
    pass


class FetchError(IncidentistError):
    """Primary data could not be fetched from a source system"""
    pass


class PublishError(IncidentistError):
    """Report could not be published"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConversionError(PublishError):
    """Markdown body could not be converted for publishing"""
    pass
