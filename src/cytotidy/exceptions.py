"""Custom exception classes for cytotidy."""


class CytotidyError(Exception):
    """Base exception for all cytotidy errors."""
    pass


class ConfigurationError(CytotidyError):
    """Raised when sample or generator configuration is invalid."""
    pass


class ValidationError(CytotidyError):
    """Raised when input tables or flowsets fail validation."""
    pass


class DataProcessingError(CytotidyError):
    """Raised for errors while generating or reshaping event data."""
    pass


class GatingError(DataProcessingError):
    """Raised for errors during the gating stage."""
    pass


class FileOperationError(CytotidyError):
    """Raised for file reading or writing errors."""
    pass


class StoreError(CytotidyError):
    """Raised when the analytical database rejects a read or write."""
    pass
