"""Exceptions raised by the DGE wrangling workflows."""

from typing import Optional


class DGEError(Exception):
    """Base class for errors raised while preparing DGE data."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
        # Filled in by the wrangling driver once the failing stage is known
        self.stage: Optional[str] = None


class FormatError(DGEError):
    """A line or field in an input file could not be parsed."""
    pass


class CountMismatchError(DGEError):
    """Number of identifiers differs from the dimension declared in the matrix header."""

    def __init__(self, message: str, expected: int, actual: int, path: Optional[str] = None):
        super().__init__(message, path)
        self.expected = expected
        self.actual = actual


class SizeMismatchError(DGEError):
    """Number of parsed entries differs from the declared entry count."""

    def __init__(self, message: str, expected: int, actual: int, path: Optional[str] = None):
        super().__init__(message, path)
        self.expected = expected
        self.actual = actual


class DuplicateBarcodeError(DGEError):
    """Barcode-to-well table lists the same barcode more than once."""
    pass


class UnrecognizedLabelError(DGEError):
    """Dataset label is not one of the known vignettes."""
    pass


class AnnotationError(DGEError):
    """Gene annotation service returned an error."""
    pass
