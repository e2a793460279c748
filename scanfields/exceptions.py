class ScanReaderException(Exception):
    """Base scanfields exception. """
    pass

class ScanImageVersionError(ScanReaderException):
    """ Exception for unsupported ScanImage versions."""
    pass

class PathnameError(ScanReaderException):
    """ Exception for dealing with paths and pathname patterns (wildcards)."""
    pass

class IndexTypeError(ScanReaderException, IndexError, TypeError):
    """ Exception for indices that are not integers, full ranges or lists of integers."""
    pass

class IndexBoundsError(ScanReaderException, IndexError):
    """ Exception for indices out of bounds for their axis (or too many indices)."""
    pass

class FieldDimensionMismatchError(ScanReaderException):
    """ Exception for trying to slice an array with fields of different dimensions."""
    pass

FieldDimensionMismatch = FieldDimensionMismatchError

class FieldLayoutOverflowError(ScanReaderException):
    """ Exception for fields that do not fit in the tiff page (fly to lines
    overestimated)."""
    pass

class InternalAddressingError(ScanReaderException):
    """ Exception for page numbers outside every tiff file. Signals a bug in the page
    bookkeeping rather than an user error."""
    pass

class UnsupportedOperationError(ScanReaderException, NotImplementedError):
    """ Exception for properties that are not defined for this kind of scan."""
    pass
