from .core import read_scan
from .exceptions import (ScanReaderException, IndexTypeError, IndexBoundsError,
                         FieldDimensionMismatchError, FieldLayoutOverflowError,
                         InternalAddressingError, UnsupportedOperationError)
from .scans import Scan, Variant
