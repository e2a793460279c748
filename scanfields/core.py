"""
Entry point to open ScanImage scans (uniform or multiROI) as indexable field arrays.

Example:
    import scanfields
    scan = scanfields.read_scan('my_scan_*.tif', join_contiguous=True)
    first_field = scan.read(1)  # y x channels frames
    for field in scan:
        #process field
"""
from glob import glob
from os import path
import logging

import numpy as np

from .exceptions import ScanImageVersionError, PathnameError
from .header import parse_header
from .paging import PagedReader
from .scans import Scan, Variant

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = ['5.1', '5.2', '5.3', '5.4', '5.5', '5.6', '5.7', '2016b', '2017a',
                      '2017b', '2018a', '2018b', '2019a', '2019b', '2020']
MULTIROI_VERSIONS = SUPPORTED_VERSIONS[SUPPORTED_VERSIONS.index('2016b'):]


def read_scan(pathnames, dtype=np.int16, join_contiguous=False):
    """ Opens a ScanImage scan.

    Args:
        pathnames: String or list of strings. Pathname(s) or pathname pattern(s) to read.
        dtype: Data-type. Data type of the output arrays.
        join_contiguous: Boolean. For multiROI scans (2016b and beyond) it will join
            contiguous fields in the same depth. No effect in uniform scans. See help of
            fields.join_contiguous_fields for details.

    Returns:
        A Scan object with metadata and the field table. Pixels are read when indexing.

    Raises:
        PathnameError: If pathnames do not match any file.
        ScanImageVersionError: If the ScanImage version is missing or not supported.
        FieldLayoutOverflowError: If fields do not fit in the tiff pages (multiROI).
    """
    filenames = expand_wildcard(pathnames)
    if len(filenames) == 0:
        error_msg = 'Pathname(s) {} do not match any files in disk.'.format(pathnames)
        raise PathnameError(error_msg)

    # The header of the first file decides how fields are laid out
    reader = PagedReader(filenames, dtype)
    facts = parse_header(reader.header)
    try:
        variant = select_variant(get_scanimage_version(facts), facts.is_multiROI)
    except ScanImageVersionError:
        reader.close()
        raise

    scan = Scan(variant, join_contiguous=join_contiguous)
    scan.read_data(reader, facts)
    logger.info('Opened %s scan (version %s) from %d files: %d fields', scan.variant,
                scan.version, len(filenames), scan.num_fields)

    return scan


def expand_wildcard(wildcard):
    """ Expands a list of pathname patterns to form a sorted list of absolute filenames.

    Args:
        wildcard: String or list of strings. Pathname pattern(s) to be extended with glob.

    Returns:
        A list of string. Absolute filenames sorted by basename.
    """
    if isinstance(wildcard, str):
        wildcard_list = [wildcard]
    elif isinstance(wildcard, (tuple, list)):
        wildcard_list = wildcard
    else:
        error_msg = 'Expected string or list of strings, received {}'.format(wildcard)
        raise TypeError(error_msg)

    filenames = [path.abspath(filename) for pattern in wildcard_list
                 for filename in glob(pattern)]

    return sorted(filenames, key=path.basename)


def get_scanimage_version(facts):
    """ ScanImage version in the header facts; raises ScanImageVersionError if missing."""
    if facts.version is None:
        raise ScanImageVersionError('Could not find ScanImage version in the tiff header')
    return facts.version


def select_variant(version, is_multiROI):
    """ Variant of the scan given its version and whether multiROI was enabled."""
    if version in MULTIROI_VERSIONS and is_multiROI:
        return Variant.MULTI_ROI
    elif version in SUPPORTED_VERSIONS:
        return Variant.UNIFORM
    else:
        error_msg = 'Sorry, ScanImage version {} is not supported'.format(version)
        raise ScanImageVersionError(error_msg)
