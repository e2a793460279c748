"""Utility functions to check and expand the keys sent to Scan.read() and __getitem__.

Two index conventions share the same code:
    one_based=True (Scan.read): integers go from 1 to dim_size, ':' (or slice(None)) is
        the whole axis and strings such as '2:5' or '1:2:end' are inclusive ranges.
    one_based=False (scan[...]): python conventions; negative integers count from the
        end and slices are cropped to the axis size.
Either way, indices are expanded to lists of 1-based integers.
"""
from collections import namedtuple

import numpy as np

from .exceptions import IndexBoundsError, IndexTypeError

FULL_RANGE = ':'

NormalizedKey = namedtuple('NormalizedKey', ['field_list', 'y_lists', 'x_lists',
                                             'channel_list', 'frame_list',
                                             'squeeze_dims'])


def fill_key(key, num_dimensions):
    """ Fill key with ':' until num_dimensions size.

    Args:
        key: tuple of indices or single index. key as received by read() or __getitem__().
        num_dimensions: integer. Total number of dimensions needed.

    Raises:
        IndexBoundsError: Too many indices in key: len(key) > num_dimensions.
    """
    # Deal with single valued keys, e.g., scan[:] or scan[0]
    if not isinstance(key, tuple):
        key = (key,)

    # Check key is not larger than num_dimensions
    if len(key) > num_dimensions:
        raise IndexBoundsError('too many indices for scan: {}'.format(len(key)))

    # Add missing dimensions
    missing_dimensions = num_dimensions - len(key)
    full_key = tuple(list(key) + [FULL_RANGE] * missing_dimensions)

    return full_key


def check_index_type(axis, index, one_based=True):
    """ Checks that index is an integer, full range or list of integers.

    Args:
        axis: An integer. Axis of the index.
        index: A single index.
        one_based: Boolean. Whether the index follows the 1-based convention.

    Raises:
        IndexTypeError: If index does not have a valid type.
    """
    if not _index_has_valid_type(index, one_based): # raise error
        error_msg = ('index {} in axis {} is not an integer, full range or list of '
                     'integers'.format(index, axis))
        raise IndexTypeError(error_msg)


def _is_integer(x):
    return np.issubdtype(type(x), np.signedinteger)


def _is_full_range(index):
    if isinstance(index, str):
        return index == FULL_RANGE
    return isinstance(index, slice) and index == slice(None)


def _index_has_valid_type(index, one_based):
    if _is_integer(index): # integer
        return True
    if isinstance(index, range): # range
        return True
    if (isinstance(index, (list, tuple)) and all(_is_integer(x) for x in index)):
        return True # list or tuple
    if (isinstance(index, np.ndarray) and np.issubdtype(index.dtype, np.signedinteger)
        and index.ndim == 1):  # array
        return True
    if one_based:
        if _is_full_range(index):
            return True
        if isinstance(index, str): # range string
            return _parse_range_string(index) is not None
    elif isinstance(index, slice): # any python slice
        return True

    return False


def _parse_range_string(index):
    """ Split 'start:stop' or 'start:step:stop' into its tokens (None if malformed)."""
    tokens = [token.strip() for token in index.split(':')]
    if len(tokens) not in [2, 3]:
        return None
    for token in tokens:
        if token != 'end' and not token.lstrip('-').isdigit():
            return None
    if len(tokens) == 3 and tokens[1] in ['end', '0', '-0']:
        return None # step has to be a non-zero integer

    return tokens


def _expand_range_string(index, dim_size):
    tokens = _parse_range_string(index)
    values = [dim_size if token == 'end' else int(token) for token in tokens]
    start, stop = values[0], values[-1]
    step = values[1] if len(values) == 3 else 1
    stop = stop + 1 if step > 0 else stop - 1 # inclusive
    return list(range(start, stop, step))


def is_scalar_index(index):
    """ Whether the axis of this index will be squeezed from the output."""
    return _is_integer(index)


def listify_index(axis, index, dim_size, one_based=True):
    """ Generates the list representation of an index for the given dim_size.

    Args:
        axis: An integer. Axis of the index.
        index: A single index (its type should be checked first).
        dim_size: Size of the dimension corresponding to the index.
        one_based: Boolean. Whether the index follows the 1-based convention.

    Returns:
        A list of 1-based integers. Order and repetitions in the index are preserved.

    Raises:
        IndexBoundsError: If any resolved index is out of bounds for the axis.
    """
    if _is_integer(index):
        index_as_list = [int(index)]
    elif isinstance(index, (list, tuple, range, np.ndarray)):
        index_as_list = [int(x) for x in index]
    elif one_based and _is_full_range(index):
        index_as_list = list(range(1, dim_size + 1))
    elif one_based:
        index_as_list = _expand_range_string(index, dim_size)
    else: # python slice, never out of bounds
        start, stop, step = index.indices(dim_size)
        return [x + 1 for x in range(start, stop, step)]

    valid_range = range(1, dim_size + 1) if one_based else range(-dim_size, dim_size)
    if not all(x in valid_range for x in index_as_list):
        error_msg = ('index {} is out of bounds for axis {} with size '
                     '{}'.format(index, axis, dim_size))
        raise IndexBoundsError(error_msg)

    if not one_based: # move to 1-based
        index_as_list = [x + 1 if x >= 0 else dim_size + x + 1 for x in index_as_list]

    return index_as_list


def normalize_key(key, num_fields, field_heights, field_widths, num_channels, num_frames,
                  one_based=True):
    """ Check and expand a (field, y, x, channel, frame) key.

    Heights and widths are checked and expanded per requested field: fields may have
    different sizes in multiROI scans.

    Args:
        key: Key as received by read() or __getitem__().
        num_fields: Integer. Number of fields in the scan.
        field_heights: List of integers. Height of each field in the scan.
        field_widths: List of integers. Width of each field in the scan.
        num_channels: Integer. Number of channels in the scan.
        num_frames: Integer. Number of frames in the scan.
        one_based: Boolean. Whether the key follows the 1-based convention.

    Returns:
        A NormalizedKey. Lists of 1-based indices (one y and x list per requested field)
            and the axes that were requested with a single integer (to be squeezed).

    Raises:
        IndexBoundsError: If key has more than five indices or an index is out of bounds.
        IndexTypeError: If any index has an invalid type.
    """
    # Fill key to size 5 (raises IndexBoundsError if more than 5)
    full_key = fill_key(key, num_dimensions=5)

    # Check index types are valid
    for i, index in enumerate(full_key):
        check_index_type(i, index, one_based)

    # Expand (and check bounds of) each dimension
    field_list = listify_index(0, full_key[0], num_fields, one_based)
    y_lists = [listify_index(1, full_key[1], field_heights[field_id - 1], one_based)
               for field_id in field_list]
    x_lists = [listify_index(2, full_key[2], field_widths[field_id - 1], one_based)
               for field_id in field_list]
    channel_list = listify_index(3, full_key[3], num_channels, one_based)
    frame_list = listify_index(4, full_key[4], num_frames, one_based)

    squeeze_dims = [i for i, index in enumerate(full_key) if is_scalar_index(index)]

    return NormalizedKey(field_list, y_lists, x_lists, channel_list, frame_list,
                         squeeze_dims)
