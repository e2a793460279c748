""" Creation of the field table of a scan.

Fields are built once when the scan is opened. Uniform scans have one full-page field per
scanning depth. MultiROI scans pack the fields of all ROIs scanned at one depth in the
same tiff page, one under the other and separated by the lines scanned while the mirrors
fly to the next ROI.
"""
import itertools
import logging

from .exceptions import FieldLayoutOverflowError
from .multiroi import Field

logger = logging.getLogger(__name__)


def build_uniform_fields(scanning_depths, page_height, page_width):
    """ One field per scanning depth, each covering the entire tiff page."""
    fields = []
    for slice_id, scanning_depth in enumerate(scanning_depths):
        new_field = Field(height=page_height, width=page_width, depth=scanning_depth,
                          yslices=[slice(0, page_height)], xslices=[slice(0, page_width)],
                          output_yslices=[slice(0, page_height)],
                          output_xslices=[slice(0, page_width)], slice_id=slice_id,
                          roi_ids=[])
        fields.append(new_field)

    return fields


def build_multiroi_fields(rois, scanning_depths, page_height, num_fly_to_lines):
    """ Go over each slice depth and each roi generating the scanned fields.

    Args:
        rois: List of ROI objects.
        scanning_depths: List of numbers. Depths scanned (one tiff page per depth).
        page_height: Integer. Height of the tiff pages.
        num_fly_to_lines: Integer. Lines scanned between two consecutive fields.

    Returns:
        A list of Field objects sorted by scanning depth and then by ROI.

    Raises:
        FieldLayoutOverflowError: If fields do not fit in the tiff page or the number of
            fly to lines is unknown.
    """
    if num_fly_to_lines is None:
        raise FieldLayoutOverflowError('Cannot place fields in the tiff page: fly to time '
                                       '(hScan2D.flytoTimePerScanfield) missing in header')

    fields = []
    for slice_id, scanning_depth in enumerate(scanning_depths):
        next_line_in_page = 0 # each slice is one tiff page
        for roi_id, roi in enumerate(rois):
            new_field = roi.get_field_at(scanning_depth)

            if new_field is not None:
                if next_line_in_page + new_field.height > page_height:
                    error_msg = ('Overestimated number of fly to lines ({}) at '
                                 'scanning depth {}'.format(num_fly_to_lines,
                                                            scanning_depth))
                    raise FieldLayoutOverflowError(error_msg)

                # Set xslice and yslice (from where in the page to cut it)
                new_field.yslices = [slice(next_line_in_page,
                                           next_line_in_page + new_field.height)]
                new_field.xslices = [slice(0, new_field.width)]

                # Set output xslice and yslice (where to paste it in output)
                new_field.output_yslices = [slice(0, new_field.height)]
                new_field.output_xslices = [slice(0, new_field.width)]

                new_field.slice_id = slice_id
                new_field.roi_ids = [roi_id]

                next_line_in_page += new_field.height + num_fly_to_lines
                fields.append(new_field)

    logger.debug('Built %d fields from %d rois at %d scanning depths', len(fields),
                 len(rois), len(scanning_depths))

    return fields


def join_contiguous_fields(fields, scanning_depths):
    """ In each scanning depth, join fields that are contiguous.

    Fields are considered contiguous if they appear next to each other and have the
    same size in their touching axis. Process is iterative: it tries to join each
    field with the remaining ones (checked in order); at the first union it will break
    and restart the process at the first field. When two fields are joined, it deletes
    the one appearing last and modifies info such as field height, field width and
    slices in the one appearing first.

    Any rectangular area in the scan formed by the union of two or more fields which
    have been joined will be treated as a single field after this operation.

    Args:
        fields: List of Field objects. Modified in place.
        scanning_depths: List of numbers. Depths in the scan.

    Returns:
        The same list of fields (without the absorbed ones).
    """
    num_fields = len(fields)
    for scanning_depth in scanning_depths:
        two_fields_were_joined = True
        while two_fields_were_joined: # repeat until no fields were joined
            two_fields_were_joined = False

            fields_at_depth = [field for field in fields if field.depth == scanning_depth]
            for field1, field2 in itertools.combinations(fields_at_depth, 2):
                if field1.is_contiguous_to(field2):
                    field1.join_with(field2)
                    fields.remove(field2)

                    # Restart join contiguous search (at while)
                    two_fields_were_joined = True
                    break

    logger.debug('Joined contiguous fields: %d fields -> %d fields', num_fields,
                 len(fields))

    return fields
