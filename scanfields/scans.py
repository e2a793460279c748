"""
ScanImage scans. Scan objects are usually instantiated by a call to
scanfields.read_scan().

Scans come in two variants that only differ on how their fields are laid in the tiff
pages:
    Variant.UNIFORM: one field per scanning depth covering the whole tiff page (ScanImage
        5 and non-multiROI scans from 2016b on).
    Variant.MULTI_ROI: fields are defined by the ROIs in the scan and packed together in
        the same tiff page (output from mesoscope).
"""
import logging

import numpy as np

from . import fields as field_builders
from . import header as header_facts
from . import utils
from .exceptions import FieldDimensionMismatchError, UnsupportedOperationError
from .multiroi import ROI

logger = logging.getLogger(__name__)


class Variant:
    UNIFORM = 'uniform'
    MULTI_ROI = 'multiROI'


class Scan:
    """ A ScanImage scan.

    Scan objects are a collection of recording fields: rectangular planes at a given x, y,
    z position in the scan recorded in a number of channels during a preset amount of
    time. All fields have the same number of channels and number of frames.
    Scan objects are:
        indexable: scan[field, y, x, channel, frame] (python conventions) and
            scan.read(field, y, x, channel, frame) (1-based, inclusive ranges) work as
            long as the fields' spatial dimensions (y, x) match.
        iterable: 'for field in scan:' iterates over all fields (4-d array) in the scan.

    Examples:
        scan.version                    ScanImage version of the scan.
        scan[:, :, :3, :, :1000]        5-d numpy array with the first 1000 frames of the
            first 3 fields (if x, y dimensions match).
        scan.read(':', ':', '1:3', ':', '1:1000')   same as above.
        scan.read(2, ':', ':', [2, 1])  3-d array (y, x, channels) with both channels in
            reverse order of the second field for all frames.
        for field in scan:              generates 4-d numpy arrays ([y, x, channels, frames]).

    Note:
        We use the word 'frames' as in video frames, i.e., number of timesteps the scan
        was recorded; ScanImage uses frames to refer to slices/scanning depths in the
        scan.

    Attributes:
        variant: Variant.UNIFORM or Variant.MULTI_ROI.
        join_contiguous: A bool. Whether contiguous fields are joined into one (multiROI).
        header: String. ScanImage header.
        facts: HeaderFacts parsed from the header.
        rois: List of ROI objects (empty for uniform scans).
        fields: List of Field objects.
    """
    def __init__(self, variant=Variant.UNIFORM, join_contiguous=False):
        self.variant = variant
        self.join_contiguous = join_contiguous
        self.header = ''
        self.facts = None
        self.rois = []
        self.fields = []
        self._reader = None

    @property
    def is_multiROI(self):
        return self.variant == Variant.MULTI_ROI

    @property
    def filenames(self):
        return self._reader.filenames

    @property
    def dtype(self):
        return self._reader.dtype

    @property
    def version(self):
        return self.facts.version

    @property
    def num_channels(self):
        return self.facts.num_channels

    @property
    def scanning_depths(self):
        return self.facts.scanning_depths

    @property
    def num_scanning_depths(self):
        return len(self.scanning_depths)

    @property
    def num_requested_frames(self):
        return self.facts.num_requested_frames

    @property
    def num_frames(self):
        """ Each tiff page is an image at a given channel, scanning depth combination."""
        num_frames = self._reader.num_pages / (self.num_channels * self.num_scanning_depths)
        return int(num_frames) # discard last frame if incomplete

    @property
    def is_bidirectional(self):
        return self.facts.is_bidirectional

    @property
    def scanner_frequency(self):
        return self.facts.scanner_frequency

    @property
    def seconds_per_line(self):
        return header_facts.seconds_per_line(self.facts)

    @property
    def fps(self):
        return self.facts.fps

    @property
    def spatial_fill_fraction(self):
        return self.facts.spatial_fill_fraction

    @property
    def temporal_fill_fraction(self):
        return self.facts.temporal_fill_fraction

    @property
    def scanner_type(self):
        return self.facts.scanner_type

    @property
    def motor_position_at_zero(self):
        """ Motor position (x, y and z in microns) corresponding to the scan's (0, 0, 0)
        point. For non-multiroi scans, (x=0, y=0) marks the center of the FOV."""
        return self.facts.motor_position_at_zero

    @property
    def initial_secondary_z(self):
        """ Initial position in z (microns) of the secondary motor (if any)."""
        return self.facts.initial_secondary_z

    @property
    def zoom(self):
        return self.facts.zoom

    @property
    def uses_fast_z(self):
        return self.facts.uses_fast_z

    @property
    def y_angle_scale_factor(self):
        """ Scan angles in y are scaled by this factor, shrinking the angle range."""
        return self._uniform_fact('y_angle_scale_factor')

    @property
    def x_angle_scale_factor(self):
        """ Scan angles in x are scaled by this factor, shrinking the angle range."""
        return self._uniform_fact('x_angle_scale_factor')

    def _uniform_fact(self, name):
        if self.is_multiROI:
            error_msg = '{} is not defined for multiROI scans'.format(name)
            raise UnsupportedOperationError(error_msg)
        return getattr(self.facts, name)

    @property
    def num_fly_back_lines(self):
        """ Lines/mirror cycles that it takes to move from one depth to the next."""
        if self.facts.fly_back_seconds is None:
            return None
        return header_facts.seconds_to_lines(self.facts, self.facts.fly_back_seconds)

    @property
    def num_fly_to_lines(self):
        """ Number of lines recorded in the tiff page while flying to a different field,
        i.e., distance between fields in the tiff page."""
        if self.facts.fly_to_seconds is None:
            return None
        return header_facts.seconds_to_lines(self.facts, self.facts.fly_to_seconds)

    @property
    def _page_height(self):
        return self._reader.page_height

    @property
    def _page_width(self):
        return self._reader.page_width

    @property
    def num_fields(self):
        return len(self.fields)

    @property
    def num_rois(self):
        return len(self.rois)

    @property
    def field_heights(self):
        return [field.height for field in self.fields]

    @property
    def field_widths(self):
        return [field.width for field in self.fields]

    @property
    def field_depths(self):
        return [field.depth for field in self.fields]

    @property
    def field_slices(self):
        return [field.slice_id for field in self.fields]

    @property
    def field_rois(self):
        return [field.roi_id for field in self.fields]

    @property
    def field_masks(self):
        return [field.roi_mask for field in self.fields]

    @property
    def field_heights_in_microns(self):
        if not self.is_multiROI:
            return [self.image_height_in_microns] * self.num_fields
        return [self._degrees_to_microns(field.height_in_degrees) for field in self.fields]

    @property
    def field_widths_in_microns(self):
        if not self.is_multiROI:
            return [self.image_width_in_microns] * self.num_fields
        return [self._degrees_to_microns(field.width_in_degrees) for field in self.fields]

    @property
    def image_height_in_microns(self):
        fov_corners = self.facts.imaging_fov
        return None if fov_corners is None else fov_corners[2][1] - fov_corners[1][1] # y1-y0

    @property
    def image_width_in_microns(self):
        fov_corners = self.facts.imaging_fov
        return None if fov_corners is None else fov_corners[1][0] - fov_corners[0][0] # x1-x0

    @property
    def image_height(self):
        if any(height != self.field_heights[0] for height in self.field_heights):
            raise FieldDimensionMismatchError('Image heights for all fields do not match')
        return self.field_heights[0] if self.fields else None

    @property
    def image_width(self):
        if any(width != self.field_widths[0] for width in self.field_widths):
            raise FieldDimensionMismatchError('Image widths for all fields do not match')
        return self.field_widths[0] if self.fields else None

    @property
    def shape(self):
        return (self.num_fields, self.image_height, self.image_width, self.num_channels,
                self.num_frames)

    @property
    def field_offsets(self):
        """ Seconds elapsed between start of frame scanning and each pixel."""
        if self.is_multiROI:
            raise UnsupportedOperationError('Field offsets are not defined for multiROI '
                                            'scans')
        num_lines_between_fields = self._page_height + self.num_fly_back_lines
        return [self._compute_offsets(field.height, field.slice_id * num_lines_between_fields)
                for field in self.fields]

    def _degrees_to_microns(self, degrees):
        """ Convert scan angle degrees to microns using the objective resolution."""
        if self.facts.objective_resolution is None:
            return None
        return degrees * self.facts.objective_resolution

    def _compute_offsets(self, field_height, start_line):
        """ Computes the time offsets at which a given field was recorded.

        Computes the time delay at which each pixel was recorded using the start of the
        scan as zero. It first creates an image with the number of lines scanned until
        that point and then uses self.seconds_per_line to transform it into seconds.

        :param int field_height: Height of the field.
        :param int start_line: Line at which this field starts.

        :returns: A field_height x page_width mask with time offsets in seconds.
        """
        # Compute offsets within a line (negligible if seconds_per_line is small)
        max_angle = (np.pi / 2) * self.temporal_fill_fraction
        line_angles = np.linspace(-max_angle, max_angle, self._page_width + 2)[1:-1]
        line_offsets = (np.sin(line_angles) + 1) / 2

        # Compute offsets for entire field
        field_offsets = np.expand_dims(np.arange(0, field_height), -1) + line_offsets
        if self.is_bidirectional: # odd lines scanned from left to right
            field_offsets[1::2] = field_offsets[1::2] - line_offsets + (1 - line_offsets)

        # Transform offsets from line counts to seconds
        field_offsets = (field_offsets + start_line) * self.seconds_per_line

        return field_offsets

    def read_data(self, reader, facts=None):
        """ Set the header and create the fields (joining them if necessary). Data is read
        lazily when needed.

        Args:
            reader: PagedReader over the tiff files of the scan.
            facts: HeaderFacts of the scan. Parsed from the reader header if None.

        Raises:
            FieldLayoutOverflowError: If the multiROI fields do not fit in the tiff page.
        """
        self._reader = reader
        self.header = reader.header
        self.facts = header_facts.parse_header(self.header) if facts is None else facts

        if self.is_multiROI:
            self.rois = self._create_rois()
            self.fields = field_builders.build_multiroi_fields(
                self.rois, self.scanning_depths, self._page_height, self.num_fly_to_lines)
            if self.join_contiguous:
                field_builders.join_contiguous_fields(self.fields, self.scanning_depths)
        else:
            self.fields = field_builders.build_uniform_fields(
                self.scanning_depths, self._page_height, self._page_width)

    def _create_rois(self):
        """Create scan rois from the configuration file. """
        roi_group = self._reader.scanimage_metadata['RoiGroups']['imagingRoiGroup']
        roi_infos = roi_group['rois']
        roi_infos = roi_infos if isinstance(roi_infos, list) else [roi_infos]
        roi_infos = [roi_info for roi_info in roi_infos
                     if isinstance(roi_info['zs'], (int, float, list))] # discard empty/malformed ROIs

        return [ROI(roi_info) for roi_info in roi_infos]

    def close(self):
        """ Close all tiff files opened by this scan."""
        reader = getattr(self, '_reader', None) # may be missing if __init__ failed
        if reader is not None:
            reader.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __del__(self):
        self.close()

    def __array__(self, dtype=None, copy=None):
        item = self[:]
        return item if dtype is None else item.astype(dtype)

    def __str__(self):
        msg = '{}\n{}\n{}\n{}'.format(type(self), '*' * 80, self.header, '*' * 80)
        return msg

    def __len__(self):
        return self.num_fields

    def __iter__(self):
        for field_id in range(self.num_fields):
            yield self[field_id]

    def __getitem__(self, key):
        """ Index scans by field, y, x, channels, frames. Supports integer, slice and
        array/tuple/list of integers as indices (python conventions)."""
        return self._getitem(key, one_based=False)

    def read(self, *key):
        """ Read (field, y, x, channel, frame) from the scan.

        Indices are 1-based: integers, lists of integers, ':' for the entire axis or
        inclusive ranges written as 'start:stop' or 'start:step:stop' ('end' can be used
        for the last index). Axes indexed with a single integer are dropped from the
        output. Missing trailing indices are taken as ':'.

        Raises:
            IndexBoundsError: If an index is out of bounds (or there are more than five).
            IndexTypeError: If an index is not valid.
            FieldDimensionMismatchError: If requested fields have different heights or
                widths in the output.
        """
        return self._getitem(key, one_based=True)

    def _getitem(self, key, one_based):
        normalized = utils.normalize_key(key, self.num_fields, self.field_heights,
                                         self.field_widths, self.num_channels,
                                         self.num_frames, one_based=one_based)
        field_list, y_lists, x_lists, channel_list, frame_list, squeeze_dims = normalized

        # Edge case when index gives 0 elements or index is empty list, e.g., scan[10:0], scan[[]]
        if [] in [field_list, *y_lists, *x_lists, channel_list, frame_list]:
            out_height = len(y_lists[0]) if y_lists else int(1 in squeeze_dims)
            out_width = len(x_lists[0]) if x_lists else int(2 in squeeze_dims)
            item = np.empty([len(field_list), out_height, out_width, len(channel_list),
                             len(frame_list)], dtype=self.dtype)
            return np.squeeze(item, axis=tuple(squeeze_dims))

        # Check output heights and widths match for all fields
        if not all(len(y_list) == len(y_lists[0]) for y_list in y_lists):
            raise FieldDimensionMismatchError('Image heights for all fields do not match')
        if not all(len(x_list) == len(x_lists[0]) for x_list in x_lists):
            raise FieldDimensionMismatchError('Image widths for all fields do not match')

        if self.is_multiROI:
            item = self._read_fields(field_list, y_lists, x_lists, channel_list,
                                     frame_list)
        else:
            # All fields cover the entire page: crop pages while reading them
            slice_list = [self.fields[field_id - 1].slice_id + 1 for field_id in field_list]
            item = self._reader.read_pages(slice_list, channel_list, frame_list,
                                           self.num_channels, self.num_scanning_depths,
                                           yslice=[y - 1 for y in y_lists[0]],
                                           xslice=[x - 1 for x in x_lists[0]])

        # If original index was an integer, delete that axis (as in numpy indexing)
        item = np.squeeze(item, axis=tuple(squeeze_dims))

        return item

    def _read_fields(self, field_list, y_lists, x_lists, channel_list, frame_list):
        """ Read whole pages of the slices involved and cut/paste each subfield."""
        # Read each slice only once even if many of its fields were requested
        slice_list = []
        for field_id in field_list:
            slice_id = self.fields[field_id - 1].slice_id + 1
            if slice_id not in slice_list:
                slice_list.append(slice_id)
        pages = self._reader.read_pages(slice_list, channel_list, frame_list,
                                        self.num_channels, self.num_scanning_depths)

        item = np.empty([len(field_list), len(y_lists[0]), len(x_lists[0]),
                         len(channel_list), len(frame_list)], dtype=self.dtype)
        for i, (field_id, y_list, x_list) in enumerate(zip(field_list, y_lists, x_lists)):
            field = self.fields[field_id - 1]
            field_pages = pages[slice_list.index(field.slice_id + 1)]

            # Over each subfield in field (only one for non-contiguous fields)
            for yslice, xslice, output_yslice, output_xslice in field.subfields:

                # Get x, y indices that need to be accessed in this subfield
                output_ys = [index for index, y in enumerate(y_list)
                             if output_yslice.start <= y - 1 < output_yslice.stop]
                output_xs = [index for index, x in enumerate(x_list)
                             if output_xslice.start <= x - 1 < output_xslice.stop]
                if not output_ys or not output_xs:
                    continue
                ys = [y_list[index] - 1 - output_yslice.start + yslice.start
                      for index in output_ys]
                xs = [x_list[index] - 1 - output_xslice.start + xslice.start
                      for index in output_xs]

                item[i][np.ix_(output_ys, output_xs)] = field_pages[np.ix_(ys, xs)]

        return item
