""" ROI and field records of multiROI scans.

A ROI is defined by one or more scanfields (rectangles at a given depth); the field
scanned at any depth is read from (or interpolated between) them. Fields know where they
lie in the tiff page (cut windows) and where each of their pieces goes in the output
(paste windows).
"""
import numpy as np


class ROI:
    """ Region of interest as defined in the ScanImage ROI group metadata.

    Attributes:
        roi_info: Dictionary. ROI definition ('discretePlaneMode', 'zs', 'scanfields').
        scanfields: List of Scanfield objects sorted by depth (created when first needed).
    """
    def __init__(self, roi_info):
        self.roi_info = roi_info
        self._scanfields = None

    @property
    def scanfields(self):
        if self._scanfields is None:
            self._scanfields = self._create_scanfields()
        return self._scanfields

    @property
    def is_discrete_plane_mode_on(self):
        return bool(self.roi_info['discretePlaneMode'])

    def _create_scanfields(self):
        infos = self.roi_info['scanfields']
        depths = self.roi_info['zs']
        infos = infos if isinstance(infos, list) else [infos] # single scanfield
        depths = depths if isinstance(depths, list) else [depths]

        scanfields = []
        for info, depth in zip(infos, depths):
            width, height = info['pixelResolutionXY']
            x, y = info['centerXY']
            width_in_degrees, height_in_degrees = info['sizeXY']
            scanfields.append(Scanfield(height=height, width=width, depth=depth, y=y, x=x,
                                        height_in_degrees=height_in_degrees,
                                        width_in_degrees=width_in_degrees))

        return sorted(scanfields, key=lambda scanfield: scanfield.depth)

    def get_field_at(self, scanning_depth):
        """ Field of this ROI at the given depth.

        In discrete plane mode the ROI only exists at the depths of its scanfields. A ROI
        with a single scanfield exists at every depth. Otherwise, the field is linearly
        interpolated between the scanfields above and below scanning_depth; heights and
        widths are rounded to the closest even number.

        Returns:
            A Field or None if the ROI was not scanned at scanning_depth.

        Warning:
            Rotated ROIs are not supported. If many scanfields share a depth only the last
                one is considered.
        """
        if self.is_discrete_plane_mode_on:
            matches = [sf for sf in self.scanfields if sf.depth == scanning_depth]
            return matches[-1].as_field() if matches else None

        if len(self.scanfields) == 1:
            field = self.scanfields[0].as_field()
            field.depth = scanning_depth
            return field

        depths = [sf.depth for sf in self.scanfields]
        if not depths[0] <= scanning_depth <= depths[-1]:
            return None

        def interpolate(attribute):
            values = [getattr(sf, attribute) for sf in self.scanfields]
            return np.interp(scanning_depth, depths, values)

        return Field(height=_round_to_even(interpolate('height')),
                     width=_round_to_even(interpolate('width')), depth=scanning_depth,
                     y=interpolate('y'), x=interpolate('x'),
                     height_in_degrees=interpolate('height_in_degrees'),
                     width_in_degrees=interpolate('width_in_degrees'))


def _round_to_even(value):
    return int(round(value / 2)) * 2


class Scanfield:
    """ Rectangle scanned at one depth.

    Attributes:
        height, width: Size in pixels.
        depth: Depth in microns relative to absolute z.
        y, x: Center of the rectangle (in scan angle degrees).
        height_in_degrees, width_in_degrees: Size in scan angle degrees.
    """
    def __init__(self, height=None, width=None, depth=None, y=None, x=None,
                 height_in_degrees=None, width_in_degrees=None):
        self.height = height
        self.width = width
        self.depth = depth
        self.y = y
        self.x = x
        self.height_in_degrees = height_in_degrees
        self.width_in_degrees = width_in_degrees

    def as_field(self):
        return Field(height=self.height, width=self.width, depth=self.depth, y=self.y,
                     x=self.x, height_in_degrees=self.height_in_degrees,
                     width_in_degrees=self.width_in_degrees)


class Field(Scanfield):
    """ A scanfield placed in the tiff pages of the scan: a recording field.

    Attributes:
        height, width, depth, y, x, height_in_degrees, width_in_degrees: As in Scanfield.
        yslices, xslices: Lists of slices. Cut windows: where in the tiff page each
            subfield is.
        output_yslices, output_xslices: Lists of slices. Paste windows: where in the
            (height x width) output each subfield goes.
        slice_id: Integer. 0-based index of the scanning depth (tiff page in a volume).
        roi_ids: List of integers. ROI of each subfield (empty for uniform scans).

    Example:
        output_field[output_yslice, output_xslice] = page[yslice, xslice]

    Fields hold a single subfield until they are joined with contiguous ones. Windows
    have step None and the same extent in cut and paste slices; paste windows tile the
    output exactly once.
    """
    def __init__(self, height=None, width=None, depth=None, y=None, x=None,
                 height_in_degrees=None, width_in_degrees=None, yslices=None,
                 xslices=None, output_yslices=None, output_xslices=None, slice_id=None,
                 roi_ids=None):
        super().__init__(height=height, width=width, depth=depth, y=y, x=x,
                         height_in_degrees=height_in_degrees,
                         width_in_degrees=width_in_degrees)
        self.yslices = yslices
        self.xslices = xslices
        self.output_yslices = output_yslices
        self.output_xslices = output_xslices
        self.slice_id = slice_id
        self.roi_ids = roi_ids

    @property
    def roi_id(self):
        """ ROI this field originates from (the first one if joined)."""
        return self.roi_ids[0] if self.roi_ids else None

    @property
    def subfields(self):
        """ (yslice, xslice, output_yslice, output_xslice) tuples, one per subfield."""
        return list(zip(self.yslices, self.xslices, self.output_yslices,
                        self.output_xslices))

    @property
    def has_contiguous_subfields(self):
        return len(self.yslices) > 1

    @property
    def roi_mask(self):
        """ height x width mask with the ROI id of each pixel (-1 if none)."""
        mask = np.full([self.height, self.width], -1, dtype=np.int8)
        for roi_id, (_, _, output_yslice, output_xslice) in zip(self.roi_ids,
                                                                 self.subfields):
            mask[output_yslice, output_xslice] = roi_id
        return mask

    def _type_of_contiguity(self, field2):
        """ Where field2 is with respect to this field.

        Fields touch along y if they have the same width (in pixels and degrees) and x
        center and their y centers are half their heights apart (same for x). Positions
        are in degrees.

        Returns:
            A Position constant.
        """
        if (self.width == field2.width and
                np.isclose(self.width_in_degrees, field2.width_in_degrees) and
                np.isclose(self.x, field2.x)):
            distance = (self.height_in_degrees + field2.height_in_degrees) / 2
            if np.isclose(self.y, field2.y + distance):
                return Position.ABOVE
            if np.isclose(field2.y, self.y + distance):
                return Position.BELOW

        if (self.height == field2.height and
                np.isclose(self.height_in_degrees, field2.height_in_degrees) and
                np.isclose(self.y, field2.y)):
            distance = (self.width_in_degrees + field2.width_in_degrees) / 2
            if np.isclose(self.x, field2.x + distance):
                return Position.LEFT
            if np.isclose(field2.x, self.x + distance):
                return Position.RIGHT

        return Position.NONCONTIGUOUS

    def is_contiguous_to(self, field2):
        return self._type_of_contiguity(field2) != Position.NONCONTIGUOUS

    def join_with(self, field2):
        """ Absorb field2 into this field. field2 is not modified.

        The field on top (or to the left) keeps its paste windows; those of the other one
        are shifted by its height (or width). Cut windows and roi ids of field2 are
        appended to the ones in this field.

        Raises:
            ValueError: If fields are not contiguous.
        """
        position = self._type_of_contiguity(field2)
        if position == Position.NONCONTIGUOUS:
            raise ValueError('Cannot join non-contiguous fields')
        field2_first = position in [Position.ABOVE, Position.LEFT]

        if position in [Position.ABOVE, Position.BELOW]:
            offset1, offset2 = (field2.height, 0) if field2_first else (0, self.height)
            self.y = (field2.y + self.height_in_degrees / 2 if field2_first else
                      self.y + field2.height_in_degrees / 2)
            self.height += field2.height
            self.height_in_degrees += field2.height_in_degrees
            self.output_yslices = ([_shift(s, offset1) for s in self.output_yslices] +
                                   [_shift(s, offset2) for s in field2.output_yslices])
            self.output_xslices = self.output_xslices + field2.output_xslices
        else:
            offset1, offset2 = (field2.width, 0) if field2_first else (0, self.width)
            self.x = (field2.x + self.width_in_degrees / 2 if field2_first else
                      self.x + field2.width_in_degrees / 2)
            self.width += field2.width
            self.width_in_degrees += field2.width_in_degrees
            self.output_xslices = ([_shift(s, offset1) for s in self.output_xslices] +
                                   [_shift(s, offset2) for s in field2.output_xslices])
            self.output_yslices = self.output_yslices + field2.output_yslices

        self.yslices = self.yslices + field2.yslices
        self.xslices = self.xslices + field2.xslices
        self.roi_ids = self.roi_ids + field2.roi_ids


def _shift(slice_, offset):
    return slice(slice_.start + offset, slice_.stop + offset)


class Position:
    NONCONTIGUOUS = 0
    ABOVE = 1
    BELOW = 2
    LEFT = 3
    RIGHT = 4
