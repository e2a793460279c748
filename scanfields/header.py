""" Facts about a scan extracted from the ScanImage header of its tiff files.

The header (free text with one 'SI.property = value' pair per line) is parsed once when
the scan is opened; scans and field builders then read typed values from the resulting
HeaderFacts. Properties missing from the header are set to None.
"""
from collections import namedtuple
import re

from tifffile.tifffile import matlabstr2py
import numpy as np


HeaderFacts = namedtuple('HeaderFacts', [
    'version',                 # ScanImage version, e.g., '2016b'
    'is_multiROI',             # whether mroiEnable is set
    'num_channels',            # number of saved channels
    'scanning_depths',         # list of requested depths (microns)
    'uses_fast_z',             # whether hFastZ.enable is set
    'num_requested_frames',    # requested volumes (fastZ) or frames per slice
    'is_bidirectional',
    'scanner_frequency',       # Hz
    'line_period',             # seconds per line (for non-resonant scanners)
    'fly_back_seconds',        # time to move from one depth to the next
    'fly_to_seconds',          # time to move from one scanfield to the next
    'fps',
    'spatial_fill_fraction',
    'temporal_fill_fraction',
    'scanner_type',
    'objective_resolution',    # microns per degree of scan angle
    'motor_position_at_zero',  # [x, y, z] in microns
    'initial_secondary_z',
    'zoom',
    'imaging_fov',             # corners of the FOV in microns (uniform scans)
    'y_angle_scale_factor',    # scan angle multiplier in y (slow axis)
    'x_angle_scale_factor',    # scan angle multiplier in x (fast axis)
])


def _search(pattern, header):
    match = re.search(pattern, header)
    return match.group(1) if match else None


def _as_float(value):
    return None if value is None else float(value)


def _as_list(value):
    """ Parse a MATLAB literal forcing a (flat) list. """
    if value is None:
        return None
    parsed = matlabstr2py(value)
    if not isinstance(parsed, list):
        return [parsed]
    return [item[0] if isinstance(item, list) and len(item) == 1 else item
            for item in parsed]


def parse_header(header):
    """ Extract all facts needed to index the scan from the ScanImage header.

    Args:
        header: String. Description and software tags of the first tiff page.

    Returns:
        A HeaderFacts namedtuple.
    """
    version = _search(r"SI.?\.VERSION_MAJOR = '?([^\s']*)'?", header)

    is_multiROI = _search(r'hRoiManager\.mroiEnable = (.)', header)
    is_multiROI = (is_multiROI == '1') if is_multiROI is not None else False

    channels = _as_list(_search(r'hChannels\.channelSave = (.*)', header))
    num_channels = len(channels) if channels is not None else None

    uses_fast_z = _search(r'hFastZ\.enable = (.*)', header) in ['true', '1']
    if uses_fast_z:
        num_frames = _search(r'hFastZ\.numVolumes = (.*)', header)
    else:
        num_frames = _search(r'hStackManager\.framesPerSlice = (.*)', header)
    if num_frames is not None:
        num_frames = int(1e9 if num_frames == 'Inf' else float(num_frames))

    is_bidirectional = _search(r'hScan2D\.bidirectional = (.*)', header) == 'true'

    scanner_type = _search(r"hScan2D\.scannerType = '(.*)'", header)

    motor_position = _search(r'hMotors\.motorPosition = (.*)', header)
    if motor_position is not None:
        motor_position = _as_list(motor_position)
        motor_position_at_zero = motor_position[:3]
        initial_secondary_z = motor_position[3] if len(motor_position) > 3 else None
    else:
        motor_position_at_zero = initial_secondary_z = None

    imaging_fov = _search(r'hRoiManager\.imagingFovUm = (.*)', header)
    imaging_fov = matlabstr2py(imaging_fov) if imaging_fov is not None else None

    # scan angles are scaled by these factors, shrinking the angle range
    angle_multiplier = r'hRoiManager\.scanAngleMultiplier{} = (.*)'
    y_angle_scale_factor = _as_float(_search(angle_multiplier.format('Slow'), header))
    x_angle_scale_factor = _as_float(_search(angle_multiplier.format('Fast'), header))

    return HeaderFacts(
        version=version,
        is_multiROI=is_multiROI,
        num_channels=num_channels,
        scanning_depths=_as_list(_search(r'hStackManager\.zs = (.*)', header)),
        uses_fast_z=uses_fast_z,
        num_requested_frames=num_frames,
        is_bidirectional=is_bidirectional,
        scanner_frequency=_as_float(_search(r'hScan2D\.scannerFrequency = (.*)', header)),
        line_period=_as_float(_search(r'hRoiManager\.linePeriod = (.*)', header)),
        fly_back_seconds=_as_float(_search(r'hScan2D\.flybackTimePerFrame = (.*)', header)),
        fly_to_seconds=_as_float(_search(r'hScan2D\.flytoTimePerScanfield = (.*)', header)),
        fps=_as_float(_search(r'hRoiManager\.scanVolumeRate = (.*)', header)),
        spatial_fill_fraction=_as_float(_search(r'hScan2D\.fillFractionSpatial = (.*)',
                                                header)),
        temporal_fill_fraction=_as_float(_search(r'hScan2D\.fillFractionTemporal = (.*)',
                                                 header)),
        scanner_type=scanner_type,
        objective_resolution=_as_float(_search(r'objectiveResolution = (.*)', header)),
        motor_position_at_zero=motor_position_at_zero,
        initial_secondary_z=initial_secondary_z,
        zoom=_as_float(_search(r'hRoiManager\.scanZoomFactor = (.*)', header)),
        imaging_fov=imaging_fov,
        y_angle_scale_factor=y_angle_scale_factor,
        x_angle_scale_factor=x_angle_scale_factor,
    )


def seconds_per_line(facts):
    """ Seconds it takes to scan one line (half a mirror period if bidirectional). """
    if facts.scanner_frequency is None or np.isnan(facts.scanner_frequency):
        return facts.line_period
    scanner_period = 1 / facts.scanner_frequency # secs for mirror to return to initial position
    return scanner_period / 2 if facts.is_bidirectional else scanner_period


def seconds_to_lines(facts, seconds):
    """ Compute how many lines would be scanned in the given amount of seconds."""
    num_lines = int(np.ceil(seconds / seconds_per_line(facts)))
    if facts.is_bidirectional:
        # scanning starts at one end of the image so num_lines needs to be even
        num_lines += (num_lines % 2)

    return num_lines
