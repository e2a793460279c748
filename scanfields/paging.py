""" Translation of (slice, channel, frame) combinations to tiff pages and reading of
those pages across all files of a scan.

Each tiff page holds a single depth/channel/frame combination. Channels change first,
slices/depths change second and timeframes change last. Pages are numbered from 1 across
all files of the scan.
Example:
    For two channels, three slices, two frames.
        Page:       1   2   3   4   5   6   7   8   9   10  11  12
        Channel:    1   2   1   2   1   2   1   2   1   2   1   2
        Slice:      1   1   2   2   3   3   1   1   2   2   3   3
        Frame:      1   1   1   1   1   1   2   2   2   2   2   2
"""
import bisect
import itertools
import logging

from tifffile import TiffFile
import numpy as np

from .exceptions import InternalAddressingError

logger = logging.getLogger(__name__)


def compute_page_number(slice_id, channel, frame, num_channels, num_scanning_depths):
    """ Page (1-based) holding the given slice, channel and frame (all 1-based)."""
    slice_step = num_channels
    frame_step = num_channels * num_scanning_depths
    return (frame - 1) * frame_step + (slice_id - 1) * slice_step + channel


def compute_pages(slice_list, channel_list, frame_list, num_channels,
                  num_scanning_depths):
    """ Pages to read for all slice, channel, frame combinations in the lists.

    Frames vary slowest and channels fastest (the order in which they are saved), no
    matter the order of the lists.

    Returns:
        A list of 1-based page numbers of length len(frame_list) * len(slice_list) *
            len(channel_list).
    """
    return [compute_page_number(slice_id, channel, frame, num_channels,
                                num_scanning_depths)
            for frame, slice_id, channel in itertools.product(frame_list, slice_list,
                                                               channel_list)]


def _crop_size(index, dim_size):
    if isinstance(index, slice):
        return len(range(*index.indices(dim_size)))
    return len(index)


class PagedReader:
    """ Lazy access to the pages of all tiff files in a scan.

    Each file is opened the first time one of its pages (or the header, for the first
    file) is needed and kept open until close() is called.

    Attributes:
        filenames: List of strings. Tiff filenames (in page order).
        dtype: Data type of the output arrays.
    """
    def __init__(self, filenames, dtype):
        self.filenames = filenames
        self.dtype = dtype
        self._tiff_files = [None] * len(filenames)
        self._pages_per_file = None

    def get_tiff_file(self, file_index):
        """ TiffFile of the given file (0-based), opened if needed."""
        if self._tiff_files[file_index] is None:
            self._tiff_files[file_index] = TiffFile(self.filenames[file_index])
        return self._tiff_files[file_index]

    @property
    def tiff_files(self):
        return [self.get_tiff_file(i) for i in range(len(self.filenames))]

    @tiff_files.deleter
    def tiff_files(self):
        for tiff_file in self._tiff_files:
            if tiff_file is not None:
                tiff_file.close()
        self._tiff_files = [None] * len(self.filenames)

    @property
    def num_open_files(self):
        return sum(tiff_file is not None for tiff_file in self._tiff_files)

    @property
    def is_open(self):
        return self.num_open_files > 0

    def close(self):
        """ Close all opened tiff files. Safe to call more than once."""
        del self.tiff_files

    @property
    def header(self):
        """ ScanImage header: description and software tags of the first page."""
        first_page = self.get_tiff_file(0).pages[0]
        return '{}\n{}'.format(first_page.description, first_page.software)

    @property
    def scanimage_metadata(self):
        return self.get_tiff_file(0).scanimage_metadata

    @property
    def pages_per_file(self):
        if self._pages_per_file is None:
            self._pages_per_file = [len(tiff_file.pages) for tiff_file in self.tiff_files]
        return self._pages_per_file

    @property
    def num_pages(self):
        return sum(self.pages_per_file)

    @property
    def page_height(self):
        return self.get_tiff_file(0).pages[0].imagelength

    @property
    def page_width(self):
        return self.get_tiff_file(0).pages[0].imagewidth

    def locate_page(self, page):
        """ Find the file that holds a page.

        Args:
            page: Integer. 1-based page number.

        Returns:
            A (file_index, page_in_file) tuple. Both 0-based.

        Raises:
            InternalAddressingError: If the page is not in any file.
        """
        start_pages = np.cumsum([0] + self.pages_per_file) # 0-based first page per file
        if not 1 <= page <= start_pages[-1]:
            error_msg = ('page {} is outside the {} pages of the scan. Page computation '
                         'is broken'.format(page, start_pages[-1]))
            raise InternalAddressingError(error_msg)

        file_index = bisect.bisect_right(start_pages, page - 1) - 1
        return file_index, int(page - 1 - start_pages[file_index])

    def read_pages(self, slice_list, channel_list, frame_list, num_channels,
                   num_scanning_depths, yslice=slice(None), xslice=slice(None)):
        """ Reads the tiff pages with the content of each slice, channel, frame
        combination and crops them in the y, x dimension.

        Args:
            slice_list: List of integers. Slices to read (1-based).
            channel_list: List of integers. Channels to read (1-based).
            frame_list: List of integers. Frames to read (1-based).
            num_channels: Integer. Number of channels in the scan.
            num_scanning_depths: Integer. Number of slices in the scan.
            yslice: Slice or list of 0-based integers. How to crop the pages in y.
            xslice: Slice or list of 0-based integers. How to crop the pages in x.

        Returns:
            A 5-D array (num_slices, output_height, output_width, num_channels, num_frames).
                Required pages reshaped to have slice, channel and frame as different
                dimensions. Channel, slice and frame order received in the input lists are
                respected; for instance, if slice_list = [2, 1, 3, 1], then the first
                dimension will have four slices: [2, 1, 3, 1].
        """
        pages_to_read = compute_pages(slice_list, channel_list, frame_list, num_channels,
                                      num_scanning_depths)

        out_height = _crop_size(yslice, self.page_height)
        out_width = _crop_size(xslice, self.page_width)

        # Group pages per file (each page lives in exactly one file)
        pages_in_file = {}
        for global_index, page in enumerate(pages_to_read):
            file_index, page_in_file = self.locate_page(page)
            pages_in_file.setdefault(file_index, []).append((global_index, page_in_file))

        logger.debug('Reading %d pages from %d files', len(pages_to_read),
                     len(pages_in_file))

        pages = np.empty([len(pages_to_read), out_height, out_width], dtype=self.dtype)
        for file_index, indices in sorted(pages_in_file.items()):
            tiff_file = self.get_tiff_file(file_index)
            for global_index, page_in_file in indices:
                page = tiff_file.pages[page_in_file].asarray()
                pages[global_index] = page[yslice][:, xslice]

        # Reshape the pages into (slices, y, x, channels, frames)
        new_shape = [len(frame_list), len(slice_list), len(channel_list), out_height,
                     out_width]
        pages = pages.reshape(new_shape).transpose([1, 3, 4, 2, 0])

        return pages
