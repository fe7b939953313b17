from .assembler import assemble, reference_timestamp, scan_to_cloud
from .channels import ChanField, get_or_fill_zero, suitable_return
from .destagger import destagger_image, normalize_shifts
from .errors import DimensionMismatch, LidarCloudError, UnsupportedChannel, UnsupportedRingWidth
from .point import POINT_DTYPE, Cloud
from .projection import cartesian
from .scan import LidarScan, XYZLut
from .validation import Violation, validate_destagger
