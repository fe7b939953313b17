"""
LiDAR Cloud Node
=================
Turns recorded lidar scans into organized PointCloud2 messages.

Each timer tick reads the next scan (.npz) from a directory, projects it
through the sensor lookup table, optionally destaggers the rows and runs the
destagger self-test, then publishes the result.

Pipeline:
    scan_dir/*.npz (LidarScan) ──┐
                                  ├──→ [Assemble] → /lidar/points (PointCloud2)
    lut_path (XYZLut + shifts) ──┘         └──→ [Destagger] → /lidar/points_destaggered

Dependencies:
    - NumPy (projection and row rotation)
    - sensor_msgs (PointCloud2 packing)
"""

import traceback
from pathlib import Path

import rclpy
from rclpy.node import Node
from sensor_msgs.msg import PointCloud2, PointField
from sensor_msgs_py import point_cloud2
from std_msgs.msg import Header

import numpy as np

from .assembler import reference_timestamp, scan_to_cloud
from .point import POINT_FIELDS, Cloud
from .scan import load_lut_npz, load_scan_npz
from .validation import validate_destagger


CLOUD_FIELD_DATATYPES = {
    np.dtype(np.uint16): PointField.UINT16,
    np.dtype(np.uint32): PointField.UINT32,
    np.dtype(np.float32): PointField.FLOAT32,
}


def cloud_fields() -> list:
    return [
        PointField(name=name, offset=offset, datatype=CLOUD_FIELD_DATATYPES[dtype], count=1)
        for name, offset, dtype in POINT_FIELDS
    ]


def cloud_to_cloud_msg(cloud: Cloud, stamp_ns: int, frame: str) -> PointCloud2:
    """Pack an organized cloud (height = rows, width = columns)."""
    header = Header()
    header.stamp.sec = int(stamp_ns // 1_000_000_000)
    header.stamp.nanosec = int(stamp_ns % 1_000_000_000)
    header.frame_id = frame

    msg = point_cloud2.create_cloud(header, cloud_fields(), cloud.points.ravel())

    # create_cloud emits a flat cloud; restore the beam x firing layout
    msg.height = cloud.height
    msg.width = cloud.width
    msg.row_step = msg.point_step * cloud.width
    return msg


class LidarCloudNode(Node):
    """
    ROS2 node that assembles and publishes lidar point clouds.

    Parameters (ROS2 declared):
        scan_dir (str): Directory of recorded scans (*.npz), replayed in name order.
        lut_path (str): Calibration file with direction/offset grids and row shifts.
        output_topic (str): Staggered cloud topic.
        destaggered_topic (str): Destaggered cloud topic.
        frame_id (str): TF frame for the published clouds.
        return_index (int): 0 = first return, 1 = second return.
        ring_bits (int): Storage width of the ring field (8 or 16).
        destagger (bool): Also publish the destaggered cloud.
        self_test (bool): Run the destagger validator on every destaggered cloud.
        workers (int): Threads used to fill rows.
        loop (bool): Restart from the first scan after the last one.
        update_rate_hz (float): Scan replay rate.
    """

    def __init__(self):
        super().__init__("lidar_cloud_node")

        # ── Parameters ───────────────────────────────────────────────────
        self.declare_parameter("scan_dir", "scans")
        self.declare_parameter("lut_path", "lut.npz")
        self.declare_parameter("output_topic", "/lidar/points")
        self.declare_parameter("destaggered_topic", "/lidar/points_destaggered")
        self.declare_parameter("frame_id", "os_lidar")
        self.declare_parameter("return_index", 0)
        self.declare_parameter("ring_bits", 16)
        self.declare_parameter("destagger", True)
        self.declare_parameter("self_test", False)
        self.declare_parameter("workers", 1)
        self.declare_parameter("loop", True)
        self.declare_parameter("update_rate_hz", 10.0)

        scan_dir = Path(self.get_parameter("scan_dir").value)
        lut_path = self.get_parameter("lut_path").value
        output_topic = self.get_parameter("output_topic").value
        destaggered_topic = self.get_parameter("destaggered_topic").value
        self.frame_id: str = self.get_parameter("frame_id").value
        self.return_index: int = self.get_parameter("return_index").value
        self.ring_bits: int = self.get_parameter("ring_bits").value
        self.destagger: bool = self.get_parameter("destagger").value
        self.self_test: bool = self.get_parameter("self_test").value
        self.workers: int = self.get_parameter("workers").value
        self.loop: bool = self.get_parameter("loop").value
        update_hz: float = self.get_parameter("update_rate_hz").value

        if update_hz <= 0.0:
            self.get_logger().fatal(f"update_rate_hz must be positive, got {update_hz}")
            raise SystemExit(1)

        # ── Calibration ──────────────────────────────────────────────────
        try:
            self.lut, self.pixel_shift_by_row = load_lut_npz(lut_path)
        except FileNotFoundError:
            self.get_logger().fatal(f"Lookup table '{lut_path}' not found!")
            raise SystemExit(1)

        self.scan_files = sorted(scan_dir.glob("*.npz"))
        if not self.scan_files:
            self.get_logger().warn(f"No scans found in {scan_dir}")
        self.next_index = 0
        self.last_error = ""

        # ── Publishers ───────────────────────────────────────────────────
        self.cloud_pub = self.create_publisher(PointCloud2, output_topic, 10)
        self.destaggered_pub = self.create_publisher(PointCloud2, destaggered_topic, 10)

        # Reused between scans; the assembler resizes it only on size change
        self.cloud = Cloud(self.lut.width, self.lut.height)

        self.create_timer(1.0 / update_hz, self._process_scan)
        self.get_logger().info(
            f"LiDAR Cloud Node started | "
            f"Grid: {self.lut.height}x{self.lut.width} | "
            f"Scans: {len(self.scan_files)} | Output: {output_topic}"
        )

    # ── Scan source ──────────────────────────────────────────────────────
    def _next_scan_file(self):
        if self.next_index >= len(self.scan_files):
            if not self.loop or not self.scan_files:
                return None
            self.next_index = 0
        path = self.scan_files[self.next_index]
        self.next_index += 1
        return path

    # ── Main Processing ──────────────────────────────────────────────────
    def _process_scan(self) -> None:
        """Assemble, destagger and publish the next scan."""
        path = self._next_scan_file()
        if path is None:
            return

        try:
            scan = load_scan_npz(path)
            scan_ts = reference_timestamp(scan)

            cloud, destaggered = scan_to_cloud(
                scan,
                self.lut,
                scan_ts,
                self.return_index,
                cloud=self.cloud,
                pixel_shift_by_row=self.pixel_shift_by_row,
                destagger=self.destagger,
                ring_bits=self.ring_bits,
                workers=self.workers,
            )
            self.cloud_pub.publish(cloud_to_cloud_msg(cloud, scan_ts, self.frame_id))

            if destaggered is not None:
                if self.self_test:
                    violations = validate_destagger(destaggered)
                    if violations:
                        self.get_logger().warn(
                            f"{path.name}: {len(violations)} destagger violations",
                            throttle_duration_sec=2.0,
                        )
                self.destaggered_pub.publish(
                    cloud_to_cloud_msg(destaggered, scan_ts, self.frame_id)
                )

            self.get_logger().info(
                f"Published {cloud.size} points from {path.name}",
                throttle_duration_sec=2.0,
            )

        except Exception as e:
            self.get_logger().error(
                f"Scan processing failed for {path.name}: {e}",
                throttle_duration_sec=2.0,
            )
            # full trace once per distinct failure
            if str(e) != self.last_error:
                traceback.print_exc()
            self.last_error = str(e)


def main(args=None):
    rclpy.init(args=args)
    node = LidarCloudNode()

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == "__main__":
    main()
