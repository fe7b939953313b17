"""
Launch file for the lidar cloud node.

Usage:
    ros2 launch perception_lidar lidar_cloud.launch.py
    ros2 launch perception_lidar lidar_cloud.launch.py params_file:=/path/to/params.yaml
    ros2 launch perception_lidar lidar_cloud.launch.py namespace:=front log_level:=debug
"""

import os
from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node


def generate_launch_description():
    pkg_dir = get_package_share_directory("perception_lidar")
    default_params = os.path.join(pkg_dir, "config", "lidar_cloud_params.yaml")

    # ── Launch arguments ─────────────────────────────────────────────────
    args = [
        DeclareLaunchArgument(
            "params_file",
            default_value=default_params,
            description="Node parameters (scan_dir, lut_path, destagger, ...)",
        ),
        DeclareLaunchArgument(
            "namespace",
            default_value="",
            description="Namespace for one sensor when several run side by side",
        ),
        DeclareLaunchArgument(
            "log_level",
            default_value="info",
            description="Logger level; 'warn' hides per-scan messages",
        ),
    ]

    cloud_node = Node(
        package="perception_lidar",
        executable="lidar_cloud_node",
        name="lidar_cloud_node",
        namespace=LaunchConfiguration("namespace"),
        output="screen",
        parameters=[LaunchConfiguration("params_file")],
        arguments=["--ros-args", "--log-level", LaunchConfiguration("log_level")],
    )

    return LaunchDescription(args + [cloud_node])
