import os
from glob import glob
from setuptools import find_packages, setup

package_name = "perception_lidar"

setup(
    name=package_name,
    version="1.0.0",
    packages=find_packages(exclude=["test"]),
    data_files=[
        ("share/ament_index/resource_index/packages", ["resource/" + package_name]),
        ("share/" + package_name, ["package.xml"]),
        (os.path.join("share", package_name, "launch"), glob("launch/*.py")),
        (os.path.join("share", package_name, "config"), glob("config/*.yaml")),
    ],
    install_requires=["setuptools", "numpy"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    maintainer="Your Name",
    maintainer_email="your@email.com",
    description="LiDAR scan to organized point cloud assembly with row destaggering.",
    license="MIT",
    tests_require=["pytest"],
    entry_points={
        "console_scripts": [
            "lidar_cloud_node = perception_lidar.lidar_cloud_node:main",
        ],
    },
)
