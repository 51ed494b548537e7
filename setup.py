"""
Setup file.
"""

import os

from setuptools import find_packages, setup

NAME = "zeromq-src"
VERSION = "0.3.0"
URL = "https://github.com/zeromq/zeromq-src"
KEYWORDS = "zeromq libzmq zmq build native library cmake autotools compiler toolchain"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        name=NAME,
        version=VERSION,
        description="Build the vendored libzmq from source and report link metadata",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.8",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "psutil",
            "tqdm",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "zeromq-src=zeromq_src.cli:main",
            ],
        },
        package_data={"zeromq_src": ["vendor/**/*"]},
        include_package_data=True)
