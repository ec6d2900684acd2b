"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/rustprobe/rustprobe"
KEYWORDS = "rust rustc cargo toolchain target cfg rustflags cross-compilation build"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        keywords=KEYWORDS,
        url=URL,
        include_package_data=True)
