"""
VideoCompress setuptools build script.

Installs the `vc` command.

Usage:
    # Development (editable, links to source):
    pip install -e ".[test]"

    # Distribution:
    pip install .
"""

from setuptools import setup

APP_NAME = "VideoCompress"

setup(
    name=APP_NAME,
    version="1.2.0",
    description="Batch HEVC video compression with checkpoint/resume",
    packages=[
        "vcompress",
        "vcompress.core",
        "vcompress.console",
    ],
    py_modules=["main"],
    install_requires=[
        "tqdm>=4.64.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "vc=main:main",
        ],
    },
)
