"""
Setup script for PitStop Server CLI.

This script configures the package for installation via pip.
Supports both development and production installations.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

# Read requirements
requirements = (this_directory / "requirements.txt").read_text(encoding='utf-8').splitlines()

setup(
    name="pitstop-server-cli",
    version="1.0.0",
    description="Python wrapper that configures and runs the Enfocus PitStop Server command line",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="PitStop Server CLI Contributors",
    author_email="",
    packages=find_packages(include=["pitstop_server", "pitstop_server.*"]),
    install_requires=[line for line in requirements if line and not line.startswith("#")],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pitstop-server=pitstop_server.cli:main",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Printing",
        "Topic :: Utilities",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: MacOS",
        "Environment :: Console",
    ],
    keywords="pdf preflight pitstop enfocus variable-set action-list cli",
    license="MIT",
    include_package_data=True,
    zip_safe=False,
)
