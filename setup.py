#!/usr/bin/env python3

"""Setup script for the molecular structure preparation package."""

from setuptools import setup, find_packages

setup(
    name="molprep",
    version="0.1.0",
    description="Add hydrogens to macromolecular structures from a topology database",
    author="Adam",
    author_email="adam@example.com",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"molprep": ["data/*.dat"]},
    include_package_data=True,
    install_requires=[
        "numpy>=1.20.0",
        "biopython>=1.79",
        "tqdm>=4.62.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "molprep=molprep.presentation.cli.add_hydrogens:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Chemistry",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
