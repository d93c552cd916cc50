#!/usr/bin/env python3
"""
ADAPTSR Setup Script

Install with: pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name="adaptsr",
    version="0.1.0",
    description="Adaptive kernel-weight training data generation for image super-resolution",
    author="ADAPTSR Contributors",
    license="Apache-2.0",
    packages=find_packages(exclude=["tests", "tests.*", "experiments"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "scikit-image>=0.19.0",
        "tqdm>=4.60.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "adaptsr=adaptsr.core.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Image Processing",
    ],
)
