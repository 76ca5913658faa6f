#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Math Capture - Setup Configuration
Enables optional dependency groups for camera capture.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Read requirements
requirements_path = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_path.exists():
    requirements = [
        line.strip()
        for line in requirements_path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]

# Optional dependencies for camera capture
camera_requirements = [
    "opencv-python-headless>=4.8.0",
]

setup(
    name="math-capture",
    version="1.0.0",
    description="MathPix OCR for handwritten, photographed, typed and PDF mathematics",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Math Capture Team",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["quick_capture"],
    install_requires=requirements,
    extras_require={
        # Camera mode
        "camera": camera_requirements,

        # Development dependencies
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
        ],

        # All optional features
        "all": camera_requirements,
    },
    entry_points={
        "console_scripts": [
            "mathcapture=quick_capture:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="ocr mathpix latex mathml handwriting pdf",
)
