#!/usr/bin/env python3
"""
Setup script for expecthttp.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="expecthttp",
    version="1.0.0",
    description="Expressive, fluent testing of HTTP endpoints and handlers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="expecthttp Contributors",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "docs"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "httpx>=0.24.0",
        "pytest>=7.4.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "pytest11": [
            "expecthttp = expecthttp.fixtures",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Framework :: Pytest",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Software Development :: Testing",
    ],
    keywords="testing http asgi wsgi httpx pytest",
)
