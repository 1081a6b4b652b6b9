"""
Setup configuration for cronctl package.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text() if (this_directory / "README.md").exists() else ""

setup(
    name="cronctl",
    version="0.1.0",
    description="List, schedule, run and delete cron events and test the cron dispatcher",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    py_modules=[
        "config",
        "models",
        "durations",
        "formatter",
    ],
    packages=find_packages(include=["cronctl", "cronctl.*"]),

    # Dependencies
    install_requires=[
        "requests>=2.31.0",
        "apscheduler>=3.10.0,<4.0",
        "sqlalchemy>=1.4",
        "python-dotenv>=1.0.0",
        "python-dateutil>=2.8.2",
        "tzdata",
    ],

    # Optional dependencies
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },

    # Python version requirement
    python_requires=">=3.9",

    # CLI entry points
    entry_points={
        "console_scripts": [
            "cronctl=cronctl.cli:main",
            "cronctl-config=config:main",
        ],
    },

    # Classification
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Topic :: Utilities",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    # Keywords
    keywords="cron scheduler events apscheduler cli",

    # Include package data
    include_package_data=True,
)
