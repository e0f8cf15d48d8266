#!/usr/bin/env python3
"""
Setup configuration for Channel-Downloader
Keeps local folders in sync with YouTube channels and playlists
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "yt-dlp>=2023.12.30",
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
]

setup(
    name="channel-downloader",
    version="1.0.0",
    author="Verryx-02",
    description="Synchronize YouTube channels and playlists into local folders with .m3u playlists",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/verryx-02/channel-downloader",
    packages=find_packages(include=["channel_downloader", "channel_downloader.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Video",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    python_requires=">=3.8",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "channel-dl=channel_downloader.main:cli",
        ],
    },
    include_package_data=True,
    package_data={
        "channel_downloader": ["config/*.yaml"],
    },
    keywords="youtube channel playlist download sync m3u sponsorblock cli",
    project_urls={
        "Bug Reports": "https://github.com/verryx-02/channel-downloader/issues",
        "Source": "https://github.com/verryx-02/channel-downloader",
    },
)
