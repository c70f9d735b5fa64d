from setuptools import setup, find_packages
from pathlib import Path
import sys

# Check Python version requirement
if sys.version_info < (3, 9):
    raise RuntimeError("FtpPipe requires Python 3.9 or newer")

setup(
    name="FtpPipe",
    version="1.0.0",
    author="Andrew Hernandez",
    author_email="andromedeyz@hotmail.com",
    description="An async FTP client with a pipelined command queue and passive-mode data transfers.",
    long_description=(
        open("README.md", "r", encoding="utf-8").read()
        if Path("README.md").exists()
        else "FtpPipe talks FTP over a single asyncio control connection. Fire off as many operations as you like at once: commands are queued and sent strictly in order, every transfer gets its own passive data connection, and each result arrives exactly once."
    ),
    long_description_content_type="text/markdown",
    url="http://github.com/ApaxPhoenix/FtpPipe",
    project_urls={
        "Bug Tracker": "http://github.com/ApaxPhoenix/FtpPipe/issues",
        "Source Code": "http://github.com/ApaxPhoenix/FtpPipe",
    },
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Framework :: AsyncIO",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: File Transfer Protocol (FTP)",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Networking",
    ],
    python_requires=">=3.9",
    install_requires=[
        "aioftp>=0.21.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    keywords="ftp, async, asyncio, file transfer, networking, client, pipelining",
    license="MIT",
    zip_safe=False,
)
