#!/usr/bin/env python3
"""
PinKeeper Setup Script
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme = Path(__file__).parent / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""

# Read requirements
requirements = Path(__file__).parent / "pinkeeper_requirements.txt"
install_requires = []
if requirements.exists():
    install_requires = requirements.read_text().strip().split('\n')
    install_requires = [r.strip() for r in install_requires if r.strip() and not r.startswith('#')]

setup(
    name="pinkeeper",
    version="1.0.0",
    description="Keeps an IPFS node pinned to the object published through DNSLink",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="PinKeeper Developers",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*", "docs"]),
    python_requires=">=3.10",
    install_requires=install_requires,
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
        ],
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "black>=24.0.0",
            "flake8>=7.0.0",
            "mypy>=1.8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pinkeeper=pinkeeper.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Filesystems",
        "Topic :: Internet :: Name Service (DNS)",
    ],
    keywords="ipfs pinning dnslink reconciliation",
)
