"""Setup script for nfsgaze."""

from setuptools import find_packages, setup

setup(
    name="nfsgaze",
    version="0.1.0",
    description="Per-operation NFS client statistics from /proc/self/mountstats",
    author="nfsgaze Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0",
        "pyyaml>=6.0",
        "click>=8.1",
        "prometheus-client>=0.17",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nfsgaze=nfsgaze.cli:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Filesystems",
        "Topic :: System :: Monitoring",
    ],
)
