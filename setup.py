"""Setup script for swarmctl CLI"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="swarmctl",
    version="0.1.0",
    author="swarmctl maintainers",
    author_email="admin@localhost.local",
    description="A read-only CLI for listing and inspecting Docker Swarm resources",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: System :: Systems Administration",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "click>=8.2",
        "requests>=2.28",
        "pyyaml>=6.0",
        "tabulate>=0.9",
        "python-dateutil>=2.8",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "swarmctl=swarmctl.cli:cli",
        ],
    },
)
