# setup.py
from setuptools import setup, find_packages

setup(
    name="virgo",
    version="0.1.0",
    description="Bulk HTTP fetcher with a bounded pool of concurrent workers",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "aiohttp>=3.9",
        "multidict>=6.0",
        "yarl>=1.9",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "virgo=virgo.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
