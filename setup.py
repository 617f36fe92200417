"""
envcache - Encrypted Pluggable Cache
Envelope-encrypted key/value cache over filesystem, relational,
Memcached and Redis backends

Setup script for package installation

Version History:
- 1.0.0: Envelope encryption, TTL expiry, FIFO eviction, four stores
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="envcache",
    version="1.0.0",
    author="Lucas Ma",
    author_email="lucas_ma2025@126.com",
    description="Envelope-encrypted pluggable key/value cache with TTL and FIFO eviction",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["envcache", "envcache.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
        "Topic :: Security :: Cryptography",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "isort>=5.12.0",
        ],
        "postgresql": [
            "psycopg2-binary>=2.9.0",
        ],
        "mysql": [
            "pymysql>=1.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "envcache=envcache.cli:main",
        ],
    },
)
