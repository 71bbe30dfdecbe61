"""
Enrichment Engine - multi-tenant provider resolution and merge engine
"""
from setuptools import find_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="enrichment-engine",
    version="0.1.0",
    description="Multi-tenant data-enrichment provider resolution, merge strategies and cache keys",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["core", "core.*", "d0_providers", "d0_providers.*", "d1_cache", "d1_cache.*", "d2_enrichment", "d2_enrichment.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
        ],
    },
    include_package_data=True,
    package_data={
        "": ["*.yaml", "*.yml"],
    },
)
