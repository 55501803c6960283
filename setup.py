# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the Workflow Pipeline Engine
"""

from setuptools import setup, find_packages

setup(
    name="workflow-pipeline-engine",
    version="0.1.0",
    description="Composes catalog workflows into priced, executable pipelines",
    author="Jason Cafarelli",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100.0",
        "pydantic>=2.0.0",
        "httpx>=0.24.0",
        "pyyaml>=6.0",
        "aiofiles>=23.0.0",
        "uvicorn>=0.23.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "pipeline-engine=pipeline_engine.main:run",
        ]
    },
)
