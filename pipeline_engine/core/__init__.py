# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for the pipeline engine.

This package contains:
- config: Configuration management
- dependencies: Dependency injection
- errors: Custom exceptions
- logging: Structured logging
"""

from pipeline_engine.core.config import get_config, Config
from pipeline_engine.core.errors import PipelineEngineError, NotFoundError, ValidationError
from pipeline_engine.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "PipelineEngineError",
    "NotFoundError",
    "ValidationError",
    "get_logger",
]
