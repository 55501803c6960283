# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
HTTP API routers.
"""

from . import pipelines, workflows

__all__ = ["pipelines", "workflows"]
