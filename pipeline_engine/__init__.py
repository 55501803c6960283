# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Pipeline Engine

Composes marketplace workflows into multi-step pipelines and executes them.
"""

__version__ = "0.1.0"
