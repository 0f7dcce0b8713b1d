"""
dockturn

Automated container update agent. Detects running containers whose image
changed, then stops and recreates them in dependency order.
"""

__version__ = "1.0.0"
