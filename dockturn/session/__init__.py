"""
Session Module

Progress tracking and reporting for a single update run.
"""

from dockturn.session.progress import Progress
from dockturn.session.report import ContainerReport, Report, SessionState

__all__ = [
    'Progress',
    'ContainerReport',
    'Report',
    'SessionState',
]
