"""Gherkin-like report rendering.

Reporters render the declared node tree once per output, with optional
colors, durations and source locations. Tables attached to steps are
formatted by `format_table`.
"""

from .reporter import FeatureReporter, Reporter, SpecReporter
from .table import format_table

__all__ = (
    'FeatureReporter',
    'Reporter',
    'SpecReporter',
    'format_table',
)
