"""nippo: dictated daily-report answers with streaming transcript correction."""

__version__ = "0.1.0"
