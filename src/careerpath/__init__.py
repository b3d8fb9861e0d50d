"""CareerPath: journal analysis, career predictions and a streaming AI mentor."""

__version__ = "0.1.0"
