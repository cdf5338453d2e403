"""Fund holdings tracker with periodic valuation synchronization."""

__version__ = "0.1.0"
