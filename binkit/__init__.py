"""
binkit — locate, unwrap, download and run external binaries.
"""

__version__ = "0.1.0"
