"""
observer-core: API key pool management and change notifications for the
website observer.
"""

__version__ = "0.1.0"
