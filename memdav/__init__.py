"""
memdav - WebDAV server with access policy, write suppression and
multi-transport listeners.
"""

__version__ = "1.0.0"
