# memdav/api/__init__.py
"""
Request handling in front of the WebDAV engine.
"""
