# memdav/server/__init__.py
"""
Network listeners and the supervisor that runs them.
"""
