"""
Engines: SQL execution and data browsing on top of core.pool.
"""
