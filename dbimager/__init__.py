"""
dbimager

Copies template SQL Server databases into a temporary location so each test
run gets an isolated instance, and keeps a file-backed registry of active
connection strings.
"""

__version__ = "1.0.0"
