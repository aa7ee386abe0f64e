"""Migrunner - parallel DbMigrator runner.

Launches every discovered migrator as a child process, shows their latest
progress line in a live table and makes sure no child outlives the run.
"""

__version__ = "0.1.0"
