"""
hookrun: run prolog/epilog style hook scripts under process-group supervision.
"""

__version__ = "0.1.0"
