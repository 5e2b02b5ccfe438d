"""
tagscope - build ctags/cscope/gtags databases for a source tree.

Discovers source files, classifies them by extension or content, and
drives the installed indexing backends with a sorted, root-relative
file list.
"""

__version__ = "0.3.0"
