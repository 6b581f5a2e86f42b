"""
Terminal reader core package.

The `reading` subpackage holds the reading-session state machine: a
persistent progress store, a session controller that owns navigation for one
open document, the document source and renderer adapters it drives, and the
line-oriented shell that maps user commands onto it.
"""
