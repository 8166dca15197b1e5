"""
Task notification backend package.

Task CRUD over a pluggable store plus the scheduled overdue-task sweep that
emails owners about tasks past their due date. The FastAPI app lives in
``tasknotify.main``; the one-shot sweep command in ``tasknotify.cli``.
"""

__version__ = "0.2.0"
