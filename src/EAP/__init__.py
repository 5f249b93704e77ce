"""
Excel Analytics Platform.

Upload spreadsheets, parse them into sheets, persist per-sheet summaries and
build charts, with every row and object scoped to the signed-in user.
"""

__version__ = "0.1.0"
