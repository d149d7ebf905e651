"""healthfold: Convert health export archives to CSV.

Reads the export.xml member of an Apple Health style export zip and writes
its Record entries as CSV rows.
"""

__version__ = "0.3.0"
