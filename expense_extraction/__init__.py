"""
Expense Extraction - Source Package

Turns receipt OCR text, structured OCR documents and spoken expense notes
into classified expense records.

DESIGN PRINCIPLES:
1. Local rules first, remote model only for what is still unresolved
2. External failures degrade results, they never fail a request
3. No silent corrections: mismatches are reported, not fixed
4. Every significant step is auditable
5. Storage and external services are swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Extraction Team"
