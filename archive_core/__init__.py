"""
archive-core: segment processing for an oral-history video archive.

Segments are transcoded, aligned to their transcripts, captioned and mined
for named entities; finished sessions are published for review.
"""

__version__ = "0.1.0"
