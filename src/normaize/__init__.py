"""
Normaize: tabular data ingestion and analytical summaries.
"""

__version__ = "1.0.0"
