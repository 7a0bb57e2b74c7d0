"""Accidental drug-related deaths: cleaning, long-form reshape, summaries and charts."""
